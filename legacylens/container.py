import logging
from dataclasses import dataclass, field
from typing import Any, Callable, TypeVar

from .config.settings import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Container:
    _factories: dict[type, Callable[[], Any]] = field(default_factory=dict)
    _singletons: dict[type, Any] = field(default_factory=dict)
    _singleton_flags: set[type] = field(default_factory=set)

    def register(
        self, interface: type[T], factory: Callable[[], T], singleton: bool = False
    ) -> None:
        """Register factory for interface.

        Args:
            interface: Interface or service type.
            factory: Factory function.
            singleton: Whether to cache instance.
        """
        self._factories[interface] = factory
        if singleton:
            self._singleton_flags.add(interface)

    def resolve(self, interface: type[T]) -> T:
        if interface in self._singletons:
            return self._singletons[interface]

        if interface not in self._factories:
            raise KeyError(f"No factory registered for {interface}")

        instance = self._factories[interface]()

        if interface in self._singleton_flags:
            self._singletons[interface] = instance

        return instance

    def reset(self) -> None:
        """Reset singletons (for testing)."""
        self._singletons.clear()


container = Container()


def configure_container(settings: Settings) -> Container:
    """Wire adapters and services from settings.

    Args:
        settings: Application settings.

    Returns:
        Configured container.
    """
    from .config.modes import GENERAL_MODE, MODE_CONFIGS
    from .core.chunking import DocumentChunker
    from .core.protocols.embedder import EmbedderProtocol
    from .core.protocols.llm import LLMProtocol
    from .core.protocols.reranker import RerankerProtocol
    from .core.protocols.vector_store import VectorStoreProtocol
    from .core.services.answer_service import AnswerService
    from .core.services.evaluation_service import EvaluationService
    from .core.services.ingest_service import IngestService
    from .core.services.search_service import SearchService
    from .core.strategies.quality_gate import QualityGate
    from .infrastructure.document_loaders import SourceLoader
    from .infrastructure.embeddings.sentence_transformer import (
        SentenceTransformerEmbedder,
    )
    from .infrastructure.llm.openai_client import OpenAIChatClient
    from .infrastructure.rerankers.llm_reranker import LLMReranker
    from .infrastructure.vector_stores.chroma_store import ChromaVectorStore

    container.register(
        EmbedderProtocol,
        lambda: SentenceTransformerEmbedder(settings.embedding_model),
        singleton=True,
    )

    container.register(
        VectorStoreProtocol,
        lambda: ChromaVectorStore(
            host=settings.chroma_host,
            port=settings.chroma_port,
            collection_name=settings.chroma_collection,
        ),
        singleton=True,
    )

    container.register(
        LLMProtocol,
        lambda: OpenAIChatClient(
            base_url=settings.llm_base_url,
            api_key=settings.llm_api_key,
            model=settings.llm_model,
            max_tokens=settings.llm_max_tokens,
            temperature=settings.llm_temperature,
        ),
        singleton=True,
    )

    container.register(
        RerankerProtocol,
        lambda: LLMReranker(
            llm=container.resolve(LLMProtocol),
            preview_chars=settings.rerank_preview_chars,
            temperature=settings.rerank_temperature,
        ),
        singleton=True,
    )

    container.register(
        DocumentChunker,
        lambda: DocumentChunker(
            max_chunk_size=settings.chunk_size,
            overlap_lines=settings.chunk_overlap_lines,
        ),
        singleton=True,
    )

    container.register(
        SearchService,
        lambda: SearchService(
            embedder=container.resolve(EmbedderProtocol),
            vector_store=container.resolve(VectorStoreProtocol),
            fetch_factor=settings.rag_fetch_factor,
            query_prefix=settings.embedding_query_prefix,
            file_context_limit=settings.file_context_limit,
        ),
        singleton=True,
    )

    container.register(
        AnswerService,
        lambda: AnswerService(
            llm=container.resolve(LLMProtocol),
            search_service=container.resolve(SearchService),
            reranker=container.resolve(RerankerProtocol),
            quality_gate=QualityGate(
                rerank_threshold=settings.gate_rerank_threshold,
                vector_threshold=settings.gate_vector_threshold,
            ),
            general_mode=GENERAL_MODE,
        ),
        singleton=True,
    )

    container.register(
        IngestService,
        lambda: IngestService(
            embedder=container.resolve(EmbedderProtocol),
            vector_store=container.resolve(VectorStoreProtocol),
            chunker=container.resolve(DocumentChunker),
            codebase_path=settings.codebase_path,
            loader=SourceLoader(max_file_bytes=settings.max_file_bytes),
            passage_prefix=settings.embedding_passage_prefix,
            embed_batch_size=settings.embed_batch_size,
            upsert_batch_size=settings.upsert_batch_size,
            content_limit=settings.metadata_content_limit,
        ),
        singleton=True,
    )

    container.register(
        EvaluationService,
        lambda: EvaluationService(
            answer_service=container.resolve(AnswerService),
            modes=MODE_CONFIGS,
            search_service=container.resolve(SearchService),
        ),
        singleton=True,
    )

    logger.info("Container configured")
    return container
