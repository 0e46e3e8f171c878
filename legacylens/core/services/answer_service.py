"""Answer service - retrieval, quality gate and grounded generation."""

import asyncio
import logging
import time
from contextlib import aclosing
from typing import AsyncGenerator, Optional

from ..errors import ValidationError
from ..models.document import QueryResponse, SearchResponse, SearchResult
from ..models.events import DoneEvent, SourcesEvent, StreamEvent, TokenEvent
from ..models.mode import ModeConfig
from ..protocols.llm import LLMProtocol
from ..protocols.reranker import RerankerProtocol
from ..strategies.quality_gate import QualityGate
from .answer_stream import AnswerStream
from .search_service import SearchService

logger = logging.getLogger(__name__)

NO_RESULTS_MESSAGE = (
    "No relevant code found for this query. Try being more specific or using terms "
    "from the codebase (e.g., file names, COBOL keywords, or program identifiers)."
)
NO_ANSWER_MESSAGE = "No answer generated."

CONTEXT_SEPARATOR = "\n\n---\n\n"


class AnswerService:
    """Answer questions from retrieved code, streaming or in one piece."""

    def __init__(
        self,
        llm: LLMProtocol,
        search_service: SearchService,
        reranker: RerankerProtocol,
        quality_gate: QualityGate,
        general_mode: ModeConfig,
        temperature: Optional[float] = None,
    ):
        """Initialize answer service.

        Args:
            llm: LLM client.
            search_service: Candidate retrieval.
            reranker: Reranking service.
            quality_gate: Relevance check for gated modes.
            general_mode: Mode used when the caller names none.
            temperature: Generation temperature override.
        """
        self._llm = llm
        self._search = search_service
        self._reranker = reranker
        self._gate = quality_gate
        self._general_mode = general_mode
        self._temperature = temperature

    async def retrieve(
        self,
        query: str,
        mode: Optional[ModeConfig] = None,
        top_k: Optional[int] = None,
    ) -> SearchResponse:
        """Search with the mode's query prefix, rerank with the literal query.

        Args:
            query: User query.
            mode: Analysis mode (general if omitted).
            top_k: Override the mode's default result count.

        Returns:
            Final ranked results with formatted context.
        """
        mode = mode or self._general_mode
        query = self._validate_query(query)
        top_k = self._resolve_top_k(mode, top_k)

        candidates = await asyncio.to_thread(self._search.search, mode.search_query(query), top_k)
        results = await self._reranker.rerank(query, candidates, top_k)

        logger.info(
            f"Retrieve [{mode.id}]: {len(results)}/{len(candidates)} results for '{query[:50]}...'"
        )
        return SearchResponse(
            results=results,
            context=self._format_context(results),
            sources=self._get_unique_sources(results),
        )

    def stream(
        self,
        query: str,
        mode: Optional[ModeConfig] = None,
        top_k: Optional[int] = None,
    ) -> AnswerStream:
        """Stream sources, answer tokens and done for one request.

        Args:
            query: User query.
            mode: Analysis mode (general if omitted).
            top_k: Override the mode's default result count.

        Returns:
            Ordered event stream. Closing it cancels generation.
        """
        mode = mode or self._general_mode
        query = self._validate_query(query)
        top_k = self._resolve_top_k(mode, top_k)
        return AnswerStream(self._events(query, mode, top_k))

    async def _events(
        self, query: str, mode: ModeConfig, top_k: int
    ) -> AsyncGenerator[StreamEvent, None]:
        response = await self.retrieve(query, mode, top_k)

        if mode.gated and not self._gate.passes(response.results):
            logger.info(f"Quality gate refused [{mode.id}] '{query[:50]}...', skipping generation")
            yield SourcesEvent(results=[])
            yield TokenEvent(content=NO_RESULTS_MESSAGE)
            yield DoneEvent()
            return

        yield SourcesEvent(results=response.results)

        prompt = self._build_prompt(query, response.context, mode)
        async with aclosing(
            self._llm.stream(mode.system_prompt, prompt, temperature=self._temperature)
        ) as tokens:
            async for token in tokens:
                if token:
                    yield TokenEvent(content=token)

        yield DoneEvent()

    async def answer(self, query: str, top_k: Optional[int] = None) -> QueryResponse:
        """Answer in the general mode without streaming.

        Args:
            query: User query.
            top_k: Override the default result count.

        Returns:
            Answer text, the results it was grounded in, and latency.
        """
        start = time.perf_counter()
        mode = self._general_mode
        query = self._validate_query(query)

        response = await self.retrieve(query, mode, top_k)
        text = await self._llm.complete(
            mode.system_prompt,
            self._build_prompt(query, response.context, mode),
            temperature=self._temperature,
        )

        latency_ms = int((time.perf_counter() - start) * 1000)
        logger.info(f"Answered '{query[:50]}...' in {latency_ms} ms")
        return QueryResponse(
            answer=text or NO_ANSWER_MESSAGE,
            results=response.results,
            latency_ms=latency_ms,
        )

    @staticmethod
    def _validate_query(query: str) -> str:
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("query must be a non-empty string")
        return query.strip()

    @staticmethod
    def _resolve_top_k(mode: ModeConfig, top_k: Optional[int]) -> int:
        if top_k is None:
            return mode.default_top_k
        if top_k <= 0:
            raise ValidationError("top_k must be positive")
        return top_k

    @staticmethod
    def _build_prompt(query: str, context: str, mode: ModeConfig) -> str:
        heading = "Request" if mode.gated else "Question"
        return f"## Retrieved Code Snippets\n\n{context}\n\n## {heading}\n{query}"

    @staticmethod
    def _format_context(results: list[SearchResult]) -> str:
        """Format results as citation blocks for the LLM."""
        parts = []
        for i, r in enumerate(results, 1):
            c = r.chunk
            header = f"[{i}] {c.citation} ({c.chunk_type.value}: {c.name})"
            parts.append(f"{header}\n{c.content}")
        return CONTEXT_SEPARATOR.join(parts)

    @staticmethod
    def _get_unique_sources(results: list[SearchResult]) -> list[str]:
        """Get unique file paths, best first."""
        seen = set()
        sources = []
        for r in results:
            if r.chunk.file_path not in seen:
                seen.add(r.chunk.file_path)
                sources.append(r.chunk.file_path)
        return sources
