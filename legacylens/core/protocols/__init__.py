"""Collaborator interfaces: embedding, vector index, generation, reranking."""
from .embedder import EmbedderProtocol
from .llm import LLMProtocol
from .reranker import RerankerProtocol
from .vector_store import VectorStoreProtocol

__all__ = [
    "EmbedderProtocol",
    "LLMProtocol",
    "RerankerProtocol",
    "VectorStoreProtocol",
]
