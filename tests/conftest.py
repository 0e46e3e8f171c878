"""
Shared in-memory fakes for the embedder, vector store and LLM.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import numpy as np
import pytest

from legacylens.config.modes import GENERAL_MODE
from legacylens.core.models.document import (
    Chunk,
    ChunkType,
    IndexRecord,
    SearchResult,
    VectorMatch,
)
from legacylens.core.services.answer_service import AnswerService
from legacylens.core.services.search_service import SearchService
from legacylens.core.strategies.quality_gate import QualityGate
from legacylens.infrastructure.rerankers.llm_reranker import LLMReranker


class FakeEmbedder:
    """Deterministic embedder; remembers every input."""

    dimension = 4

    def __init__(self):
        self.inputs: list[str] = []

    def warmup(self) -> None:
        pass

    def encode(self, texts):
        batch = [texts] if isinstance(texts, str) else list(texts)
        self.inputs.extend(batch)
        vectors = np.array([[len(t) % 7 + 1.0, 1.0, 0.0, 0.5] for t in batch])
        return vectors[0] if isinstance(texts, str) else vectors


class FakeVectorStore:
    """Dict-backed store returning preset or stored matches."""

    def __init__(self, matches: Optional[list[VectorMatch]] = None):
        self.records: dict[str, IndexRecord] = {}
        self.matches = matches
        self.queries: list[dict[str, Any]] = []
        self.upsert_batches: list[list[IndexRecord]] = []
        self.reset_calls = 0

    def upsert(self, records: list[IndexRecord]) -> None:
        self.upsert_batches.append(list(records))
        for r in records:
            self.records[r.id] = r

    def query(self, query_embedding, n_results=5, where=None) -> list[VectorMatch]:
        self.queries.append({"embedding": query_embedding, "n_results": n_results, "where": where})
        if self.matches is not None:
            return self.matches[:n_results]

        wanted = (where or {}).get("file_path", {}).get("$eq")
        return [
            VectorMatch(id=r.id, score=0.0, document=r.document, metadata=r.metadata)
            for r in self.records.values()
            if wanted is None or r.metadata.get("file_path") == wanted
        ][:n_results]

    def count(self) -> int:
        return len(self.records)

    def reset(self) -> None:
        self.reset_calls += 1
        self.records.clear()


class FakeLLM:
    """Scripted LLM: canned completion and token list."""

    def __init__(self, completion: Any = "", tokens: Optional[list[str]] = None):
        self.completion = completion
        self.tokens = tokens if tokens is not None else ["Hello", " world"]
        self.complete_calls: list[dict[str, Any]] = []
        self.stream_calls: list[dict[str, Any]] = []
        self.stream_closed = False
        self.tokens_sent = 0

    async def complete(self, system_prompt, user_prompt, *, temperature=None, json_mode=False):
        self.complete_calls.append(
            {
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "temperature": temperature,
                "json_mode": json_mode,
            }
        )
        if isinstance(self.completion, Exception):
            raise self.completion
        return self.completion

    async def stream(self, system_prompt, user_prompt, *, temperature=None):
        self.stream_calls.append({"system_prompt": system_prompt, "user_prompt": user_prompt})
        try:
            for token in self.tokens:
                self.tokens_sent += 1
                yield token
        finally:
            self.stream_closed = True


def make_chunk(i: int, file_path: str = "prog.cob") -> Chunk:
    return Chunk(
        id=f"c{i}",
        content=f"       PARA-{i}.\n           DISPLAY {i}.",
        file_path=file_path,
        start_line=i * 10 + 1,
        end_line=i * 10 + 2,
        chunk_type=ChunkType.PARAGRAPH,
        name=f"PARA-{i}",
        parent_section="PROCEDURE DIVISION",
        program_id="PROG",
    )


def make_match(i: int, score: float, file_path: str = "prog.cob") -> VectorMatch:
    chunk = make_chunk(i, file_path)
    return VectorMatch(id=chunk.id, score=score, document=chunk.content, metadata=chunk.to_metadata())


def make_results(scores: list[float]) -> list[SearchResult]:
    return [SearchResult(chunk=make_chunk(i), vector_score=s) for i, s in enumerate(scores)]


def grading(scores: list[int]) -> str:
    return json.dumps({"scores": [{"index": i, "score": s} for i, s in enumerate(scores)]})


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def build_answer_service(embedder):
    """Factory wiring an AnswerService over fakes."""

    def _build(matches: list[VectorMatch], llm: FakeLLM):
        store = FakeVectorStore(matches)
        search = SearchService(embedder=embedder, vector_store=store)
        service = AnswerService(
            llm=llm,
            search_service=search,
            reranker=LLMReranker(llm),
            quality_gate=QualityGate(),
            general_mode=GENERAL_MODE,
        )
        return service, search, store

    return _build
