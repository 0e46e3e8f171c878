import json
import logging
from typing import Any

from legacylens.core.errors import RerankParseError
from legacylens.core.models.document import SearchResult
from legacylens.core.protocols.llm import LLMProtocol

logger = logging.getLogger(__name__)

RERANK_SYSTEM_PROMPT = """You are a code relevance scorer. Given a user query and a list of code chunks, rate each chunk's relevance to the query on a 0-10 scale (10 = highly relevant, 0 = irrelevant).
Return JSON: { "scores": [{ "index": <number>, "score": <number> }] }
Include every chunk index exactly once."""

MIN_SCORE = 0
MAX_SCORE = 10


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_scores(raw: str) -> dict[int, int]:
    """Parse a grading response into an index -> score map.

    Entries that are not numeric ``{index, score}`` pairs are skipped.
    Scores are rounded and clamped to 0-10.

    Raises:
        RerankParseError: Response is empty, not JSON, or has no score list.
    """
    if not raw or not raw.strip():
        raise RerankParseError("empty grading response")
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as e:
        raise RerankParseError(f"invalid JSON: {e}") from e

    entries = parsed.get("scores") if isinstance(parsed, dict) else parsed
    if not isinstance(entries, list):
        raise RerankParseError("'scores' is not a list")

    scores: dict[int, int] = {}
    for entry in entries:
        if not isinstance(entry, dict):
            continue
        index, score = entry.get("index"), entry.get("score")
        if not (_is_number(index) and _is_number(score)) or index != int(index):
            continue
        scores[int(index)] = min(MAX_SCORE, max(MIN_SCORE, round(score)))
    return scores


class LLMReranker:
    """Reranker that asks the chat model to grade all candidates in one call."""

    def __init__(self, llm: LLMProtocol, preview_chars: int = 200, temperature: float = 0.0):
        """Initialize reranker.

        Args:
            llm: LLM client used for grading.
            preview_chars: Characters of chunk content shown per candidate.
            temperature: Grading temperature.
        """
        self._llm = llm
        self._preview_chars = preview_chars
        self._temperature = temperature

    def _build_prompt(self, query: str, results: list[SearchResult]) -> str:
        chunks = [
            {
                "index": i,
                "filePath": r.chunk.file_path,
                "name": r.chunk.name,
                "chunkType": r.chunk.chunk_type.value,
                "content": r.chunk.content[: self._preview_chars],
            }
            for i, r in enumerate(results)
        ]
        return f"## Query\n{query}\n\n## Chunks\n{json.dumps(chunks)}"

    async def rerank(
        self, query: str, results: list[SearchResult], top_k: int
    ) -> list[SearchResult]:
        """Rerank results by graded relevance.

        Any failure of the grading call keeps the similarity order.

        Args:
            query: Literal user query.
            results: Candidates in similarity order.
            top_k: Number of results to keep.

        Returns:
            At most top_k results, best first.
        """
        if len(results) <= top_k:
            return results

        try:
            raw = await self._llm.complete(
                RERANK_SYSTEM_PROMPT,
                self._build_prompt(query, results),
                temperature=self._temperature,
                json_mode=True,
            )
            scores = parse_scores(raw)
        except Exception as e:
            logger.warning(f"Rerank failed, keeping similarity order: {e}")
            return results[:top_k]

        ranked = sorted(enumerate(results), key=lambda p: scores.get(p[0], MIN_SCORE), reverse=True)
        reranked = [r.with_rerank_score(scores.get(i, MIN_SCORE)) for i, r in ranked[:top_k]]

        if logger.isEnabledFor(logging.DEBUG):
            top_scores = ", ".join(str(r.rerank_score) for r in reranked[:3])
            logger.debug(f"Reranker top-3 scores: [{top_scores}]")

        return reranked
