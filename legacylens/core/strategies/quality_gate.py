
import logging

from ..models.document import SearchResult

logger = logging.getLogger(__name__)


class QualityGate:
    """Skip generation when the best result is clearly irrelevant."""

    def __init__(self, rerank_threshold: int = 3, vector_threshold: float = 0.3):
        """Initialize gate.

        Args:
            rerank_threshold: Minimum rerank score (0-10) of the top result.
            vector_threshold: Minimum similarity of the top result when it
                has no rerank score.
        """
        self._rerank_threshold = rerank_threshold
        self._vector_threshold = vector_threshold

    def passes(self, results: list[SearchResult]) -> bool:
        """Check the top-ranked result only."""
        if not results:
            logger.info("Quality gate: no results")
            return False

        top = results[0]
        if top.rerank_score is not None:
            passed = top.rerank_score >= self._rerank_threshold
            threshold: float = self._rerank_threshold
        else:
            passed = top.vector_score >= self._vector_threshold
            threshold = self._vector_threshold

        if not passed:
            logger.info(
                f"Quality gate: top score {top.score:.2f} < {threshold} "
                f"({'rerank' if top.rerank_score is not None else 'vector'})"
            )
        return passed
