"""Evaluation domain models."""
import math
from dataclasses import asdict, dataclass, field
from typing import Any, Optional, Sequence


def percentile(sorted_values: Sequence[int], p: float) -> int:
    """Nearest-rank percentile of an ascending sequence (0 when empty)."""
    if not sorted_values:
        return 0
    idx = math.ceil(p / 100 * len(sorted_values)) - 1
    return sorted_values[max(0, idx)]


@dataclass(frozen=True)
class EvalCase:
    """One query with the files, keywords and answer terms it should hit."""
    query: str
    expected_files: tuple[str, ...]
    expected_keywords: tuple[str, ...]
    response_checks: tuple[str, ...] = ()
    mode: str = "general"
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "EvalCase":
        return cls(
            query=data["query"],
            expected_files=tuple(data.get("expected_files", ())),
            expected_keywords=tuple(data.get("expected_keywords", ())),
            response_checks=tuple(data.get("response_checks", ())),
            mode=data.get("mode", "general"),
            description=data.get("description", ""),
        )


@dataclass
class EvalResult:
    """Outcome of one case."""
    mode: str
    query: str
    description: str
    retrieval_ms: int
    total_ms: int
    retrieved_files: list[str]
    file_match: bool
    keyword_match: bool
    checks_passed: int
    checks_total: int
    top_score: float

    @property
    def retrieval_relevant(self) -> bool:
        return self.file_match and self.keyword_match

    @property
    def response_relevant(self) -> bool:
        # at least half of the answer terms present
        return self.checks_passed >= math.ceil(self.checks_total / 2)

    @property
    def passed(self) -> bool:
        return self.retrieval_relevant and self.response_relevant


@dataclass(frozen=True)
class LatencySummary:
    """p50 / p95 / max / mean of a latency sample, in milliseconds."""
    p50_ms: int = 0
    p95_ms: int = 0
    max_ms: int = 0
    avg_ms: int = 0

    @classmethod
    def of(cls, samples: Sequence[int]) -> "LatencySummary":
        if not samples:
            return cls()
        ordered = sorted(samples)
        return cls(
            p50_ms=percentile(ordered, 50),
            p95_ms=percentile(ordered, 95),
            max_ms=ordered[-1],
            avg_ms=round(sum(ordered) / len(ordered)),
        )


@dataclass(frozen=True)
class EvalTargets:
    """Pass thresholds for an evaluation run."""
    retrieval_p95_ms: int = 3000
    retrieval_precision: float = 0.7
    pass_rate: float = 0.6
    coverage_percent: float = 100.0


@dataclass
class ModeStats:
    """Aggregates over the cases of one mode."""
    mode: str
    cases: int
    retrieval_precision: float
    response_precision: float
    pass_rate: float
    retrieval_latency: LatencySummary
    total_latency: LatencySummary


@dataclass
class EvalReport:
    """Full evaluation run: per-case results, per-mode stats and targets."""
    results: list[EvalResult]
    mode_stats: list[ModeStats]
    retrieval_latency: LatencySummary
    total_latency: LatencySummary
    retrieval_precision: float
    response_precision: float
    pass_rate: float
    coverage_percent: Optional[float] = None
    indexed_files: int = 0
    discovered_files: int = 0
    missing_files: list[str] = field(default_factory=list)
    targets: dict[str, bool] = field(default_factory=dict)

    @property
    def passed(self) -> bool:
        return all(self.targets.values())

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready report."""
        data = asdict(self)
        for raw, result in zip(data["results"], self.results):
            raw["retrieval_relevant"] = result.retrieval_relevant
            raw["response_relevant"] = result.response_relevant
            raw["passed"] = result.passed
        data["passed"] = self.passed
        return data
