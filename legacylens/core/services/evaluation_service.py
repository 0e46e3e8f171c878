"""Evaluation service - retrieval precision, answer relevance and latency."""

import asyncio
import logging
import time
from typing import Optional, Sequence

from ..errors import ValidationError
from ..models.evaluation import (
    EvalCase,
    EvalReport,
    EvalResult,
    EvalTargets,
    LatencySummary,
    ModeStats,
)
from ..models.events import TokenEvent
from ..models.mode import ModeConfig
from .answer_service import AnswerService
from .search_service import SearchService

logger = logging.getLogger(__name__)


class EvaluationService:
    """Run query cases end to end and aggregate quality and latency."""

    def __init__(
        self,
        answer_service: AnswerService,
        modes: dict[str, ModeConfig],
        search_service: Optional[SearchService] = None,
        targets: Optional[EvalTargets] = None,
    ):
        """Initialize evaluation service.

        Args:
            answer_service: Retrieval and generation under test.
            modes: Mode table by id; the ungated mode answers in one piece.
            search_service: File lookup for index coverage (skipped if omitted).
            targets: Pass thresholds.
        """
        self._answers = answer_service
        self._modes = modes
        self._search = search_service
        self._targets = targets or EvalTargets()

    async def run(
        self,
        cases: Sequence[EvalCase],
        discovered_files: Optional[Sequence[str]] = None,
    ) -> EvalReport:
        """Evaluate every case, one at a time.

        Args:
            cases: Query cases.
            discovered_files: Codebase files expected in the index.

        Returns:
            Report with per-case results, per-mode stats and target outcomes.
        """
        if not cases:
            raise ValidationError("no evaluation cases")
        for case in cases:
            if case.mode not in self._modes:
                raise ValidationError(f"Unknown mode '{case.mode}' in case '{case.query}'")

        results = []
        for case in cases:
            result = await self.evaluate_case(case)
            status = "PASS" if result.passed else "FAIL"
            logger.info(
                f"{status} [{result.mode}] retrieval={result.retrieval_ms}ms "
                f"total={result.total_ms}ms {result.description or result.query[:50]}"
            )
            results.append(result)

        report = self._aggregate(results)
        if discovered_files is not None and self._search is not None:
            await self._measure_coverage(report, discovered_files)
        report.targets = self._check_targets(report)
        return report

    async def evaluate_case(self, case: EvalCase) -> EvalResult:
        """Retrieve, then answer, scoring both against the case."""
        mode = self._modes[case.mode]

        start = time.perf_counter()
        response = await self._answers.retrieve(case.query, mode)
        retrieval_ms = _elapsed_ms(start)

        start = time.perf_counter()
        answer = await self._generate(case.query, mode)
        total_ms = retrieval_ms + _elapsed_ms(start)

        answer_lower = answer.lower()
        return EvalResult(
            mode=case.mode,
            query=case.query,
            description=case.description,
            retrieval_ms=retrieval_ms,
            total_ms=total_ms,
            retrieved_files=[r.chunk.file_path for r in response.results],
            file_match=_any_contains((r.chunk.file_path for r in response.results), case.expected_files),
            keyword_match=_any_contains((r.chunk.content for r in response.results), case.expected_keywords),
            checks_passed=sum(1 for term in case.response_checks if term.lower() in answer_lower),
            checks_total=len(case.response_checks),
            top_score=response.results[0].score if response.results else 0.0,
        )

    async def _generate(self, query: str, mode: ModeConfig) -> str:
        if not mode.gated:
            return (await self._answers.answer(query)).answer

        stream = self._answers.stream(query, mode=mode)
        tokens = []
        try:
            async for event in stream:
                if isinstance(event, TokenEvent):
                    tokens.append(event.content)
        finally:
            await stream.aclose()
        return "".join(tokens)

    def _aggregate(self, results: list[EvalResult]) -> EvalReport:
        by_mode: dict[str, list[EvalResult]] = {}
        for r in results:
            by_mode.setdefault(r.mode, []).append(r)

        mode_stats = [
            ModeStats(
                mode=mode,
                cases=len(group),
                retrieval_precision=_rate(group, lambda r: r.retrieval_relevant),
                response_precision=_rate(group, lambda r: r.response_relevant),
                pass_rate=_rate(group, lambda r: r.passed),
                retrieval_latency=LatencySummary.of([r.retrieval_ms for r in group]),
                total_latency=LatencySummary.of([r.total_ms for r in group]),
            )
            for mode, group in by_mode.items()
        ]

        return EvalReport(
            results=results,
            mode_stats=mode_stats,
            retrieval_latency=LatencySummary.of([r.retrieval_ms for r in results]),
            total_latency=LatencySummary.of([r.total_ms for r in results]),
            retrieval_precision=_rate(results, lambda r: r.retrieval_relevant),
            response_precision=_rate(results, lambda r: r.response_relevant),
            pass_rate=_rate(results, lambda r: r.passed),
        )

    async def _measure_coverage(self, report: EvalReport, files: Sequence[str]) -> None:
        missing = []
        for path in files:
            chunks = await asyncio.to_thread(self._search.file_chunks, path)
            if not chunks:
                missing.append(path)

        report.discovered_files = len(files)
        report.indexed_files = len(files) - len(missing)
        report.missing_files = missing
        report.coverage_percent = (
            round(report.indexed_files / len(files) * 100, 1) if files else 100.0
        )
        if missing:
            logger.warning(f"{len(missing)}/{len(files)} files have no indexed chunks")

    def _check_targets(self, report: EvalReport) -> dict[str, bool]:
        t = self._targets
        targets = {
            "retrieval_latency_p95": report.retrieval_latency.p95_ms <= t.retrieval_p95_ms,
            "retrieval_precision": report.retrieval_precision >= t.retrieval_precision,
            "pass_rate": report.pass_rate >= t.pass_rate,
        }
        if report.coverage_percent is not None:
            targets["coverage"] = report.coverage_percent >= t.coverage_percent
        return targets


def _any_contains(haystacks, needles: Sequence[str]) -> bool:
    lowered = [n.lower() for n in needles]
    return any(n in h.lower() for h in haystacks for n in lowered)


def _rate(results: list[EvalResult], predicate) -> float:
    if not results:
        return 0.0
    return round(sum(1 for r in results if predicate(r)) / len(results), 2)


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)
