import argparse
import asyncio
import json
import logging
import sys
import time
from pathlib import Path

import httpx

from legacylens.config.eval_cases import DEFAULT_EVAL_CASES
from legacylens.config.modes import ANALYSIS_MODES, get_mode
from legacylens.config.settings import settings
from legacylens.container import configure_container, container
from legacylens.core.errors import LegacyLensError
from legacylens.core.models.evaluation import EvalCase, EvalReport
from legacylens.core.models.events import SourcesEvent, TokenEvent
from legacylens.core.services.answer_service import AnswerService
from legacylens.core.services.evaluation_service import EvaluationService
from legacylens.core.services.ingest_service import IngestService

logger = logging.getLogger(__name__)


def ensure_llm_model(attempts: int = 30) -> bool:
    """Ensure the chat model is served, pulling it from Ollama if missing.

    Returns:
        True if model ready, False otherwise.
    """
    model = settings.llm_model
    base_url = settings.llm_base_url.rstrip("/")
    headers = {"Authorization": f"Bearer {settings.llm_api_key}"}

    logger.info(f"Checking LLM model: {model}")

    for attempt in range(attempts):
        try:
            resp = httpx.get(f"{base_url}/models", headers=headers, timeout=5)
            if resp.status_code == 200:
                models = [m["id"] for m in resp.json().get("data", [])]
                if any(model in m for m in models):
                    logger.info(f"Model {model} is ready")
                    return True

                logger.info(f"Pulling model {model}...")
                pull_resp = httpx.post(
                    f"{base_url.removesuffix('/v1')}/api/pull",
                    json={"name": model},
                    timeout=600,
                )
                if pull_resp.status_code == 200:
                    logger.info(f"Model {model} pulled successfully")
                    return True
                logger.error(f"Failed to pull model: {pull_resp.text}")
        except httpx.HTTPError:
            logger.info(f"Waiting for LLM service... ({attempt + 1}/{attempts})")
        time.sleep(2)

    logger.error("LLM service not available")
    return False


def cmd_ingest(args: argparse.Namespace) -> None:
    """Rebuild the index, or only chunk with --dry-run."""
    configure_container(settings)
    ingest_service = container.resolve(IngestService)
    stats = ingest_service.run(path=args.path, dry_run=args.dry_run)

    logger.info(
        f"{'Dry run: ' if stats.dry_run else ''}{stats.files} files "
        f"({stats.structured_files} COBOL, {stats.other_files} other), "
        f"{stats.lines} lines, {stats.chunks} chunks, ~{stats.estimated_tokens} tokens"
    )
    logger.info(
        f"Timings: discovery {stats.discovery_ms} ms, chunking {stats.chunking_ms} ms, "
        f"embedding {stats.embedding_ms} ms, upsert {stats.upsert_ms} ms"
    )


def cmd_validate(args: argparse.Namespace) -> None:
    """Check that chunking covers every line of every file."""
    configure_container(settings)
    gaps = container.resolve(IngestService).validate(path=args.path)
    if not gaps:
        logger.info("All lines covered")
        return

    for path, lines in gaps.items():
        preview = ", ".join(str(n) for n in lines[:10])
        logger.error(f"{path}: {len(lines)} uncovered lines ({preview}{'...' if len(lines) > 10 else ''})")
    sys.exit(1)


def _load_cases(path: str) -> list[EvalCase]:
    with open(path, encoding="utf-8") as f:
        return [EvalCase.from_dict(item) for item in json.load(f)]


def _log_report(report: EvalReport) -> None:
    logger.info(
        f"{len(report.results)} cases: pass rate {report.pass_rate:.0%}, "
        f"retrieval precision {report.retrieval_precision:.0%}, "
        f"response precision {report.response_precision:.0%}"
    )
    for label, lat in (("Retrieval", report.retrieval_latency), ("Total", report.total_latency)):
        logger.info(
            f"{label} latency: p50 {lat.p50_ms} ms, p95 {lat.p95_ms} ms, "
            f"max {lat.max_ms} ms, avg {lat.avg_ms} ms"
        )
    for ms in report.mode_stats:
        logger.info(
            f"  {ms.mode:<16} pass={ms.pass_rate:.0%} ret={ms.retrieval_precision:.0%} "
            f"resp={ms.response_precision:.0%} retP95={ms.retrieval_latency.p95_ms}ms "
            f"totP95={ms.total_latency.p95_ms}ms (n={ms.cases})"
        )
    if report.coverage_percent is not None:
        logger.info(
            f"Index coverage: {report.indexed_files}/{report.discovered_files} files "
            f"({report.coverage_percent}%)"
        )
    for name, ok in report.targets.items():
        logger.info(f"  {'PASS' if ok else 'FAIL'} {name}")


def cmd_evaluate(args: argparse.Namespace) -> None:
    """Score retrieval and answers on query cases and write a JSON report."""
    configure_container(settings)
    cases = _load_cases(args.cases) if args.cases else DEFAULT_EVAL_CASES
    if args.mode:
        cases = [c for c in cases if c.mode == args.mode]

    files = None
    if not args.skip_coverage:
        files = [d.path for d in container.resolve(IngestService).discover(args.path)]

    report = asyncio.run(container.resolve(EvaluationService).run(cases, files))
    _log_report(report)

    report_path = Path(args.report)
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_text(json.dumps(report.to_dict(), indent=2), encoding="utf-8")
    logger.info(f"Report saved to {report_path}")

    if not report.passed:
        sys.exit(1)


def cmd_serve(args: argparse.Namespace) -> None:
    """Run the HTTP API."""
    import uvicorn

    if not ensure_llm_model():
        sys.exit(1)

    logger.info(f"Starting API on {settings.api_host}:{settings.api_port}...")
    uvicorn.run(
        "legacylens.presentation.api:app",
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


async def _ask(question: str, mode_id: str, top_k: int | None) -> None:
    configure_container(settings)
    answer_service = container.resolve(AnswerService)
    mode = get_mode(mode_id)

    stream = answer_service.stream(question, mode=mode, top_k=top_k)
    sources: list[str] = []
    try:
        async for event in stream:
            if isinstance(event, SourcesEvent):
                sources = [r.chunk.citation for r in event.results]
            elif isinstance(event, TokenEvent):
                sys.stdout.write(event.content)
                sys.stdout.flush()
    finally:
        await stream.aclose()

    print()
    if sources:
        print("\nSources:")
        for source in sources:
            print(f"  {source}")


def cmd_ask(args: argparse.Namespace) -> None:
    """Answer one question from the terminal."""
    asyncio.run(_ask(args.question, args.mode, args.top_k))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="legacylens", description="Search and explain a legacy COBOL codebase"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    ingest = commands.add_parser("ingest", help="index the codebase (full rebuild)")
    ingest.add_argument("--path", help="codebase root (default: CODEBASE_PATH)")
    ingest.add_argument("--dry-run", action="store_true", help="discover and chunk only")
    ingest.set_defaults(func=cmd_ingest)

    validate = commands.add_parser("validate", help="check chunk line coverage")
    validate.add_argument("--path", help="codebase root (default: CODEBASE_PATH)")
    validate.set_defaults(func=cmd_validate)

    evaluate = commands.add_parser("evaluate", help="score retrieval and answers on query cases")
    evaluate.add_argument("--cases", help="JSON list of cases (default: built-in cases)")
    evaluate.add_argument("--mode", choices=["general", *ANALYSIS_MODES], help="only this mode's cases")
    evaluate.add_argument("--report", default="reports/evaluation.json", help="JSON report path")
    evaluate.add_argument("--path", help="codebase root for index coverage (default: CODEBASE_PATH)")
    evaluate.add_argument("--skip-coverage", action="store_true", help="do not check index coverage")
    evaluate.set_defaults(func=cmd_evaluate)

    serve = commands.add_parser("serve", help="run the HTTP API")
    serve.set_defaults(func=cmd_serve)

    ask = commands.add_parser("ask", help="ask a question")
    ask.add_argument("question")
    ask.add_argument("--mode", default="general", choices=["general", *ANALYSIS_MODES])
    ask.add_argument("--top-k", type=int, default=None)
    ask.set_defaults(func=cmd_ask)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    logging.basicConfig(level=settings.log_level, format="%(message)s")
    args = build_parser().parse_args(argv)
    try:
        args.func(args)
    except LegacyLensError as e:
        logger.error(str(e))
        sys.exit(1)


if __name__ == "__main__":
    main()
