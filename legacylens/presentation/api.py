"""
FastAPI application: search, answers and analysis over the indexed codebase.
"""

from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from fastapi import APIRouter, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from legacylens.config.modes import ANALYSIS_MODES
from legacylens.config.settings import settings
from legacylens.container import configure_container, container
from legacylens.core.errors import UpstreamServiceError, ValidationError
from legacylens.core.models.events import SourcesEvent, StreamEvent, TokenEvent
from legacylens.core.protocols.vector_store import VectorStoreProtocol
from legacylens.core.services.answer_service import AnswerService
from legacylens.core.services.answer_stream import AnswerStream
from legacylens.core.services.search_service import SearchService

from .schemas import (
    AnalyzeRequest,
    ChunkOut,
    FileContextRequest,
    FileContextResponse,
    HealthResponse,
    QueryRequest,
    QueryResponse,
    SearchResponse,
    SearchResultOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["api"])

SSE_HEADERS = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}
DISCONNECT_POLL_SECONDS = 0.5


def _sse_event(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def _event_payload(event: StreamEvent) -> dict[str, Any]:
    if isinstance(event, SourcesEvent):
        results = [SearchResultOut.from_result(r).model_dump(by_alias=True) for r in event.results]
        return {"type": event.type, "results": results}
    if isinstance(event, TokenEvent):
        return {"type": event.type, "content": event.content}
    return {"type": event.type}


def _answer_service(request: Request) -> AnswerService:
    return request.app.state.answer_service


def _search_service(request: Request) -> SearchService:
    return request.app.state.search_service


async def _wait_for_disconnect(request: Request) -> None:
    while not await request.is_disconnected():
        await asyncio.sleep(DISCONNECT_POLL_SECONDS)


async def _forward(request: Request, stream: AnswerStream, first: StreamEvent) -> AsyncIterator[str]:
    """Relay stream events as SSE until done or client disconnect.

    The disconnect watch runs beside the relay, so a generation stalled
    between tokens is still released when the client goes away.
    """
    watcher = asyncio.ensure_future(_wait_for_disconnect(request))
    pending: asyncio.Future | None = None
    try:
        yield _sse_event(_event_payload(first))
        while True:
            pending = asyncio.ensure_future(stream.__anext__())
            await asyncio.wait({pending, watcher}, return_when=asyncio.FIRST_COMPLETED)
            if watcher.done():
                logger.info("Client disconnected, cancelling answer stream")
                break
            try:
                event = pending.result()
            except StopAsyncIteration:
                break
            yield _sse_event(_event_payload(event))
    except Exception as e:
        logger.error(f"Answer stream aborted: {e}")
    finally:
        watcher.cancel()
        if pending is not None and not pending.done():
            pending.cancel()
            await asyncio.wait({pending})
        await stream.aclose()


async def _stream_response(request: Request, stream: AnswerStream) -> StreamingResponse:
    # Failures before the first event surface as HTTP errors.
    try:
        first = await stream.__anext__()
    except BaseException:
        await stream.aclose()
        raise
    return StreamingResponse(
        _forward(request, stream, first),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )


@router.get("/health", response_model=HealthResponse)
async def health(request: Request) -> HealthResponse:
    """Health check with indexed chunk count."""
    vector_store: VectorStoreProtocol = request.app.state.vector_store
    try:
        count = await asyncio.to_thread(vector_store.count)
    except UpstreamServiceError as e:
        logger.warning(f"Health check: {e}")
        return HealthResponse(status="unavailable", chunks_indexed=0)
    return HealthResponse(status="ok", chunks_indexed=count)


@router.post("/search", response_model=SearchResponse)
async def search(request: Request, body: QueryRequest) -> SearchResponse:
    """Retrieve and rerank, no generation."""
    response = await _answer_service(request).retrieve(body.query, top_k=body.top_k)
    return SearchResponse(
        query=body.query,
        results=[SearchResultOut.from_result(r) for r in response.results],
    )


@router.post("/query", response_model=QueryResponse)
async def query(request: Request, body: QueryRequest) -> QueryResponse:
    """Answer a question in one response."""
    response = await _answer_service(request).answer(body.query, top_k=body.top_k)
    return QueryResponse(
        answer=response.answer,
        results=[SearchResultOut.from_result(r) for r in response.results],
        latency_ms=response.latency_ms,
    )


@router.post("/query/stream")
async def query_stream(request: Request, body: QueryRequest) -> StreamingResponse:
    """Stream sources, answer tokens and done via SSE."""
    stream = _answer_service(request).stream(body.query, top_k=body.top_k)
    return await _stream_response(request, stream)


@router.post("/analyze/stream")
async def analyze_stream(request: Request, body: AnalyzeRequest) -> StreamingResponse:
    """Stream a mode-specific analysis via SSE, refusing irrelevant retrievals."""
    mode = ANALYSIS_MODES.get(body.mode)
    if mode is None:
        raise ValidationError(
            f"Invalid mode '{body.mode}'. Must be one of: {', '.join(ANALYSIS_MODES)}"
        )
    stream = _answer_service(request).stream(body.query, mode=mode, top_k=body.top_k)
    return await _stream_response(request, stream)


@router.post("/file-context", response_model=FileContextResponse)
async def file_context(request: Request, body: FileContextRequest) -> FileContextResponse:
    """All chunks of one file in reading order."""
    chunks = await asyncio.to_thread(_search_service(request).file_chunks, body.file_path)
    return FileContextResponse(chunks=[ChunkOut.from_chunk(c) for c in chunks])


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


async def _upstream_error(request: Request, exc: UpstreamServiceError) -> JSONResponse:
    logger.error(f"Upstream failure on {request.url.path}: {exc}")
    return JSONResponse(status_code=502, content={"detail": str(exc)})


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Wire services from settings unless they were injected."""
    if not hasattr(app.state, "answer_service"):
        logging.basicConfig(level=settings.log_level, format="%(message)s")
        configure_container(settings)
        app.state.answer_service = container.resolve(AnswerService)
        app.state.search_service = container.resolve(SearchService)
        app.state.vector_store = container.resolve(VectorStoreProtocol)
    yield


def create_app(
    answer_service: AnswerService | None = None,
    search_service: SearchService | None = None,
    vector_store: VectorStoreProtocol | None = None,
) -> FastAPI:
    """Build the application, optionally with pre-built services."""
    app = FastAPI(
        title="LegacyLens API",
        description="Retrieval-augmented Q&A over a legacy COBOL codebase",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(UpstreamServiceError, _upstream_error)
    app.include_router(router)

    if answer_service is not None:
        app.state.answer_service = answer_service
        app.state.search_service = search_service
        app.state.vector_store = vector_store
    return app


app = create_app()
