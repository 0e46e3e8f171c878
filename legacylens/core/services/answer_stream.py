"""Ordered answer event stream with an explicit lifecycle."""

import logging
from typing import AsyncGenerator

from ..models.events import DoneEvent, SourcesEvent, StreamEvent, StreamState

logger = logging.getLogger(__name__)


class AnswerStream:
    """Single-producer stream: sources, then tokens, then done.

    Wraps the producing generator, enforces event order and records the
    lifecycle state. Closing the stream before ``done`` marks it cancelled
    and closes the producer, which releases any open generation stream.
    """

    def __init__(self, events: AsyncGenerator[StreamEvent, None]):
        self._events = events
        self.state = StreamState.PENDING

    def __aiter__(self) -> "AnswerStream":
        return self

    async def __anext__(self) -> StreamEvent:
        if self.state is StreamState.DONE:
            await self._events.aclose()
            raise StopAsyncIteration
        if self.state in (StreamState.CANCELLED, StreamState.FAILED):
            raise StopAsyncIteration

        try:
            event = await self._events.__anext__()
        except StopAsyncIteration:
            self.state = StreamState.FAILED
            logger.error("Answer stream ended without done event")
            raise
        except Exception:
            self.state = StreamState.FAILED
            raise

        self._advance(event)
        return event

    def _advance(self, event: StreamEvent) -> None:
        if isinstance(event, SourcesEvent):
            if self.state is not StreamState.PENDING:
                raise RuntimeError("sources event already sent")
            self.state = StreamState.STREAMING
        elif self.state is not StreamState.STREAMING:
            raise RuntimeError(f"{event.type} event before sources event")
        elif isinstance(event, DoneEvent):
            self.state = StreamState.DONE

    async def aclose(self) -> None:
        """Stop the stream and release the producer."""
        if self.state in (StreamState.PENDING, StreamState.STREAMING):
            self.state = StreamState.CANCELLED
            logger.info("Answer stream cancelled by consumer")
        await self._events.aclose()
