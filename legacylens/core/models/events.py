"""Answer stream events."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, Union

from .document import SearchResult


class StreamState(Enum):
    """Lifecycle of one answer stream."""
    PENDING = "pending"      # nothing emitted yet
    STREAMING = "streaming"  # sources sent, tokens may follow
    DONE = "done"            # terminal event sent
    CANCELLED = "cancelled"  # consumer went away before done
    FAILED = "failed"        # producer raised before done


@dataclass(frozen=True)
class SourcesEvent:
    """First event: the final ranked results."""
    results: list[SearchResult] = field(default_factory=list)
    type: Literal["sources"] = "sources"


@dataclass(frozen=True)
class TokenEvent:
    """Answer text fragment, in emission order."""
    content: str
    type: Literal["token"] = "token"


@dataclass(frozen=True)
class DoneEvent:
    """Terminal event."""
    type: Literal["done"] = "done"


StreamEvent = Union[SourcesEvent, TokenEvent, DoneEvent]
