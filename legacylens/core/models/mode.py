"""Analysis mode model."""
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ModeConfig:
    """Per-mode prompt and retrieval settings."""
    id: str
    system_prompt: str
    default_top_k: int
    query_prefix: Optional[str] = None
    gated: bool = True  # run the quality gate before generation

    def __post_init__(self) -> None:
        if self.default_top_k <= 0:
            raise ValueError(f"default_top_k must be positive for mode {self.id!r}")

    def search_query(self, query: str) -> str:
        """Query text used for embedding; never shown to the reranker or the model."""
        if not self.query_prefix:
            return query
        return f"{self.query_prefix.strip()} {query}"
