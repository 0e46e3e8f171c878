"""Document loader implementations."""
from .source_loader import SourceLoader

__all__ = ["SourceLoader"]
