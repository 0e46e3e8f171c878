"""Error taxonomy shared by services and adapters."""


class LegacyLensError(Exception):
    """Base class for errors raised by legacylens."""


class ValidationError(LegacyLensError):
    """Request input rejected before any collaborator call."""


class UpstreamServiceError(LegacyLensError):
    """Embedding, vector index or generation call failed."""

    def __init__(self, service: str, message: str):
        super().__init__(f"{service}: {message}")
        self.service = service


class RerankParseError(LegacyLensError):
    """Grading response was not a list of {index, score} pairs."""
