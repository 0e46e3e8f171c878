"""LLM protocol for dependency injection."""
from typing import AsyncIterator, Optional, Protocol, runtime_checkable


@runtime_checkable
class LLMProtocol(Protocol):
    """Protocol for LLM client."""

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: Optional[float] = None,
        json_mode: bool = False,
    ) -> str:
        """Return the full completion text.

        Args:
            system_prompt: System instruction.
            user_prompt: User message.
            temperature: Override sampling temperature.
            json_mode: Ask for a JSON object response.

        Returns:
            Completion text.
        """
        ...

    def stream(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: Optional[float] = None,
    ) -> AsyncIterator[str]:
        """Stream completion text deltas.

        Closing the iterator must release the upstream stream.

        Args:
            system_prompt: System instruction.
            user_prompt: User message.
            temperature: Override sampling temperature.

        Yields:
            Response tokens.
        """
        ...
