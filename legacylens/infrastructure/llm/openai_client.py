import logging
from typing import AsyncIterator, Optional

from openai import AsyncOpenAI, OpenAIError

from legacylens.core.errors import UpstreamServiceError

logger = logging.getLogger(__name__)


class OpenAIChatClient:
    """LLM client for OpenAI-compatible chat APIs (OpenAI, Ollama, vLLM)."""

    def __init__(
        self,
        base_url: str = "http://localhost:11434/v1",
        api_key: str = "ollama",
        model: str = "qwen2.5:7b",
        max_tokens: int = 1024,
        temperature: float = 0.2,
    ):
        """Initialize chat client.

        Args:
            base_url: API URL.
            api_key: API key (any value for Ollama).
            model: Model name.
            max_tokens: Max response tokens.
            temperature: Default sampling temperature.
        """
        self._client = AsyncOpenAI(base_url=base_url, api_key=api_key)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    def _params(
        self, system_prompt: str, user_prompt: str, temperature: Optional[float]
    ) -> dict:
        return {
            "model": self._model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": self._max_tokens,
            "temperature": self._temperature if temperature is None else temperature,
        }

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
            Completion text, stripped.
        """
        params = self._params(system_prompt, user_prompt, temperature)
        if json_mode:
            params["response_format"] = {"type": "json_object"}

        try:
            response = await self._client.chat.completions.create(**params)
        except OpenAIError as e:
            raise UpstreamServiceError("generation", str(e)) from e

        if not response.choices:
            logger.warning("Empty response from LLM API")
            return ""
        return (response.choices[0].message.content or "").strip()

    async def stream(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        temperature: Optional[float] = None,
    ) -> AsyncIterator[str]:
        """Stream completion text deltas.

        Args:
            system_prompt: System instruction.
            user_prompt: User message.
            temperature: Override sampling temperature.

        Yields:
            Response tokens.
        """
        try:
            response = await self._client.chat.completions.create(
                **self._params(system_prompt, user_prompt, temperature), stream=True
            )
        except OpenAIError as e:
            raise UpstreamServiceError("generation", str(e)) from e

        try:
            async for chunk in response:
                if chunk.choices and chunk.choices[0].delta.content:
                    yield chunk.choices[0].delta.content
        except OpenAIError as e:
            logger.error(f"Stream error: {e}")
            raise UpstreamServiceError("generation", str(e)) from e
        finally:
            await response.close()
