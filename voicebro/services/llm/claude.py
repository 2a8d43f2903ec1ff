"""
Claude LLM provider implementation.

Uses the Anthropic Python SDK (``anthropic.AsyncAnthropic``) to interact with
the Claude API.  A semaphore caps concurrent requests; the number of transport
attempts comes from ``llm_max_attempts`` (1 means a single shot).
"""

import asyncio
import logging

from anthropic import (
    APIConnectionError,
    APITimeoutError,
    AsyncAnthropic,
    RateLimitError,
)
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from voicebro.core.config import get_settings
from voicebro.services.llm.base import BaseLLM

logger = logging.getLogger(__name__)


class ClaudeLLM(BaseLLM):
    """Claude API LLM provider with a concurrency semaphore."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int = 2048,
        temperature: float = 0.7,
        max_concurrent: int = 5,
        max_attempts: int | None = None,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key or settings.claude_api_key
        self._model = model or settings.claude_model
        self._max_tokens = max_tokens
        self._temperature = temperature
        self._max_attempts = max_attempts or settings.llm_max_attempts
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._client = AsyncAnthropic(api_key=self._api_key)

    async def _call_api(
        self,
        user_prompt: str,
        system: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Send a request to Claude, respecting the concurrency semaphore.

        All SDK exceptions are translated to standard Python exceptions so that
        callers only deal with ``ConnectionError`` / ``TimeoutError`` /
        ``RuntimeError``.
        """
        async with self._semaphore:
            try:
                kwargs: dict = {
                    "model": self._model,
                    "max_tokens": max_tokens or self._max_tokens,
                    "temperature": temperature if temperature is not None else self._temperature,
                    "messages": [{"role": "user", "content": user_prompt}],
                }
                if system:
                    kwargs["system"] = system

                response = await self._client.messages.create(**kwargs)
                return response.content[0].text

            except APITimeoutError as exc:
                logger.warning("Claude API timeout: %s", exc)
                raise TimeoutError(f"Claude API request timed out: {exc}") from exc
            except APIConnectionError as exc:
                logger.warning("Claude API connection error: %s", exc)
                raise ConnectionError(f"Failed to connect to Claude API: {exc}") from exc
            except RateLimitError as exc:
                logger.warning("Claude API rate limit hit: %s", exc)
                raise ConnectionError(f"Claude API rate limit exceeded: {exc}") from exc
            except Exception as exc:
                logger.error("Unexpected Claude API error: %s", exc)
                raise RuntimeError(f"Claude API error: {exc}") from exc

    async def generate(self, prompt: str, **kwargs) -> str:
        """Generate a free-form text response."""
        system = kwargs.pop("system", None)
        temperature = kwargs.pop("temperature", None)
        max_tokens = kwargs.pop("max_tokens", None)
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=16),
            retry=retry_if_exception_type((ConnectionError, TimeoutError)),
            reraise=True,
        ):
            with attempt:
                return await self._call_api(
                    user_prompt=prompt,
                    system=system,
                    temperature=temperature,
                    max_tokens=max_tokens,
                )
        raise RuntimeError("Claude API returned no response")  # pragma: no cover
