"""
Ollama LLM provider implementation.

Uses the Ollama Python SDK (``ollama.AsyncClient``) to interact with a
locally running Ollama server.
"""

import logging

from ollama import AsyncClient, ResponseError
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from voicebro.core.config import get_settings
from voicebro.services.llm.base import BaseLLM

logger = logging.getLogger(__name__)


class OllamaLLM(BaseLLM):
    """Ollama local LLM provider.

    Connects to a locally running Ollama server via its REST API. Transient
    connection failures are retried only when ``max_attempts`` is above 1.
    """

    def __init__(
        self,
        base_url: str | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_attempts: int | None = None,
    ) -> None:
        """Initialize the Ollama LLM provider.

        Args:
            base_url: Ollama server URL (falls back to settings if not provided).
            model: Model name to use (e.g. "llama3.2").
            temperature: Sampling temperature for text generation (0.0–1.0).
            max_attempts: Transport attempts per request (settings default).
        """
        settings = get_settings()
        self._base_url = base_url or settings.ollama_base_url
        self._model = model or settings.ollama_model
        self._temperature = temperature
        self._max_attempts = max_attempts or settings.llm_max_attempts
        self._client = AsyncClient(host=self._base_url)

    async def _call_api(
        self,
        messages: list[dict[str, str]],
        temperature: float | None = None,
    ) -> str:
        """Send a chat request to the Ollama server.

        Translates SDK-specific exceptions to standard Python exceptions.
        """
        try:
            response = await self._client.chat(
                model=self._model,
                messages=messages,
                format="json",
                options={
                    "temperature": temperature if temperature is not None else self._temperature
                },
            )
            return response.message.content

        except ConnectionError as exc:
            logger.warning("Ollama connection error (%s): %s", self._base_url, exc)
            raise ConnectionError(
                f"Failed to connect to Ollama at {self._base_url}: {exc}"
            ) from exc
        except TimeoutError as exc:
            logger.warning("Ollama timeout (%s): %s", self._base_url, exc)
            raise TimeoutError(f"Ollama request timed out ({self._base_url}): {exc}") from exc
        except ResponseError as exc:
            logger.error("Ollama response error: %s", exc)
            raise RuntimeError(f"Ollama error: {exc}") from exc
        except Exception as exc:
            logger.error("Unexpected Ollama error: %s", exc)
            raise RuntimeError(f"Ollama error: {exc}") from exc

    async def generate(self, prompt: str, **kwargs) -> str:
        """Generate a free-form text response."""
        messages: list[dict[str, str]] = []
        system = kwargs.pop("system", None)
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        temperature = kwargs.pop("temperature", None)
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=1, min=1, max=16),
            retry=retry_if_exception_type((ConnectionError, TimeoutError)),
            reraise=True,
        ):
            with attempt:
                return await self._call_api(messages=messages, temperature=temperature)
        raise RuntimeError("Ollama returned no response")  # pragma: no cover
