"""Unit tests for OllamaLLM provider."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest
from ollama import ResponseError

from voicebro.services.llm.ollama import OllamaLLM

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_chat_response(text: str):
    """Build a minimal object that looks like ``ollama.ChatResponse``."""
    message = SimpleNamespace(content=text)
    return SimpleNamespace(message=message)


def _mock_settings(**overrides):
    """Return a fake Settings object with sensible defaults."""
    defaults = {
        "ollama_base_url": "http://localhost:11434",
        "ollama_model": "llama3.2",
        "llm_max_attempts": 1,
    }
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_client():
    """Return an ``AsyncMock`` mimicking ``ollama.AsyncClient``."""
    client = AsyncMock()
    client.chat = AsyncMock(return_value=_make_chat_response('{"synthesizer": "x"}'))
    return client


@pytest.fixture
def llm(mock_client):
    """Create an OllamaLLM with a mocked Ollama client."""
    with patch("voicebro.services.llm.ollama.get_settings", return_value=_mock_settings()):
        with patch("voicebro.services.llm.ollama.AsyncClient", return_value=mock_client):
            instance = OllamaLLM()
    return instance


# ---------------------------------------------------------------------------
# TestOllamaLLMInit
# ---------------------------------------------------------------------------


class TestOllamaLLMInit:
    """Constructor / settings tests."""

    def test_defaults_from_settings(self):
        settings = _mock_settings()
        with patch("voicebro.services.llm.ollama.get_settings", return_value=settings):
            with patch("voicebro.services.llm.ollama.AsyncClient") as mock_cls:
                llm = OllamaLLM()

        assert llm._base_url == "http://localhost:11434"
        assert llm._model == "llama3.2"
        mock_cls.assert_called_once_with(host="http://localhost:11434")

    def test_explicit_args_override_settings(self):
        settings = _mock_settings()
        with patch("voicebro.services.llm.ollama.get_settings", return_value=settings):
            with patch("voicebro.services.llm.ollama.AsyncClient"):
                llm = OllamaLLM(
                    base_url="http://remote:11434",
                    model="mistral",
                    temperature=0.2,
                )

        assert llm._base_url == "http://remote:11434"
        assert llm._model == "mistral"
        assert llm._temperature == 0.2


# ---------------------------------------------------------------------------
# TestGenerate
# ---------------------------------------------------------------------------


class TestGenerate:
    """Tests for ``generate()``."""

    async def test_returns_text(self, llm, mock_client):
        mock_client.chat.return_value = _make_chat_response("Hello world")

        result = await llm.generate("Say hello")

        assert result == "Hello world"

    async def test_system_message_first(self, llm, mock_client):
        await llm.generate("user prompt", system="Be helpful")

        messages = mock_client.chat.call_args.kwargs["messages"]
        assert messages[0] == {"role": "system", "content": "Be helpful"}
        assert messages[1] == {"role": "user", "content": "user prompt"}

    async def test_requests_json_format(self, llm, mock_client):
        await llm.generate("prompt", temperature=0.3)

        call_kwargs = mock_client.chat.call_args.kwargs
        assert call_kwargs["format"] == "json"
        assert call_kwargs["options"]["temperature"] == 0.3
        assert call_kwargs["model"] == "llama3.2"


# ---------------------------------------------------------------------------
# TestErrorHandling
# ---------------------------------------------------------------------------


class TestErrorHandling:
    """Tests for exception translation."""

    async def test_connection_error(self, llm, mock_client):
        mock_client.chat.side_effect = ConnectionError("refused")

        with pytest.raises(ConnectionError, match="Failed to connect to Ollama"):
            await llm.generate("prompt")
        assert mock_client.chat.await_count == 1

    async def test_timeout_error(self, llm, mock_client):
        mock_client.chat.side_effect = TimeoutError("slow")

        with pytest.raises(TimeoutError, match="timed out"):
            await llm.generate("prompt")

    async def test_response_error(self, llm, mock_client):
        mock_client.chat.side_effect = ResponseError("model not found")

        with pytest.raises(RuntimeError, match="Ollama error"):
            await llm.generate("prompt")
