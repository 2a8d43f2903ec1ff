"""Shared pytest fixtures for VoiceBro test suite.

Provides fake recognition engines, controllable analyzers, mock LLM
providers and in-memory database helpers used across unit and integration
tests.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from voicebro.core.models import AnalysisResult
from voicebro.services.analysis.base import BaseAnalyzer
from voicebro.services.capture.base import BaseRecognitionEngine

SIX_PERSPECTIVES = {
    "synthesizer": "Three themes keep coming back.",
    "connector": "This echoes systems theory.",
    "challenger": "But is more complexity really better?",
    "explorer": "Imagine a new kind of school.",
    "implementer": "Start with one small experiment this week.",
    "integrator": "Personal and collective change are linked.",
}


# ---------------------------------------------------------------------------
# Recognition engine fakes
# ---------------------------------------------------------------------------


class FakeRecognitionEngine(BaseRecognitionEngine):
    """In-memory engine driven by the test.

    ``emit_result`` / ``emit_error`` / ``drop`` simulate what a real engine
    reports; ``fail_start`` makes the next ``start()`` calls raise. With
    ``tail`` set, ``stop()`` behaves like an engine that still transcribes
    buffered audio: on the next loop step it delivers ``tail`` as a result,
    then ends.
    """

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.active = False
        self.fail_start = False
        self.tail: list[str] | None = None
        self.start_count = 0
        self.stop_count = 0
        self.abort_count = 0
        self.fed: list[bytes] = []

    def start(self) -> None:
        if self.fail_start:
            raise RuntimeError("engine unavailable")
        if self.active:
            raise RuntimeError("already started")
        self.active = True
        self.start_count += 1

    def stop(self) -> None:
        self.stop_count += 1
        self.active = False
        if self.tail is None:
            self._emit_end()
            return
        asyncio.get_running_loop().call_soon(self._flush, list(self.tail))

    def _flush(self, segments: list[str]) -> None:
        self._emit_result(segments)
        self._emit_end()

    def abort(self) -> None:
        self.abort_count += 1
        self.active = False
        self._emit_end()

    def feed(self, pcm: bytes) -> None:
        self.fed.append(pcm)

    # -- test drivers --

    def emit_result(self, segments: list[str]) -> None:
        self._emit_result(segments)

    def emit_error(self, code: str) -> None:
        self._emit_error(code)

    def drop(self) -> None:
        """End the session as if the engine gave up on its own."""
        self.active = False
        self._emit_end()


class EngineFactory:
    """Callable factory that remembers every engine it built."""

    def __init__(self) -> None:
        self.engines: list[FakeRecognitionEngine] = []
        self.fail_start = False

    def __call__(self) -> FakeRecognitionEngine:
        engine = FakeRecognitionEngine()
        engine.fail_start = self.fail_start
        self.engines.append(engine)
        return engine

    @property
    def last(self) -> FakeRecognitionEngine:
        return self.engines[-1]


@pytest.fixture
def engine_factory():
    """Factory producing :class:`FakeRecognitionEngine` instances."""
    return EngineFactory()


# ---------------------------------------------------------------------------
# Analyzer fakes
# ---------------------------------------------------------------------------


class GatedAnalyzer(BaseAnalyzer):
    """Analyzer that answers only once the test calls :meth:`release`."""

    def __init__(self, result: AnalysisResult | None = None) -> None:
        self.result = result or AnalysisResult(**SIX_PERSPECTIVES)
        self.error: Exception | None = None
        self.calls: list[str] = []
        self._gate = asyncio.Event()

    def release(self, error: Exception | None = None) -> None:
        self.error = error
        self._gate.set()

    async def analyze(self, transcript: str) -> AnalysisResult:
        self.calls.append(transcript)
        await self._gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def analysis_result():
    """A complete six-perspective result."""
    return AnalysisResult(**SIX_PERSPECTIVES)


@pytest.fixture
def gated_analyzer():
    return GatedAnalyzer()


# ---------------------------------------------------------------------------
# LLM Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_llm():
    """Create a mock LLM provider for unit testing.

    Returns:
        AsyncMock: A mock implementing the BaseLLM interface whose
        generate response contains all six perspectives.
    """
    import json

    from voicebro.services.llm.base import BaseLLM

    llm = AsyncMock(spec=BaseLLM)
    llm.generate.return_value = json.dumps(SIX_PERSPECTIVES)
    return llm


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine with tables, dispose after test."""
    from sqlalchemy.ext.asyncio import create_async_engine
    from sqlalchemy.pool import StaticPool

    from voicebro.services.storage.database import Base, init_db

    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool
    )
    await init_db(engine)
    assert "insights" in Base.metadata.tables
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Yield an AsyncSession bound to the test engine; rolls back after test."""
    from sqlalchemy.ext.asyncio import async_sessionmaker

    factory = async_sessionmaker(db_engine, expire_on_commit=False)
    async with factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def repository(db_session):
    """Return an InsightRepository bound to the test session."""
    from voicebro.services.storage.repository import InsightRepository

    return InsightRepository(db_session)


@pytest.fixture
def perspectives_payload():
    """A valid analysis answer as a plain dict."""
    return dict(SIX_PERSPECTIVES)
