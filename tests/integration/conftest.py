"""Integration test fixtures for VoiceBro.

Provides an async HTTP client and a sync TestClient (for WebSocket) that use
an in-memory SQLite database and a session state machine with fast pacing.
"""

from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.testclient import TestClient

from voicebro.api.app import create_app
from voicebro.services.analysis.simulated import SimulatedAnalyzer
from voicebro.services.session import SessionStateMachine
from voicebro.services.storage import database


def fast_machine(analyzer=None, engine_factory=None) -> SessionStateMachine:
    """A state machine that walks through the stages in well under a second."""
    return SessionStateMachine(
        analyzer=analyzer or SimulatedAnalyzer(delay=0.01),
        engine_factory=engine_factory,
        stage_interval=0.01,
        settle_delay=0.01,
        elapsed_tick=0.05,
        insights_limit=3,
    )


@pytest.fixture
def app():
    """Create a fresh FastAPI application instance."""
    return create_app()


@pytest.fixture
async def machine():
    """A started fast state machine, closed after the test."""
    instance = fast_machine()
    instance.start()
    yield instance
    await instance.close()


@pytest.fixture
async def async_client(app, db_engine, machine):
    """AsyncClient backed by the in-memory test engine.

    Injects the test engine into the database module and the state machine
    into ``app.state`` (the lifespan does not run under ``ASGITransport``).
    """
    database._engine = db_engine
    database._session_factory = None
    app.state.session = machine
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    database.reset_engine()


@pytest.fixture
def test_client(app, db_engine, engine_factory):
    """Synchronous TestClient for WebSocket tests.

    Runs the real lifespan with the session factory swapped for a fast
    machine recording through fake recognition engines.
    """
    database._engine = db_engine
    database._session_factory = None
    with patch(
        "voicebro.api.app.create_session",
        side_effect=lambda _settings: fast_machine(engine_factory=engine_factory),
    ):
        with TestClient(app) as c:
            yield c
    database.reset_engine()


@pytest.fixture
async def gated_machine(gated_analyzer):
    """A started fast machine whose analysis waits for ``gated_analyzer.release``."""
    instance = fast_machine(analyzer=gated_analyzer)
    instance.start()
    yield instance
    await instance.close()
