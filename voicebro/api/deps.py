"""Lookups shared by the REST routes and the WebSocket endpoint."""

from fastapi import Request

from voicebro.core.exceptions import VoiceBroError
from voicebro.services.session import SessionStateMachine


def get_state_machine(request: Request) -> SessionStateMachine:
    """Return the session state machine created in the app lifespan."""
    machine = getattr(request.app.state, "session", None)
    if machine is None:
        raise VoiceBroError(
            detail="Session is not running",
            code="SESSION_UNAVAILABLE",
            status_code=503,
        )
    return machine
