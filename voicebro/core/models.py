"""
Pydantic v2 models shared by the session core and the API layer.

Session — Screen, SessionSnapshot, AnalysisResult, CaptureErrorReason
API     — Health, TranscriptSubmit, Insight, Perspective, Stage, WebSocket
"""

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """GET /health response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: datetime


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class Screen(StrEnum):
    """The three screens a session moves through."""

    capturing = "capturing"
    analyzing = "analyzing"
    presenting = "presenting"


class CaptureErrorReason(StrEnum):
    """Normalized reasons a recognition engine can fail with."""

    permission_denied = "permission_denied"
    no_speech = "no_speech"
    no_microphone = "no_microphone"
    network = "network"
    aborted = "aborted"
    other = "other"


class AnalysisResult(BaseModel):
    """The six perspective commentaries for one transcript."""

    model_config = ConfigDict(frozen=True)

    synthesizer: str
    connector: str
    challenger: str
    explorer: str
    implementer: str
    integrator: str


class SessionSnapshot(BaseModel):
    """Immutable view of the session at one point in time.

    Only the session state machine builds new snapshots; use :meth:`evolve`
    so the invariants below are re-checked on every transition.
    """

    model_config = ConfigDict(frozen=True)

    screen: Screen = Screen.capturing
    transcript: str = ""
    stage_index: int = Field(default=0, ge=0, le=7)
    analysis: AnalysisResult | None = None
    error: str | None = None
    elapsed_seconds: int = 0
    is_recording: bool = False
    generation: int = 0

    @model_validator(mode="after")
    def _check_invariants(self) -> "SessionSnapshot":
        if (self.analysis is not None) != (self.screen is Screen.presenting):
            raise ValueError("analysis must be present exactly on the presenting screen")
        if self.error is not None and self.screen is not Screen.capturing:
            raise ValueError("errors are only shown on the capturing screen")
        return self

    def evolve(self, **changes: Any) -> "SessionSnapshot":
        """Return a validated copy with *changes* applied."""
        return type(self)(**{**dict(self), **changes})


class TranscriptSubmit(BaseModel):
    """POST /session/transcript request body."""

    text: str


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class Perspective(BaseModel):
    """One of the six analytical lenses applied to a transcript."""

    model_config = ConfigDict(frozen=True)

    key: str
    icon: str
    title: str
    description: str
    color: str


class StageResponse(BaseModel):
    """A single milestone of the analysis progress list."""

    index: int
    label: str


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------


class InsightCreate(BaseModel):
    """POST /insights request body (optional fields)."""

    title: str | None = None


class InsightResponse(BaseModel):
    """A saved transcript together with its analysis."""

    id: int
    title: str
    transcript: str
    analysis: AnalysisResult
    created_at: datetime


# ---------------------------------------------------------------------------
# WebSocket
# ---------------------------------------------------------------------------


class WebSocketMessageType(StrEnum):
    """Message types pushed to WebSocket clients."""

    snapshot = "snapshot"
    error = "error"


class WebSocketMessage(BaseModel):
    """Envelope for every JSON frame sent over ``/ws/session``."""

    type: WebSocketMessageType
    data: dict = Field(default_factory=dict)
