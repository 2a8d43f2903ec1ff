"""
Session REST endpoints.

Thin command surface over the session state machine: every endpoint either
reads the current snapshot or enqueues one transition. Commands answer with
the snapshot as it was when the command was accepted; clients follow the
outcome over ``/ws/session``.
"""

from fastapi import APIRouter, Request

from voicebro.api.deps import get_state_machine
from voicebro.core.catalog import STAGE_LABELS
from voicebro.core.models import SessionSnapshot, TranscriptSubmit
from voicebro.core.utils import format_elapsed

router = APIRouter(prefix="/session", tags=["session"])


def snapshot_payload(snapshot: SessionSnapshot) -> dict:
    """Serialize a snapshot with display helpers for clients."""
    data = snapshot.model_dump(mode="json")
    data["stage_label"] = STAGE_LABELS[snapshot.stage_index]
    data["elapsed_display"] = format_elapsed(snapshot.elapsed_seconds)
    return data


@router.get("")
async def get_session_state(request: Request) -> dict:
    """Return the current session snapshot."""
    return snapshot_payload(get_state_machine(request).snapshot)


@router.post("/capture/start", status_code=202)
async def start_capture(request: Request) -> dict:
    """Open the microphone session (audio is streamed over the WebSocket)."""
    machine = get_state_machine(request)
    machine.start_capture()
    return snapshot_payload(machine.snapshot)


@router.post("/capture/stop", status_code=202)
async def stop_capture(request: Request) -> dict:
    """Stop recording and submit whatever was captured for analysis."""
    machine = get_state_machine(request)
    machine.stop_capture()
    return snapshot_payload(machine.snapshot)


@router.post("/transcript", status_code=202)
async def submit_transcript(body: TranscriptSubmit, request: Request) -> dict:
    """Analyze a typed transcript as if it had just been captured."""
    machine = get_state_machine(request)
    machine.submit_transcript(body.text)
    return snapshot_payload(machine.snapshot)


@router.post("/reset", status_code=202)
async def reset_session(request: Request) -> dict:
    """Discard the current note and return to the capture screen."""
    machine = get_state_machine(request)
    machine.reset()
    return snapshot_payload(machine.snapshot)


@router.delete("/error", status_code=202)
async def dismiss_error(request: Request) -> dict:
    """Hide the error banner; transcript and stage are kept."""
    machine = get_state_machine(request)
    machine.dismiss_error()
    return snapshot_payload(machine.snapshot)
