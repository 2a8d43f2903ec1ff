"""WebSocket endpoint for live session updates and audio streaming.

The server pushes a ``snapshot`` message on connect and after every session
change. The client streams raw PCM audio (16-bit, 16 kHz, mono) as binary
frames while recording, and may send JSON commands as text frames:
``{"action": "start" | "stop" | "reset" | "dismiss"}`` or
``{"action": "transcript", "text": "..."}``.
"""

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from voicebro.api.routes.session import snapshot_payload
from voicebro.core.exceptions import VoiceBroError
from voicebro.core.models import SessionSnapshot, WebSocketMessage, WebSocketMessageType
from voicebro.services.session import SessionStateMachine

logger = logging.getLogger(__name__)

router = APIRouter()


def _dispatch(machine: SessionStateMachine, command: dict) -> None:
    """Run one client command against the state machine."""
    action = command.get("action")
    if action == "start":
        machine.start_capture()
    elif action == "stop":
        machine.stop_capture()
    elif action == "transcript":
        machine.submit_transcript(str(command.get("text", "")))
    elif action == "reset":
        machine.reset()
    elif action == "dismiss":
        machine.dismiss_error()
    else:
        raise VoiceBroError(
            detail=f"Unknown action: {action}", code="UNKNOWN_ACTION", status_code=400
        )


@router.websocket("/ws/session")
async def session_ws(websocket: WebSocket) -> None:
    """Live session channel.

    Protocol:
        - Server sends: JSON ``WebSocketMessage`` objects (snapshot, error).
        - Client sends: binary PCM audio frames and JSON text commands.
    """
    machine: SessionStateMachine = websocket.app.state.session
    await websocket.accept()
    logger.info("WebSocket connected")

    async def send_snapshot(snapshot: SessionSnapshot) -> None:
        msg = WebSocketMessage(
            type=WebSocketMessageType.snapshot,
            data=snapshot_payload(snapshot),
        )
        await websocket.send_json(msg.model_dump(mode="json"))

    unsubscribe = machine.subscribe(send_snapshot, replay=True)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            if message.get("bytes") is not None:
                machine.feed_audio(message["bytes"])
                continue

            try:
                _dispatch(machine, json.loads(message.get("text") or "{}"))
            except (json.JSONDecodeError, AttributeError):
                await websocket.send_json(
                    WebSocketMessage(
                        type=WebSocketMessageType.error,
                        data={"detail": "Malformed command"},
                    ).model_dump(mode="json")
                )
            except VoiceBroError as exc:
                await websocket.send_json(
                    WebSocketMessage(
                        type=WebSocketMessageType.error,
                        data={"detail": exc.detail, "code": exc.code},
                    ).model_dump(mode="json")
                )
    except WebSocketDisconnect:
        pass
    finally:
        unsubscribe()
        logger.info("WebSocket disconnected")
