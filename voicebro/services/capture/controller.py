"""Supervisor for a single continuous speech-recognition session.

The controller owns at most one open engine at a time. While the user
intends to keep recording it reopens the engine whenever it ends on its own
(long dictations get dropped by engines now and then); an explicit stop or
an engine error ends the session for good.

Results are never merged: every result event replaces the running
transcript with the concatenation of the segments it carries.

Stopping is two-phase. ``stop()`` ends recording right away, but the engine
stays attached until it reports its end, so results it still delivers for
the tail of the audio count. Only then is the transcript handed over.

Usage::

    controller = CaptureController(engine_factory, on_transcript=..., on_empty=...)
    controller.start()
    controller.feed(pcm_bytes)
    controller.stop()
"""

import asyncio
import logging
from collections.abc import Callable

from voicebro.core.exceptions import (
    CaptureAlreadyActiveError,
    CaptureError,
    UnsupportedCapabilityError,
)
from voicebro.core.models import CaptureErrorReason
from voicebro.services.capture.base import BaseRecognitionEngine

logger = logging.getLogger(__name__)


class CaptureController:
    """Manages one continuous recognition session.

    Args:
        engine_factory: Builds a fresh engine, or None when the platform
            has no recognition capability.
        on_transcript: Called with the trimmed transcript when a stop
            finishes with something captured.
        on_empty: Called when a stop finishes with nothing captured.
        on_error: Called with a :class:`CaptureError` after the controller
            force-stopped because the engine failed.
        on_change: Called whenever the transcript, the elapsed counter or
            the running flag changes (display only).
        language: Language tag handed to the engine.
        tick_interval: Seconds per elapsed-counter tick.
    """

    def __init__(
        self,
        engine_factory: Callable[[], BaseRecognitionEngine] | None,
        on_transcript: Callable[[str], None] | None = None,
        on_empty: Callable[[], None] | None = None,
        on_error: Callable[[CaptureError], None] | None = None,
        on_change: Callable[[], None] | None = None,
        language: str = "en-US",
        tick_interval: float = 1.0,
    ) -> None:
        self._engine_factory = engine_factory
        self._on_transcript = on_transcript
        self._on_empty = on_empty
        self._on_error = on_error
        self._on_change = on_change
        self._language = language
        self._tick_interval = tick_interval
        self._engine: BaseRecognitionEngine | None = None
        self._engine_open = False
        self._ticker: asyncio.Task | None = None
        self._running = False
        self._transcript = ""
        self._elapsed = 0
        self._restarts = 0

    @property
    def supported(self) -> bool:
        return self._engine_factory is not None

    @property
    def running(self) -> bool:
        return self._running

    @property
    def stopping(self) -> bool:
        """True between ``stop()`` and the engine reporting its end."""
        return self._engine is not None and not self._running

    @property
    def transcript(self) -> str:
        return self._transcript

    @property
    def elapsed_seconds(self) -> int:
        return self._elapsed

    @property
    def restart_count(self) -> int:
        return self._restarts

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Open a capture session and begin continuous recognition.

        Raises:
            UnsupportedCapabilityError: No recognition engine is available.
            CaptureAlreadyActiveError: A session is open or still finishing.
            CaptureError: The engine refused to start.
        """
        if self._engine_factory is None:
            raise UnsupportedCapabilityError()
        if self._engine is not None:
            raise CaptureAlreadyActiveError()

        engine = self._engine_factory()
        engine.continuous = True
        engine.interim_results = True
        engine.lang = self._language
        engine.on_result = lambda segments: self._handle_result(engine, segments)
        engine.on_error = lambda code: self._handle_error(engine, code)
        engine.on_end = lambda: self._handle_end(engine)

        self._transcript = ""
        self._elapsed = 0
        self._restarts = 0

        try:
            engine.start()
        except Exception as exc:
            logger.warning("Recognition engine failed to start: %s", exc)
            raise CaptureError(CaptureErrorReason.other, engine_code="start-failed") from exc

        self._engine = engine
        self._engine_open = True
        self._running = True
        self._ticker = asyncio.get_running_loop().create_task(self._tick_loop())
        logger.info("Capture session opened (lang=%s)", self._language)
        self._changed()

    def stop(self) -> None:
        """Stop recording and let the engine deliver its last results.

        The captured text goes to ``on_transcript`` (or ``on_empty``) once
        the engine has ended. Does nothing when not recording.
        """
        engine = self._engine
        if engine is None or not self._running:
            return
        self._running = False
        self._cancel_ticker()
        self._changed()

        if not self._engine_open:
            # A failed reopen left nothing to wait for
            self._finish_stop(engine)
            return
        try:
            engine.stop()
        except Exception as exc:
            logger.warning("Recognition engine failed to stop cleanly: %s", exc)
            self._finish_stop(engine)

    def feed(self, pcm: bytes) -> None:
        """Forward audio to the open engine (dropped when not recording)."""
        if self._engine is not None and self._running:
            self._engine.feed(pcm)

    def close(self) -> None:
        """Release the session without emitting anything (idempotent)."""
        engine = self._release()
        if engine is not None:
            logger.debug("Releasing capture session")
            self._abort(engine)

    # ------------------------------------------------------------------
    # Engine callbacks
    # ------------------------------------------------------------------

    def _handle_result(self, engine: BaseRecognitionEngine, segments: list[str]) -> None:
        if engine is not self._engine:
            return
        self._transcript = "".join(segments)
        self._changed()

    def _handle_error(self, engine: BaseRecognitionEngine, code: str) -> None:
        if engine is not self._engine:
            return
        error = CaptureError.from_engine_code(code)
        logger.warning("Capture failed (%s): %s", code, error.detail)
        self._release()
        self._abort(engine)
        if self._on_error is not None:
            self._on_error(error)

    def _handle_end(self, engine: BaseRecognitionEngine) -> None:
        if engine is not self._engine:
            return
        self._engine_open = False
        if not self._running:
            self._finish_stop(engine)
            return

        # The engine dropped the session on its own: reopen it
        self._restarts += 1
        logger.info("Recognition ended unexpectedly; reopening (attempt %d)", self._restarts)
        try:
            engine.start()
        except Exception as exc:
            logger.warning("Recognition restart failed: %s", exc)
        else:
            self._engine_open = True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _finish_stop(self, engine: BaseRecognitionEngine) -> None:
        """Detach the stopped engine and hand over what was captured."""
        if engine is not self._engine:
            return
        self._engine = None
        self._engine_open = False

        text = self._transcript.strip()
        if not text:
            logger.info("Capture stopped with an empty transcript")
            if self._on_empty is not None:
                self._on_empty()
            return
        logger.info("Capture stopped with %d characters", len(text))
        if self._on_transcript is not None:
            self._on_transcript(text)

    def _release(self) -> BaseRecognitionEngine | None:
        """Mark the session closed and return the engine that was attached."""
        self._running = False
        self._engine_open = False
        engine, self._engine = self._engine, None
        self._cancel_ticker()
        return engine

    def _cancel_ticker(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None

    @staticmethod
    def _abort(engine: BaseRecognitionEngine) -> None:
        try:
            engine.abort()
        except Exception as exc:
            logger.warning("Recognition engine failed to abort: %s", exc)

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self._tick_interval)
            self._elapsed += 1
            self._changed()

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()
