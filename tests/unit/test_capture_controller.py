"""Tests for CaptureController (fake recognition engine, no audio)."""

import asyncio

import pytest

from voicebro.core.exceptions import (
    CaptureAlreadyActiveError,
    CaptureError,
    UnsupportedCapabilityError,
)
from voicebro.core.models import CaptureErrorReason
from voicebro.services.capture.controller import CaptureController

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


class Recorder:
    """Collects controller callbacks."""

    def __init__(self) -> None:
        self.transcripts: list[str] = []
        self.errors: list[CaptureError] = []
        self.empties = 0
        self.changes = 0

    def on_empty(self) -> None:
        self.empties += 1

    def on_change(self) -> None:
        self.changes += 1


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def controller(engine_factory, recorder):
    instance = CaptureController(
        engine_factory,
        on_transcript=recorder.transcripts.append,
        on_empty=recorder.on_empty,
        on_error=recorder.errors.append,
        on_change=recorder.on_change,
        language="de-DE",
        tick_interval=0.01,
    )
    yield instance
    instance.close()


# ---------------------------------------------------------------------------
# TestStart
# ---------------------------------------------------------------------------


class TestStart:
    """Opening a session."""

    def test_unsupported_without_engine(self):
        controller = CaptureController(None)

        assert controller.supported is False
        with pytest.raises(UnsupportedCapabilityError):
            controller.start()

    async def test_configures_engine(self, controller, engine_factory, recorder):
        controller.start()

        engine = engine_factory.last
        assert engine.continuous is True
        assert engine.interim_results is True
        assert engine.lang == "de-DE"
        assert engine.start_count == 1
        assert controller.running is True
        assert recorder.changes >= 1

    async def test_second_start_rejected(self, controller, engine_factory):
        controller.start()

        with pytest.raises(CaptureAlreadyActiveError):
            controller.start()
        assert len(engine_factory.engines) == 1

    async def test_engine_start_failure(self, controller, engine_factory):
        engine_factory.fail_start = True

        with pytest.raises(CaptureError) as exc_info:
            controller.start()

        assert exc_info.value.reason is CaptureErrorReason.other
        assert exc_info.value.engine_code == "start-failed"
        assert controller.running is False

    async def test_start_resets_previous_session(self, controller, engine_factory):
        controller.start()
        engine_factory.last.emit_result(["old words"])
        controller.stop()

        controller.start()

        assert controller.transcript == ""
        assert controller.elapsed_seconds == 0


# ---------------------------------------------------------------------------
# TestResults
# ---------------------------------------------------------------------------


class TestResults:
    """Result events replace the transcript."""

    async def test_result_replaces_transcript(self, controller, engine_factory):
        controller.start()
        engine = engine_factory.last

        engine.emit_result(["Hello"])
        assert controller.transcript == "Hello"

        engine.emit_result(["Hello", " world"])
        assert controller.transcript == "Hello world"

        engine.emit_result(["Bye"])
        assert controller.transcript == "Bye"

    async def test_events_from_closed_engine_ignored(self, controller, engine_factory, recorder):
        controller.start()
        old = engine_factory.last
        controller.stop()
        controller.start()

        old.emit_result(["stale"])
        old.emit_error("network")

        assert controller.transcript == ""
        assert recorder.errors == []
        assert controller.running is True


# ---------------------------------------------------------------------------
# TestStop
# ---------------------------------------------------------------------------


class TestStop:
    """Explicit stop hands over the trimmed transcript."""

    async def test_stop_emits_trimmed_transcript(self, controller, engine_factory, recorder):
        controller.start()
        engine = engine_factory.last
        engine.emit_result(["  Hello world  "])

        controller.stop()

        assert recorder.transcripts == ["Hello world"]
        assert controller.running is False
        assert engine.stop_count == 1
        assert engine.start_count == 1

    @pytest.mark.parametrize("segments", [[], ["   "], ["", " \n"]])
    async def test_stop_with_nothing_captured(self, controller, engine_factory, recorder, segments):
        controller.start()
        if segments:
            engine_factory.last.emit_result(segments)

        controller.stop()

        assert recorder.transcripts == []
        assert recorder.empties == 1

    async def test_close_is_silent_and_idempotent(self, controller, engine_factory, recorder):
        controller.start()
        engine = engine_factory.last
        engine.emit_result(["unsent"])

        controller.close()
        controller.close()

        assert recorder.transcripts == []
        assert recorder.errors == []
        assert engine.abort_count == 1
        assert controller.running is False

    async def test_waits_for_results_delivered_after_stop(
        self, controller, engine_factory, recorder
    ):
        controller.start()
        engine = engine_factory.last
        engine.emit_result(["Hello"])
        engine.tail = ["Hello", " world"]

        controller.stop()

        assert controller.running is False
        assert controller.stopping is True
        assert recorder.transcripts == []

        await asyncio.sleep(0.01)

        assert recorder.transcripts == ["Hello world"]
        assert recorder.empties == 0
        assert controller.stopping is False

    async def test_short_note_recognized_only_at_stop(self, controller, engine_factory, recorder):
        controller.start()
        engine_factory.last.tail = ["Short note"]

        controller.stop()
        await asyncio.sleep(0.01)

        assert recorder.transcripts == ["Short note"]
        assert recorder.empties == 0

    async def test_close_while_stopping_drops_tail(self, controller, engine_factory, recorder):
        controller.start()
        engine = engine_factory.last
        engine.tail = ["too late"]
        controller.stop()

        controller.close()
        await asyncio.sleep(0.01)

        assert recorder.transcripts == []
        assert recorder.empties == 0
        assert engine.abort_count == 1
        assert controller.transcript == ""

    async def test_start_while_stopping_rejected(self, controller, engine_factory):
        controller.start()
        engine_factory.last.tail = ["pending"]
        controller.stop()

        with pytest.raises(CaptureAlreadyActiveError):
            controller.start()

    async def test_stop_when_idle_does_nothing(self, controller, recorder):
        controller.stop()

        assert recorder.transcripts == []
        assert recorder.empties == 0


# ---------------------------------------------------------------------------
# TestAutoRestart
# ---------------------------------------------------------------------------


class TestAutoRestart:
    """Unexpected ends reopen the engine while recording."""

    async def test_reopens_after_unexpected_end(self, controller, engine_factory):
        controller.start()
        engine = engine_factory.last

        engine.drop()

        assert engine.start_count == 2
        assert controller.running is True
        assert controller.restart_count == 1

    async def test_reopen_failure_is_swallowed(self, controller, engine_factory, recorder):
        controller.start()
        engine = engine_factory.last
        engine.emit_result(["kept"])
        engine.fail_start = True

        engine.drop()

        assert controller.running is True
        assert controller.restart_count == 1
        assert recorder.errors == []

        controller.stop()

        assert recorder.transcripts == ["kept"]
        assert engine.stop_count == 0

    async def test_restart_count_is_read_only(self, controller, engine_factory):
        controller.start()
        engine_factory.last.drop()

        with pytest.raises(AttributeError):
            controller.restart_count = 0
        assert controller.restart_count == 1

    async def test_no_reopen_after_stop(self, controller, engine_factory):
        controller.start()
        engine = engine_factory.last

        controller.stop()
        engine.drop()

        assert engine.start_count == 1
        assert controller.restart_count == 0


# ---------------------------------------------------------------------------
# TestErrors
# ---------------------------------------------------------------------------


class TestErrors:
    """Engine errors force-stop the session."""

    async def test_error_stops_without_reopen(self, controller, engine_factory, recorder):
        controller.start()
        engine = engine_factory.last
        engine.emit_result(["Hi"])

        engine.emit_error("not-allowed")

        assert controller.running is False
        assert engine.abort_count == 1
        assert engine.start_count == 1
        assert recorder.transcripts == []
        assert len(recorder.errors) == 1
        error = recorder.errors[0]
        assert error.reason is CaptureErrorReason.permission_denied
        assert error.detail == "Microphone access denied. Please enable microphone permissions."

    async def test_unknown_code_maps_to_other(self, controller, engine_factory, recorder):
        controller.start()

        engine_factory.last.emit_error("bad-grammar")

        error = recorder.errors[0]
        assert error.reason is CaptureErrorReason.other
        assert error.detail == "Speech recognition error: bad-grammar"


# ---------------------------------------------------------------------------
# TestTicker
# ---------------------------------------------------------------------------


class TestTicker:
    """Elapsed counter runs only while recording."""

    async def test_elapsed_ticks_while_running(self, controller):
        controller.start()
        await asyncio.sleep(0.06)

        assert controller.elapsed_seconds >= 2

    async def test_elapsed_freezes_after_stop(self, controller):
        controller.start()
        await asyncio.sleep(0.03)
        controller.stop()
        frozen = controller.elapsed_seconds

        await asyncio.sleep(0.03)

        assert controller.elapsed_seconds == frozen

    async def test_feed_only_while_running(self, controller, engine_factory):
        controller.feed(b"\x00")
        controller.start()
        engine = engine_factory.last

        controller.feed(b"\x01\x02")
        controller.stop()
        controller.feed(b"\x03")

        assert engine.fed == [b"\x01\x02"]
