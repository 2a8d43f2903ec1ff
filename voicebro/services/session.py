"""Session state machine: capture → analysis → presentation.

The machine owns the only writable session state. Capture callbacks,
progress steps, the analysis call and the settle timer never touch it
directly. Each of them puts an *intent* on one queue, and a single
serializer task applies intents in order and publishes a new immutable
:class:`SessionSnapshot` for each change.

While analyzing, two completions race: the cosmetic stage progress and the
real analysis call. Results are revealed only after both finished (an
explicit join on two flags) and a short settle delay has passed. Any move
back to the capturing screen bumps the session generation, so timers and
calls scheduled for the previous attempt turn into no-ops.

Usage::

    session = create_session(get_settings())
    session.start()
    session.submit_transcript("I want to build something meaningful")
    await session.wait_until(lambda s: s.screen is Screen.presenting)
    await session.close()
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from voicebro.core.catalog import TERMINAL_STAGE, TRANSCRIBED_STAGE
from voicebro.core.config import Settings
from voicebro.core.exceptions import (
    AnalysisFailure,
    CaptureError,
    EmptyTranscriptError,
    InvalidTransitionError,
    UnsupportedCapabilityError,
    VoiceBroError,
)
from voicebro.core.models import AnalysisResult, Screen, SessionSnapshot
from voicebro.services.analysis import BaseAnalyzer, create_analyzer
from voicebro.services.capture import (
    CaptureController,
    EngineFactory,
    create_recognition_engine,
)
from voicebro.services.progress import StageProgressDriver
from voicebro.services.storage.database import get_session
from voicebro.services.storage.models_db import Insight
from voicebro.services.storage.repository import InsightRepository

logger = logging.getLogger(__name__)

NO_SPEECH_MESSAGE = EmptyTranscriptError().detail

Listener = Callable[[SessionSnapshot], Awaitable[None] | None]


# ---------------------------------------------------------------------------
# Intents
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TranscriptReady:
    """A capture finished (or text was submitted directly)."""

    text: str


@dataclass(frozen=True)
class StageAdvanced:
    generation: int
    index: int


@dataclass(frozen=True)
class AnalysisSucceeded:
    generation: int
    result: AnalysisResult


@dataclass(frozen=True)
class AnalysisFailed:
    generation: int
    reason: str


@dataclass(frozen=True)
class SettleElapsed:
    generation: int


@dataclass(frozen=True)
class CaptureFailed:
    message: str


@dataclass(frozen=True)
class CaptureProgress:
    """Live capture state mirrored into the snapshot for display."""

    transcript: str
    elapsed_seconds: int
    recording: bool


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class DismissError:
    pass


Intent = (
    TranscriptReady
    | StageAdvanced
    | AnalysisSucceeded
    | AnalysisFailed
    | SettleElapsed
    | CaptureFailed
    | CaptureProgress
    | Reset
    | DismissError
)


@dataclass
class _AnalyzingContext:
    """Join state of one analysis attempt."""

    generation: int
    stages_done: bool = False
    result: AnalysisResult | None = None

    @property
    def ready(self) -> bool:
        return self.stages_done and self.result is not None


class _Subscriber:
    """Hands snapshots to one listener in commit order."""

    def __init__(self, listener: Listener) -> None:
        self.listener = listener
        self._pending: asyncio.Queue[Awaitable[None]] = asyncio.Queue()
        self._task: asyncio.Task | None = None

    def deliver(self, snapshot: SessionSnapshot) -> None:
        try:
            result = self.listener(snapshot)
        except Exception:
            logger.warning("Snapshot listener failed (non-fatal)", exc_info=True)
            return
        if inspect.isawaitable(result):
            self._pending.put_nowait(result)
            if self._task is None:
                self._task = asyncio.create_task(self._drain())

    async def _drain(self) -> None:
        while True:
            pending = await self._pending.get()
            try:
                await pending
            except Exception:
                logger.warning("Snapshot listener failed (non-fatal)", exc_info=True)

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
        while not self._pending.empty():
            pending = self._pending.get_nowait()
            if inspect.iscoroutine(pending):
                pending.close()


# ---------------------------------------------------------------------------
# State machine
# ---------------------------------------------------------------------------


class SessionStateMachine:
    """Coordinates capture, progress pacing and analysis for one user.

    Args:
        analyzer: Turns a transcript into six perspectives.
        engine_factory: Recognition capability, or None if unavailable.
        language: Language tag for the recognition engine.
        stage_interval: Seconds between two stage increments.
        settle_delay: Pause between the join and the presenting screen.
        elapsed_tick: Resolution of the recording timer.
        insights_limit: Number of saved insights kept.
    """

    def __init__(
        self,
        analyzer: BaseAnalyzer,
        engine_factory: EngineFactory | None = None,
        language: str = "en-US",
        stage_interval: float = 1.5,
        settle_delay: float = 1.0,
        elapsed_tick: float = 1.0,
        insights_limit: int = 50,
    ) -> None:
        self._analyzer = analyzer
        self._settle_delay = settle_delay
        self._insights_limit = insights_limit
        self._capture = CaptureController(
            engine_factory,
            on_transcript=self._on_capture_transcript,
            on_empty=self._on_capture_empty,
            on_error=self._on_capture_error,
            on_change=self._on_capture_change,
            language=language,
            tick_interval=elapsed_tick,
        )
        self._driver = StageProgressDriver(self._on_stage_step, interval=stage_interval)

        self._snapshot = SessionSnapshot()
        self._queue: asyncio.Queue[Intent] = asyncio.Queue()
        self._changed = asyncio.Condition()
        self._subscribers: list[_Subscriber] = []
        self._task: asyncio.Task | None = None
        self._context: _AnalyzingContext | None = None
        self._analysis_task: asyncio.Task | None = None
        self._settle_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Launch the intent serializer."""
        if self._task is None:
            self._task = asyncio.create_task(self._serve())

    async def close(self) -> None:
        """Cancel every pending timer and call, release capture, stop serving."""
        self._capture.close()
        self._cancel_attempt()
        for subscriber in self._subscribers:
            subscriber.cancel()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    @property
    def capture(self) -> CaptureController:
        return self._capture

    def subscribe(self, listener: Listener, replay: bool = False) -> Callable[[], None]:
        """Register *listener* for every new snapshot; returns an unsubscriber.

        Plain listeners run inline. Coroutine listeners are awaited one
        snapshot at a time by a task of their own, so a slow one never holds
        up the session. With *replay* the current snapshot is delivered first.
        """
        subscriber = _Subscriber(listener)
        self._subscribers.append(subscriber)
        if replay:
            subscriber.deliver(self._snapshot)

        def unsubscribe() -> None:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)
            subscriber.cancel()

        return unsubscribe

    async def wait_until(
        self,
        predicate: Callable[[SessionSnapshot], bool],
        timeout: float | None = None,
    ) -> SessionSnapshot:
        """Wait until the current snapshot satisfies *predicate*.

        Raises:
            TimeoutError: If *timeout* elapses first.
        """
        async with self._changed:
            await asyncio.wait_for(
                self._changed.wait_for(lambda: predicate(self._snapshot)), timeout
            )
            return self._snapshot

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start_capture(self) -> None:
        """Begin recording a voice note.

        Capability and engine failures end up in the snapshot error.

        Raises:
            InvalidTransitionError: If the session is not capturing.
            CaptureAlreadyActiveError: If a recording is already running.
        """
        if self._snapshot.screen is not Screen.capturing:
            raise InvalidTransitionError("Recording is only possible on the capture screen")
        try:
            self._capture.start()
        except (UnsupportedCapabilityError, CaptureError) as exc:
            logger.warning("Could not start capture: %s", exc.detail)
            self._enqueue(CaptureFailed(exc.detail))
            return
        self._enqueue(DismissError())

    def stop_capture(self) -> None:
        """Finish recording.

        The transcript moves on once the engine has delivered its last
        results; an empty capture reports "no speech detected".

        Raises:
            InvalidTransitionError: If nothing is being recorded.
        """
        if not self._capture.running:
            raise InvalidTransitionError("No recording in progress")
        self._capture.stop()

    def feed_audio(self, pcm: bytes) -> None:
        """Forward recorded audio to the recognition engine."""
        self._capture.feed(pcm)

    def submit_transcript(self, text: str) -> None:
        """Use *text* as a finished capture.

        Raises:
            InvalidTransitionError: If the session is not capturing.
        """
        if self._snapshot.screen is not Screen.capturing:
            raise InvalidTransitionError("A transcript can only be submitted while capturing")
        self._enqueue(TranscriptReady(text))

    def reset(self) -> None:
        """Start over with a fresh, empty session."""
        self._enqueue(Reset())

    def dismiss_error(self) -> None:
        """Hide the current error, keeping everything else."""
        self._enqueue(DismissError())

    async def save_insight(self, title: str | None = None) -> Insight:
        """Persist the presented transcript and analysis.

        Raises:
            InvalidTransitionError: If there is no result to save.
        """
        snapshot = self._snapshot
        if snapshot.screen is not Screen.presenting or snapshot.analysis is None:
            raise InvalidTransitionError("Only a presented result can be saved")
        async with get_session() as db_session:
            repo = InsightRepository(db_session)
            insight = await repo.save_insight(
                transcript=snapshot.transcript,
                analysis=snapshot.analysis,
                title=title,
                limit=self._insights_limit,
            )
        logger.info("Saved insight %s", insight.id)
        return insight

    # ------------------------------------------------------------------
    # Callbacks from collaborators (enqueue only)
    # ------------------------------------------------------------------

    def _on_capture_transcript(self, text: str) -> None:
        self._enqueue(TranscriptReady(text))

    def _on_capture_empty(self) -> None:
        self._enqueue(TranscriptReady(""))

    def _on_capture_error(self, error: CaptureError) -> None:
        self._enqueue(CaptureFailed(error.detail))

    def _on_capture_change(self) -> None:
        self._enqueue(
            CaptureProgress(
                transcript=self._capture.transcript,
                elapsed_seconds=self._capture.elapsed_seconds,
                recording=self._capture.running,
            )
        )

    def _on_stage_step(self, generation: int, index: int) -> None:
        self._enqueue(StageAdvanced(generation, index))

    def _enqueue(self, intent: Intent) -> None:
        self._queue.put_nowait(intent)

    # ------------------------------------------------------------------
    # Serializer
    # ------------------------------------------------------------------

    async def _serve(self) -> None:
        logger.info("Session serializer started")
        while True:
            intent = await self._queue.get()
            try:
                await self._apply(intent)
            except Exception:
                logger.exception("Failed to apply %s", type(intent).__name__)

    async def _apply(self, intent: Intent) -> None:
        snapshot = self._snapshot
        if isinstance(intent, TranscriptReady):
            await self._transcript_ready(intent.text)
        elif isinstance(intent, StageAdvanced):
            await self._stage_advanced(intent.generation, intent.index)
        elif isinstance(intent, AnalysisSucceeded):
            if self._is_current(intent.generation):
                self._context.result = intent.result
                logger.info("Analysis resolved (generation %d)", intent.generation)
                self._maybe_settle()
        elif isinstance(intent, AnalysisFailed):
            if self._is_current(intent.generation):
                logger.warning("Analysis failed: %s", intent.reason)
                await self._enter_capturing(error=intent.reason, stage_index=0)
        elif isinstance(intent, SettleElapsed):
            await self._settle_elapsed(intent.generation)
        elif isinstance(intent, CaptureFailed):
            if snapshot.screen is Screen.capturing:
                await self._commit(snapshot.evolve(error=intent.message, is_recording=False))
        elif isinstance(intent, CaptureProgress):
            if snapshot.screen is Screen.capturing:
                await self._commit(
                    snapshot.evolve(
                        transcript=intent.transcript,
                        elapsed_seconds=intent.elapsed_seconds,
                        is_recording=intent.recording,
                    )
                )
        elif isinstance(intent, Reset):
            await self._enter_capturing(
                transcript="", stage_index=0, error=None, elapsed_seconds=0
            )
        elif isinstance(intent, DismissError):
            if snapshot.error is not None:
                await self._commit(snapshot.evolve(error=None))

    async def _transcript_ready(self, text: str) -> None:
        snapshot = self._snapshot
        if snapshot.screen is not Screen.capturing:
            logger.debug("Ignoring transcript outside the capture screen")
            return

        if not text.strip():
            await self._commit(snapshot.evolve(error=NO_SPEECH_MESSAGE, is_recording=False))
            return

        # A typed transcript may arrive while the microphone is still open
        self._capture.close()

        generation = snapshot.generation + 1
        self._context = _AnalyzingContext(generation=generation)
        await self._commit(
            snapshot.evolve(
                screen=Screen.analyzing,
                transcript=text,
                stage_index=TRANSCRIBED_STAGE,
                error=None,
                is_recording=False,
                generation=generation,
            )
        )
        self._driver.advance(TRANSCRIBED_STAGE, generation)
        self._analysis_task = asyncio.create_task(self._run_analysis(generation, text))

    async def _run_analysis(self, generation: int, text: str) -> None:
        try:
            result = await self._analyzer.analyze(text)
        except AnalysisFailure as exc:
            self._enqueue(AnalysisFailed(generation, exc.reason))
        except VoiceBroError as exc:
            self._enqueue(AnalysisFailed(generation, exc.detail))
        except Exception as exc:
            logger.exception("Analyzer crashed")
            self._enqueue(AnalysisFailed(generation, str(exc) or AnalysisFailure().reason))
        else:
            self._enqueue(AnalysisSucceeded(generation, result))

    async def _stage_advanced(self, generation: int, index: int) -> None:
        if not self._is_current(generation) or index <= self._snapshot.stage_index:
            return
        await self._commit(self._snapshot.evolve(stage_index=index))
        if index >= TERMINAL_STAGE:
            self._context.stages_done = True
            self._maybe_settle()

    def _maybe_settle(self) -> None:
        context = self._context
        if context is None or not context.ready or self._settle_task is not None:
            return
        self._settle_task = asyncio.create_task(self._settle(context.generation))

    async def _settle(self, generation: int) -> None:
        await asyncio.sleep(self._settle_delay)
        self._enqueue(SettleElapsed(generation))

    async def _settle_elapsed(self, generation: int) -> None:
        context = self._context
        if not self._is_current(generation) or not context.ready:
            return
        self._context = None
        self._settle_task = None
        self._analysis_task = None
        await self._commit(
            self._snapshot.evolve(
                screen=Screen.presenting,
                analysis=context.result,
                stage_index=TERMINAL_STAGE,
            )
        )

    async def _enter_capturing(self, **changes) -> None:
        """Interrupt back to the capture screen, invalidating the attempt."""
        self._cancel_attempt()
        self._capture.close()
        await self._commit(
            self._snapshot.evolve(
                screen=Screen.capturing,
                analysis=None,
                is_recording=False,
                generation=self._snapshot.generation + 1,
                **changes,
            )
        )

    def _cancel_attempt(self) -> None:
        self._driver.cancel()
        for task in (self._analysis_task, self._settle_task):
            if task is not None:
                task.cancel()
        self._analysis_task = None
        self._settle_task = None
        self._context = None

    def _is_current(self, generation: int) -> bool:
        return (
            self._snapshot.screen is Screen.analyzing
            and self._context is not None
            and self._context.generation == generation
        )

    async def _commit(self, snapshot: SessionSnapshot) -> None:
        previous, self._snapshot = self._snapshot, snapshot
        if previous.screen is not snapshot.screen:
            logger.info("Session %s -> %s", previous.screen, snapshot.screen)

        async with self._changed:
            self._changed.notify_all()

        for subscriber in list(self._subscribers):
            subscriber.deliver(snapshot)


def create_session(settings: Settings) -> SessionStateMachine:
    """Build a state machine wired to the configured collaborators."""
    if settings.analysis_provider == "simulated":
        analyzer = create_analyzer("simulated", delay=settings.analysis_delay)
    else:
        analyzer = create_analyzer(settings.analysis_provider)

    engine_factory = create_recognition_engine(
        settings.recognition_provider, model_size=settings.whisper_model
    )
    return SessionStateMachine(
        analyzer=analyzer,
        engine_factory=engine_factory,
        language=settings.recognition_language,
        stage_interval=settings.stage_interval,
        settle_delay=settings.settle_delay,
        elapsed_tick=settings.elapsed_tick,
        insights_limit=settings.insights_limit,
    )
