"""
Abstract base class for continuous speech-recognition engines.

An engine is configured like a browser recognizer: continuous mode,
interim results and a language tag. It reports back through three
callbacks. ``on_result`` receives the full list of segments recognized in
the current session. ``on_error`` receives a short reason code. ``on_end``
fires once the session is over, normally or not.

Reason codes: ``not-allowed``, ``no-speech``, ``audio-capture``,
``network``, ``aborted``; engines may report other codes which are treated
as generic failures.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable

logger = logging.getLogger(__name__)

ResultCallback = Callable[[list[str]], None]
ErrorCallback = Callable[[str], None]
EndCallback = Callable[[], None]


class BaseRecognitionEngine(ABC):
    """Interface that every recognition engine must implement."""

    def __init__(
        self,
        lang: str = "en-US",
        continuous: bool = True,
        interim_results: bool = True,
    ) -> None:
        self.lang = lang
        self.continuous = continuous
        self.interim_results = interim_results
        self.on_result: ResultCallback | None = None
        self.on_error: ErrorCallback | None = None
        self.on_end: EndCallback | None = None

    @abstractmethod
    def start(self) -> None:
        """Open a recognition session.

        Raises:
            RuntimeError: If a session is already open on this engine.
        """

    @abstractmethod
    def stop(self) -> None:
        """Finish the session gracefully, delivering pending results first."""

    @abstractmethod
    def abort(self) -> None:
        """Tear the session down immediately, dropping pending audio."""

    def feed(self, pcm: bytes) -> None:
        """Push raw audio into the engine.

        Engines that own their audio source ignore fed audio.
        """

    # -- helpers for subclasses --

    def _emit_result(self, segments: list[str]) -> None:
        if self.on_result is not None:
            self.on_result(list(segments))

    def _emit_error(self, code: str) -> None:
        logger.debug("Recognition engine error: %s", code)
        if self.on_error is not None:
            self.on_error(code)

    def _emit_end(self) -> None:
        if self.on_end is not None:
            self.on_end()
