"""
VoiceBro exception hierarchy.

All application-specific exceptions inherit from VoiceBroError,
enabling centralized error handling in the API middleware layer.
"""

from datetime import UTC, datetime

from voicebro.core.models import CaptureErrorReason


class VoiceBroError(Exception):
    """Base exception for all VoiceBro errors."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred",
        code: str = "VOICEBRO_ERROR",
        status_code: int = 500,
    ) -> None:
        self.detail = detail
        self.code = code
        self.status_code = status_code
        self.timestamp = datetime.now(UTC).isoformat()
        super().__init__(detail)


class UnsupportedCapabilityError(VoiceBroError):
    """Raised when no speech-recognition engine is available."""

    def __init__(
        self,
        detail: str = "Voice recording is not supported on this platform.",
    ) -> None:
        super().__init__(
            detail=detail,
            code="UNSUPPORTED_CAPABILITY",
            status_code=503,
        )


class CaptureAlreadyActiveError(VoiceBroError):
    """Raised when trying to start a capture while one is already running."""

    def __init__(self) -> None:
        super().__init__(
            detail="A capture session is already active",
            code="CAPTURE_ALREADY_ACTIVE",
            status_code=409,
        )


CAPTURE_ERROR_MESSAGES: dict[CaptureErrorReason, str] = {
    CaptureErrorReason.permission_denied: (
        "Microphone access denied. Please enable microphone permissions."
    ),
    CaptureErrorReason.no_speech: "No speech was detected. Please try again.",
    CaptureErrorReason.no_microphone: (
        "No microphone was found. Ensure that a microphone is installed."
    ),
    CaptureErrorReason.network: "Network error occurred. Please check your connection.",
    CaptureErrorReason.aborted: "Speech recognition was aborted.",
}

# Raw engine error codes -> taxonomy
_ENGINE_CODES: dict[str, CaptureErrorReason] = {
    "not-allowed": CaptureErrorReason.permission_denied,
    "no-speech": CaptureErrorReason.no_speech,
    "audio-capture": CaptureErrorReason.no_microphone,
    "network": CaptureErrorReason.network,
    "aborted": CaptureErrorReason.aborted,
}


class CaptureError(VoiceBroError):
    """A recoverable error reported by the recognition engine.

    Attributes:
        reason: Normalized taxonomy entry.
        engine_code: The raw code the engine reported.
    """

    def __init__(self, reason: CaptureErrorReason, engine_code: str = "") -> None:
        self.reason = reason
        self.engine_code = engine_code
        detail = CAPTURE_ERROR_MESSAGES.get(
            reason, f"Speech recognition error: {engine_code or reason.value}"
        )
        super().__init__(detail=detail, code="CAPTURE_ERROR", status_code=400)

    @classmethod
    def from_engine_code(cls, code: str) -> "CaptureError":
        """Map a raw engine error code onto the capture error taxonomy."""
        return cls(_ENGINE_CODES.get(code, CaptureErrorReason.other), engine_code=code)


class EmptyTranscriptError(VoiceBroError):
    """Raised when a finished capture holds no speech."""

    def __init__(
        self,
        detail: str = "No speech was detected. Please try recording again.",
    ) -> None:
        super().__init__(detail=detail, code="EMPTY_TRANSCRIPT", status_code=422)


class AnalysisFailure(VoiceBroError):
    """Raised when the analysis service fails or answers malformed data."""

    def __init__(
        self,
        reason: str = "Analysis failed. Please check your connection and try again.",
    ) -> None:
        self.reason = reason
        super().__init__(detail=reason, code="ANALYSIS_FAILURE", status_code=502)


class InvalidTransitionError(VoiceBroError):
    """Raised when an operation is not allowed on the current screen."""

    def __init__(self, detail: str = "Operation not allowed in the current state") -> None:
        super().__init__(detail=detail, code="INVALID_TRANSITION", status_code=409)


class InsightNotFoundError(VoiceBroError):
    """Raised when a saved insight ID does not exist."""

    def __init__(self, insight_id: int | str) -> None:
        super().__init__(
            detail=f"Insight not found: {insight_id}",
            code="INSIGHT_NOT_FOUND",
            status_code=404,
        )
