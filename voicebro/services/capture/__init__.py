"""
Capture module - continuous speech recognition and its supervising controller.

Factory function for resolving the recognition capability from configuration.
"""

import functools
import importlib.util
import logging
from collections.abc import Callable

from .base import BaseRecognitionEngine
from .controller import CaptureController

__all__ = [
    "BaseRecognitionEngine",
    "CaptureController",
    "EngineFactory",
    "create_recognition_engine",
]

logger = logging.getLogger(__name__)

EngineFactory = Callable[[], BaseRecognitionEngine]


def create_recognition_engine(provider: str, **kwargs) -> EngineFactory | None:
    """
    Resolve the recognition capability for a provider.

    Args:
        provider: Engine name ("whisper"), or "none" to disable capture
        **kwargs: Engine-specific configuration

    Returns:
        A zero-argument factory building fresh engines, or None when the
        platform offers no recognition capability

    Raises:
        ValueError: If provider is unknown
    """
    if provider in ("none", ""):
        return None
    if provider == "whisper":
        if importlib.util.find_spec("faster_whisper") is None:
            logger.warning("faster-whisper is not installed; voice capture is unavailable")
            return None
        from .whisper_engine import WhisperRecognitionEngine

        return functools.partial(WhisperRecognitionEngine, **kwargs)
    raise ValueError(f"Unknown recognition provider: {provider}")
