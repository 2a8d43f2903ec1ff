"""
Abstract base class for transcript analyzers.

An analyzer turns one finished transcript into the six perspective
commentaries. Calls are single-shot: implementations do not retry and
report every failure as :class:`~voicebro.core.exceptions.AnalysisFailure`.
"""

from abc import ABC, abstractmethod

from voicebro.core.models import AnalysisResult


class BaseAnalyzer(ABC):
    """Interface that every analysis back-end must implement."""

    @abstractmethod
    async def analyze(self, transcript: str) -> AnalysisResult:
        """Analyze a non-empty transcript.

        Args:
            transcript: The finished, trimmed voice-note transcript.

        Returns:
            An AnalysisResult holding all six perspectives.

        Raises:
            AnalysisFailure: If the service fails or the answer is malformed.
        """
