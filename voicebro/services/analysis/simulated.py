"""Offline analyzer that answers with canned perspectives after a delay."""

import asyncio
import logging

from voicebro.core.config import get_settings
from voicebro.core.models import AnalysisResult
from voicebro.services.analysis.base import BaseAnalyzer

logger = logging.getLogger(__name__)

CANNED_ANALYSIS = AnalysisResult(
    synthesizer=(
        "🧠 I'm noticing three themes running through your thoughts: personal "
        "growth, systemic thinking, and how individual change feeds collective "
        "impact. What ties them together is a search for coherence between inner "
        "work and outer expression."
    ),
    connector=(
        "🔗 This reminds me of vertical development in developmental psychology, "
        "where the way we make meaning itself matures. Systems theory offers a "
        "parallel: individual shifts ripple outward, and complexity science calls "
        "the result emergence."
    ),
    challenger=(
        "❓ But wait, are we assuming more complexity means better thinking? What "
        "if the real insight is about simplifying? Maybe the search for the big "
        "picture is a way of postponing the first concrete step."
    ),
    explorer=(
        "🚀 What if we treated this as designing a new operating system for human "
        "potential? Imagine learning spaces that grow individual wisdom and "
        "collective intelligence at the same time."
    ),
    implementer=(
        "⚙️ So what do we actually do? Week 1: map your current learning sources. "
        "Week 2: run one small collaborative experiment. Week 3: write down what "
        "emerged. Week 4: share it and see what comes back."
    ),
    integrator=(
        "🧩 What I'm hearing across all of this is that personal and collective "
        "transformation are tightly linked. Stepping back, the deeper meaning is "
        "your role as a bridge between different ways of knowing."
    ),
)


class SimulatedAnalyzer(BaseAnalyzer):
    """Models the analysis round-trip with a fixed delay and canned answers.

    Args:
        delay: Seconds to wait before answering (settings default).
        result: Result to answer with (defaults to :data:`CANNED_ANALYSIS`).
    """

    def __init__(
        self,
        delay: float | None = None,
        result: AnalysisResult | None = None,
    ) -> None:
        self._delay = get_settings().analysis_delay if delay is None else delay
        self._result = result or CANNED_ANALYSIS

    async def analyze(self, transcript: str) -> AnalysisResult:
        logger.debug("Simulating analysis of %d characters", len(transcript))
        await asyncio.sleep(self._delay)
        return self._result
