"""
Six-perspective analysis backed by an LLM provider.

Sends the transcript together with a fixed instruction template and expects
a JSON object carrying one string per perspective. A missing or empty key
fails loudly instead of producing a partial result.
"""

import json
import logging

from voicebro.core.catalog import PERSPECTIVE_KEYS
from voicebro.core.exceptions import AnalysisFailure, EmptyTranscriptError
from voicebro.core.models import AnalysisResult
from voicebro.core.utils import strip_code_fences
from voicebro.services.analysis.base import BaseAnalyzer
from voicebro.services.llm.base import BaseLLM

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are an archetypal analysis system hosting a conversation between six "
    "perspectives on the user's voice note.\n\n"
    "Perspectives:\n"
    '- synthesizer: a pattern-recognizer ("I\'m noticing...", "The core theme here..."). '
    "Organizes scattered thoughts and finds frameworks.\n"
    '- connector: a bridge-builder ("This reminds me of...", "There\'s a parallel..."). '
    "Relates the note to other fields and broader context.\n"
    '- challenger: a provocative questioner ("But wait...", "Let\'s flip this..."). '
    "Questions unstated assumptions and offers contrarian views.\n"
    '- explorer: a curious futurist ("What if we tried...", "Imagine if..."). '
    "Looks for novel alternatives and emergent possibilities.\n"
    '- implementer: practical and action-oriented ("The next step is..."). '
    "Names concrete actions, resources and pathways.\n"
    '- integrator: weaves meaning across all voices ("If we step back..."). '
    "Focuses on holistic meaning and human values.\n\n"
    "Rules:\n"
    "- Output ONLY valid JSON, no markdown fences or extra text.\n"
    '- Format: {"synthesizer": "...", "connector": "...", "challenger": "...", '
    '"explorer": "...", "implementer": "...", "integrator": "..."}\n'
    "- Every value is a short paragraph of plain text.\n"
    "- Answer in the language of the transcript."
)


def parse_analysis(raw_response: str) -> AnalysisResult:
    """Parse an LLM answer into an :class:`AnalysisResult`.

    Raises:
        AnalysisFailure: If the answer is not a JSON object holding a
            non-empty string for each of the six perspectives.
    """
    cleaned = strip_code_fences(raw_response)
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise AnalysisFailure(
            f"Invalid JSON from analysis service: {cleaned[:200]}"
        ) from exc

    if not isinstance(data, dict):
        raise AnalysisFailure("Analysis service did not return a JSON object")

    missing = [key for key in PERSPECTIVE_KEYS if key not in data]
    if missing:
        raise AnalysisFailure(
            f"Analysis response is missing required keys: {', '.join(missing)}"
        )

    empty = [
        key
        for key in PERSPECTIVE_KEYS
        if not isinstance(data[key], str) or not data[key].strip()
    ]
    if empty:
        raise AnalysisFailure(f"Analysis response has empty perspectives: {', '.join(empty)}")

    return AnalysisResult(**{key: data[key].strip() for key in PERSPECTIVE_KEYS})


class LLMAnalyzer(BaseAnalyzer):
    """Runs the six-perspective prompt through a :class:`BaseLLM`."""

    def __init__(self, llm: BaseLLM) -> None:
        self._llm = llm

    async def analyze(self, transcript: str) -> AnalysisResult:
        if not transcript or not transcript.strip():
            raise EmptyTranscriptError()

        user_prompt = f"Voice note transcript:\n{transcript}"
        try:
            raw_response = await self._llm.generate(
                user_prompt, system=SYSTEM_PROMPT, temperature=0.7
            )
        except Exception as exc:
            logger.warning("Analysis call failed: %s", exc)
            raise AnalysisFailure(f"Analysis service error: {exc}") from exc

        return parse_analysis(raw_response)
