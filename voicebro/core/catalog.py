"""Static perspective catalog and the ordered analysis milestones."""

from voicebro.core.models import Perspective

PERSPECTIVES: tuple[Perspective, ...] = (
    Perspective(
        key="synthesizer",
        icon="🔄",
        title="The Synthesizer",
        description="Organizes scattered thoughts into clear patterns and frameworks",
        color="#3F51B5",
    ),
    Perspective(
        key="connector",
        icon="🔗",
        title="The Connector",
        description="Reveals relationships between new thoughts and existing knowledge",
        color="#673AB7",
    ),
    Perspective(
        key="challenger",
        icon="❓",
        title="The Challenger",
        description="Questions assumptions and offers alternative perspectives",
        color="#9C27B0",
    ),
    Perspective(
        key="explorer",
        icon="🚀",
        title="The Explorer",
        description="Discovers creative possibilities beyond conventional thinking",
        color="#2196F3",
    ),
    Perspective(
        key="implementer",
        icon="⚙️",
        title="The Implementer",
        description="Translates concepts into practical action steps",
        color="#4CAF50",
    ),
    Perspective(
        key="integrator",
        icon="🌐",
        title="The Integrator",
        description="Synthesizes insights from all perspectives into comprehensive wisdom",
        color="#FF4081",
    ),
)

PERSPECTIVE_KEYS: tuple[str, ...] = tuple(p.key for p in PERSPECTIVES)

STAGE_LABELS: tuple[str, ...] = (
    "Initializing...",
    "Transcription Complete",
    "Synthesizer Analysis",
    "Connector Analysis",
    "Challenger Analysis",
    "Explorer Analysis",
    "Implementer Analysis",
    "Integration",
)

TRANSCRIBED_STAGE = 1
TERMINAL_STAGE = len(STAGE_LABELS) - 1
