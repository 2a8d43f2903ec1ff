"""Shared utility functions for VoiceBro."""

import re


def strip_code_fences(text: str) -> str:
    """Remove markdown code fences wrapping JSON from LLM responses."""
    text = text.strip()
    if text.startswith("```"):
        text = re.sub(r"^```\w*\n?", "", text)
        text = re.sub(r"\n?```$", "", text)
    return text.strip()


def format_elapsed(seconds: int) -> str:
    """Format a recording duration as ``MM:SS``."""
    mins, secs = divmod(max(seconds, 0), 60)
    return f"{mins:02d}:{secs:02d}"
