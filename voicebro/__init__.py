"""VoiceBro - turn a spoken note into six perspectives."""

__version__ = "0.1.0"
