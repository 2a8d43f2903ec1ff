"""Service layer: capture, analysis, progress pacing, session and storage."""
