"""
Application configuration via pydantic-settings.

Loads values from .env file with sensible defaults for local development.
Use ``get_settings()`` to obtain the cached singleton instance.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """VoiceBro application settings loaded from environment / .env file.

    All settings can be overridden via environment variables or a `.env` file.
    Field names map directly to env var names (case-insensitive).

    Attributes:
        analysis_provider: Which analyzer answers a transcript
            ("simulated", "claude" or "ollama").
        recognition_provider: Speech-recognition engine ("whisper" or "none").
        stage_interval: Seconds between two stage-progress increments.
        settle_delay: Pause after analysis and progress both finished,
            before the result is revealed.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Silently ignore unrecognized env vars
    )

    # --- Analysis ---
    # "simulated" answers with canned perspectives after ``analysis_delay``
    analysis_provider: str = "simulated"
    analysis_delay: float = 2.0

    # --- LLM Provider ---
    # Used when analysis_provider is "claude" or "ollama"
    claude_api_key: str = ""  # Required when analysis_provider="claude"
    claude_model: str = "claude-sonnet-4-20250514"
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.2"
    llm_max_attempts: int = 1  # Transport attempts per analysis call

    # --- Speech recognition ---
    recognition_provider: str = "whisper"
    recognition_language: str = "en-US"  # BCP-47 tag handed to the engine
    whisper_model: str = "base"  # Model size: tiny, base, small, medium, large-v3

    # --- Session pacing ---
    stage_interval: float = 1.5
    settle_delay: float = 1.0
    elapsed_tick: float = 1.0  # Resolution of the recording timer

    # --- Storage ---
    database_url: str = "sqlite+aiosqlite:///data/voicebro.db"
    insights_limit: int = 50  # Saved insights kept, newest first

    # --- Application ---
    app_host: str = "0.0.0.0"  # Bind address for the FastAPI server
    app_port: int = 8000
    log_level: str = "INFO"  # Python logging level
    cors_origins: list[str] = ["http://localhost:3000"]


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings singleton.

    Uses ``functools.lru_cache`` so the .env file is read only once.
    Subsequent calls return the same ``Settings`` instance.

    Returns:
        Settings: The application-wide configuration object.
    """
    return Settings()
