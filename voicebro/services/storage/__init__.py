"""
Storage module - Database operations for saved insights.
"""

from voicebro.services.storage.database import (
    Base,
    close_db,
    get_engine,
    get_session,
    init_db,
    reset_engine,
)
from voicebro.services.storage.models_db import Insight
from voicebro.services.storage.repository import InsightRepository

__all__ = [
    "Base",
    "Insight",
    "InsightRepository",
    "close_db",
    "get_engine",
    "get_session",
    "init_db",
    "reset_engine",
]
