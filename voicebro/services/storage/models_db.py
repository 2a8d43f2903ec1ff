"""
SQLAlchemy ORM models for saved insights.

Table: ``insights``: one finished session (transcript + six perspectives).
"""

from datetime import UTC, datetime

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import JSON

from voicebro.services.storage.database import Base


class Insight(Base):
    """A saved voice note together with its perspective analysis."""

    __tablename__ = "insights"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255))
    transcript: Mapped[str] = mapped_column(Text)
    analysis: Mapped[dict] = mapped_column(JSON)
    created_at: Mapped[datetime] = mapped_column(
        default=lambda: datetime.now(UTC), index=True
    )

    def __repr__(self) -> str:
        return f"<Insight id={self.id} title={self.title!r}>"
