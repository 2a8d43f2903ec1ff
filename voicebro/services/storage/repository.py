"""
Repository for saved insights.

``InsightRepository`` receives an ``AsyncSession`` and provides all
data-access methods.  It calls ``flush()`` rather than ``commit()`` so
that transaction boundaries are controlled by the caller (typically
:func:`get_session`).

The store behaves like a capped list: new entries go to the front and
anything past the limit is dropped.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from voicebro.core.exceptions import InsightNotFoundError
from voicebro.core.models import AnalysisResult
from voicebro.services.storage.models_db import Insight

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50


def default_title(now: datetime | None = None) -> str:
    """Return the title used when the user does not name an insight."""
    now = now or datetime.now(UTC)
    return f"Insight {now.strftime('%Y-%m-%d')}"


class InsightRepository:
    """Data-access layer for the ``insights`` table.

    Args:
        session: An active SQLAlchemy ``AsyncSession``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def save_insight(
        self,
        transcript: str,
        analysis: AnalysisResult,
        title: str | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> Insight:
        """Prepend a new insight and trim the list to *limit* entries."""
        insight = Insight(
            title=title or default_title(),
            transcript=transcript,
            analysis=analysis.model_dump(),
        )
        self._session.add(insight)
        await self._session.flush()

        keep = select(Insight.id).order_by(Insight.id.desc()).limit(limit)
        result = await self._session.execute(
            delete(Insight).where(Insight.id.not_in(keep.scalar_subquery()))
        )
        if result.rowcount:
            logger.info("Trimmed %d insight(s) beyond the newest %d", result.rowcount, limit)
        await self._session.flush()
        return insight

    async def list_insights(self, limit: int = DEFAULT_LIMIT) -> list[Insight]:
        """Return saved insights, newest first."""
        stmt = select(Insight).order_by(Insight.id.desc()).limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def get_insight(self, insight_id: int) -> Insight:
        """Return an insight by ID or raise :class:`InsightNotFoundError`."""
        insight = await self._session.get(Insight, insight_id)
        if insight is None:
            raise InsightNotFoundError(insight_id)
        return insight
