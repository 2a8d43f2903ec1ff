"""
Insight REST endpoints.

Saving takes the result currently presented by the session; listing and
lookup delegate to ``InsightRepository``.
"""

from fastapi import APIRouter, Request

from voicebro.api.deps import get_state_machine
from voicebro.core.config import get_settings
from voicebro.core.models import AnalysisResult, InsightCreate, InsightResponse
from voicebro.services.storage.database import get_session
from voicebro.services.storage.models_db import Insight
from voicebro.services.storage.repository import InsightRepository

router = APIRouter(prefix="/insights", tags=["insights"])


def _to_response(insight: Insight) -> InsightResponse:
    return InsightResponse(
        id=insight.id,
        title=insight.title,
        transcript=insight.transcript,
        analysis=AnalysisResult(**insight.analysis),
        created_at=insight.created_at,
    )


@router.post("", response_model=InsightResponse, status_code=201)
async def save_insight(
    request: Request, body: InsightCreate | None = None
) -> InsightResponse:
    """Save the presented transcript and its six perspectives."""
    insight = await get_state_machine(request).save_insight(title=body.title if body else None)
    return _to_response(insight)


@router.get("", response_model=list[InsightResponse])
async def list_insights() -> list[InsightResponse]:
    """Return saved insights, newest first."""
    async with get_session() as session:
        repo = InsightRepository(session)
        insights = await repo.list_insights(limit=get_settings().insights_limit)
    return [_to_response(i) for i in insights]


@router.get("/{insight_id}", response_model=InsightResponse)
async def get_insight(insight_id: int) -> InsightResponse:
    """Return a single saved insight."""
    async with get_session() as session:
        repo = InsightRepository(session)
        insight = await repo.get_insight(insight_id)
    return _to_response(insight)
