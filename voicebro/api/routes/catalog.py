"""Read-only catalog endpoints: perspectives and analysis milestones."""

from fastapi import APIRouter

from voicebro.core.catalog import PERSPECTIVES, STAGE_LABELS
from voicebro.core.models import Perspective, StageResponse

router = APIRouter(tags=["catalog"])


@router.get("/perspectives", response_model=list[Perspective])
async def list_perspectives() -> list[Perspective]:
    return list(PERSPECTIVES)


@router.get("/stages", response_model=list[StageResponse])
async def list_stages() -> list[StageResponse]:
    return [StageResponse(index=i, label=label) for i, label in enumerate(STAGE_LABELS)]
