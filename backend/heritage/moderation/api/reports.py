"""Reporter-facing endpoints: file a report and list one's own reports."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from heritage.moderation.api.deps import get_actor, get_engine_dep
from heritage.moderation.api.schemas import ReportIn, ReportOut, ReportPageOut
from heritage.moderation.domain.engine import ModerationEngine
from heritage.moderation.domain.rbac import Actor
from heritage.settings import settings

router = APIRouter(prefix="/api/mod/v1/reports", tags=["moderation-reports"])


@router.post("", response_model=ReportOut, status_code=status.HTTP_201_CREATED)
async def create_report(
    body: ReportIn,
    engine: ModerationEngine = Depends(get_engine_dep),
    actor: Actor = Depends(get_actor),
) -> ReportOut:
    item = await engine.create_report(
        actor,
        entity_type=body.entity_type,
        entity_id=body.entity_id,
        reason=body.reason,
        description=body.description,
        attachment_url=body.attachment_url,
    )
    return ReportOut.from_item(item)


@router.get("/mine", response_model=ReportPageOut)
async def list_my_reports(
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=settings.moderation_max_page_size),
    engine: ModerationEngine = Depends(get_engine_dep),
    actor: Actor = Depends(get_actor),
) -> ReportPageOut:
    result = await engine.list_reporter_reports(actor, page=page, page_size=page_size)
    return ReportPageOut.from_page(result)
