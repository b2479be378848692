"""Moderator queue and resolution endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from heritage.moderation.api.deps import get_engine_dep, get_staff_actor
from heritage.moderation.api.schemas import ReportOut, ReportPageOut, ResolveIn, StatsOut
from heritage.moderation.domain.engine import ModerationEngine
from heritage.moderation.domain.rbac import Actor
from heritage.settings import settings

router = APIRouter(prefix="/api/mod/v1/admin/reports", tags=["moderation-admin-reports"])


@router.get("/queue", response_model=ReportPageOut)
async def get_queue(
    status: str | None = Query(default=None, description="pending (default) or resolved"),
    priority: str | None = Query(default=None, description="low, normal, high or urgent"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=settings.moderation_max_page_size),
    engine: ModerationEngine = Depends(get_engine_dep),
    actor: Actor = Depends(get_staff_actor),
) -> ReportPageOut:
    result = await engine.get_queue(actor, status=status, priority=priority, page=page, page_size=page_size)
    return ReportPageOut.from_page(result)


@router.get("/stats", response_model=StatsOut)
async def get_stats(
    engine: ModerationEngine = Depends(get_engine_dep),
    actor: Actor = Depends(get_staff_actor),
) -> StatsOut:
    return StatsOut(pending=await engine.count_pending(actor))


@router.get("/{report_id}", response_model=ReportOut)
async def get_report(
    report_id: str,
    engine: ModerationEngine = Depends(get_engine_dep),
    actor: Actor = Depends(get_staff_actor),
) -> ReportOut:
    item = await engine.get_report(actor, report_id)
    return ReportOut.from_item(item)


@router.put("/{report_id}/resolve", response_model=ReportOut)
async def resolve_report(
    report_id: str,
    body: ResolveIn,
    engine: ModerationEngine = Depends(get_engine_dep),
    actor: Actor = Depends(get_staff_actor),
) -> ReportOut:
    report = await engine.resolve(actor, report_id, body.action, body.notes)
    return ReportOut.from_report(report)
