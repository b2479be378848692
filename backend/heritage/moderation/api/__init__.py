"""Moderation HTTP routers."""

from fastapi import APIRouter

from heritage.moderation.api import admin_reports, reports

router = APIRouter()
router.include_router(reports.router)
router.include_router(admin_reports.router)

__all__ = ["router"]
