"""Queue priority assignment for newly filed reports."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from heritage.moderation.domain.models import BASELINE_PRIORITY, ReportPriority, ReportReason

logger = logging.getLogger(__name__)

HIGH_PRIORITY_REASONS = frozenset(
    {ReportReason.ILLEGAL_CONTENT, ReportReason.HARASSMENT, ReportReason.HATE_INCITEMENT}
)


class ReporterActivity(Protocol):
    async def count_recent_by_reporter(self, reporter_id: str, since: datetime) -> int:
        ...


@dataclass
class PriorityPolicy:
    """Elevates serious reasons and demotes reporters who flood the queue."""

    activity: ReporterActivity
    flood_threshold: int = 10
    flood_window: timedelta = timedelta(hours=24)

    async def assign(self, reporter_id: str, reason: ReportReason, now: datetime) -> ReportPriority:
        priority = BASELINE_PRIORITY
        if reason in HIGH_PRIORITY_REASONS:
            priority = ReportPriority.HIGH
        recent = await self.activity.count_recent_by_reporter(reporter_id, now - self.flood_window)
        if recent > self.flood_threshold:
            logger.info(
                "moderation reporter over flood threshold, demoting report",
                extra={"reporter_id": reporter_id, "recent_reports": recent},
            )
            priority = ReportPriority.LOW
        return priority
