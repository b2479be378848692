"""Storage contract for reports plus an in-memory implementation."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Protocol

from heritage.moderation.domain.errors import AlreadyResolved, DuplicateReport, ReportNotFound
from heritage.moderation.domain.models import (
    ModerationAction,
    Report,
    ReportFilters,
    ReportOrdering,
    ReportStatus,
)

# Receives the report under lock and the store's open transaction handle (None in memory)
ApplyEffect = Callable[[Report, Any], Awaitable[None]]


class ReportStore(Protocol):
    """Persistence contract used by the moderation engine."""

    async def insert(self, report: Report) -> Report:
        """Persist a new report; raises DuplicateReport when a pending twin exists."""
        ...

    async def query(
        self,
        filters: ReportFilters,
        ordering: ReportOrdering,
        page: int,
        page_size: int,
    ) -> tuple[list[Report], int]:
        ...

    async def get(self, report_id: str) -> Report | None:
        ...

    async def update_resolution(
        self,
        report_id: str,
        resolver_id: str,
        action: ModerationAction,
        notes: Optional[str],
        *,
        resolved_at: datetime,
        expected_status: ReportStatus = ReportStatus.PENDING,
        apply_effect: ApplyEffect | None = None,
    ) -> Report:
        """Conditionally move a report to its terminal state.

        The store holds the report exclusively while ``apply_effect`` runs and
        hands it the transaction the report write will commit in, so entity
        writes made through it land atomically with the resolution. When it
        raises, nothing is written and the exception propagates.
        """
        ...

    async def count_recent_by_reporter(self, reporter_id: str, since: datetime) -> int:
        ...


def _dedupe_key(report: Report) -> tuple[str, str, str]:
    return report.entity_type.value, report.entity_id, report.reporter_id


def _matches(report: Report, filters: ReportFilters) -> bool:
    if filters.status is not None and report.status is not filters.status:
        return False
    if filters.priority is not None and report.priority != filters.priority:
        return False
    if filters.reporter_id is not None and report.reporter_id != filters.reporter_id:
        return False
    return True


class InMemoryReportStore(ReportStore):
    """Lightweight in-memory store for local development and tests."""

    def __init__(self) -> None:
        self.reports: dict[str, Report] = {}
        self._insert_lock = asyncio.Lock()
        self._report_locks: dict[str, asyncio.Lock] = {}

    async def insert(self, report: Report) -> Report:
        async with self._insert_lock:
            key = _dedupe_key(report)
            for existing in self.reports.values():
                if existing.is_pending and _dedupe_key(existing) == key:
                    raise DuplicateReport()
            self.reports[report.report_id] = replace(report)
        return replace(report)

    async def query(
        self,
        filters: ReportFilters,
        ordering: ReportOrdering,
        page: int,
        page_size: int,
    ) -> tuple[list[Report], int]:
        rows = [report for report in self.reports.values() if _matches(report, filters)]
        if ordering is ReportOrdering.QUEUE:
            rows.sort(key=lambda r: (-int(r.priority), r.created_at, r.report_id))
        else:
            rows.sort(key=lambda r: (r.created_at, r.report_id), reverse=True)
        offset = (page - 1) * page_size
        return [replace(row) for row in rows[offset : offset + page_size]], len(rows)

    async def get(self, report_id: str) -> Report | None:
        report = self.reports.get(report_id)
        return replace(report) if report else None

    async def update_resolution(
        self,
        report_id: str,
        resolver_id: str,
        action: ModerationAction,
        notes: Optional[str],
        *,
        resolved_at: datetime,
        expected_status: ReportStatus = ReportStatus.PENDING,
        apply_effect: ApplyEffect | None = None,
    ) -> Report:
        lock = self._report_locks.setdefault(report_id, asyncio.Lock())
        async with lock:
            current = self.reports.get(report_id)
            if current is None:
                self._report_locks.pop(report_id, None)
                raise ReportNotFound()
            if current.status is not expected_status:
                self._report_locks.pop(report_id, None)
                raise AlreadyResolved()
            if apply_effect is not None:
                # On failure the report stays pending and keeps its lock
                await apply_effect(replace(current), None)
            updated = current.resolved(
                resolver_id=resolver_id,
                action=action,
                notes=notes,
                resolved_at=resolved_at,
            )
            self.reports[report_id] = updated
            # Resolution is terminal; later callers only need to observe the new status
            self._report_locks.pop(report_id, None)
        return replace(updated)

    async def count_recent_by_reporter(self, reporter_id: str, since: datetime) -> int:
        return sum(
            1
            for report in self.reports.values()
            if report.reporter_id == reporter_id and report.created_at >= since
        )
