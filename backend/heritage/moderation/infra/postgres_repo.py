"""PostgreSQL-backed report store."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID

import asyncpg

from heritage.moderation.domain.errors import (
    AlreadyResolved,
    DuplicateReport,
    ReportNotFound,
    StorageUnavailable,
)
from heritage.moderation.domain.models import (
    EntityType,
    ModerationAction,
    Report,
    ReportFilters,
    ReportOrdering,
    ReportPriority,
    ReportReason,
    ReportStatus,
)
from heritage.moderation.domain.store import ApplyEffect, ReportStore

logger = logging.getLogger(__name__)

_BACKEND_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)

_COLUMNS = """
    id, entity_type, entity_id, reporter_id, reason, description, attachment_url,
    priority, status, created_at, resolver_id, resolved_at, action_taken, resolution_notes
"""

_ORDER_BY = {
    ReportOrdering.QUEUE: "priority DESC, created_at ASC, id ASC",
    ReportOrdering.NEWEST: "created_at DESC, id DESC",
}


def _to_uuid(value: Any) -> UUID | None:
    try:
        return UUID(str(value))
    except (ValueError, TypeError, AttributeError):
        return None


def _unavailable(operation: str) -> StorageUnavailable:
    logger.exception("moderation report store failure", extra={"operation": operation})
    return StorageUnavailable()


class PostgresReportStore(ReportStore):
    """Persists reports in ``moderation_report`` using asyncpg."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def insert(self, report: Report) -> Report:
        query = f"""
        INSERT INTO moderation_report (
            id, entity_type, entity_id, reporter_id, reason, description, attachment_url,
            priority, status, created_at
        )
        VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
        RETURNING {_COLUMNS}
        """
        try:
            record = await self.pool.fetchrow(
                query,
                report.report_id,
                report.entity_type.value,
                report.entity_id,
                report.reporter_id,
                report.reason.value,
                report.description,
                report.attachment_url,
                int(report.priority),
                report.status.value,
                report.created_at,
            )
        except asyncpg.UniqueViolationError as exc:  # type: ignore[attr-defined]
            raise DuplicateReport() from exc
        except _BACKEND_ERRORS as exc:
            raise _unavailable("insert") from exc
        if record is None:
            raise StorageUnavailable()
        return _report_from_record(record)

    async def query(
        self,
        filters: ReportFilters,
        ordering: ReportOrdering,
        page: int,
        page_size: int,
    ) -> tuple[list[Report], int]:
        clauses: list[str] = []
        params: list[Any] = []
        if filters.status is not None:
            params.append(filters.status.value)
            clauses.append(f"status = ${len(params)}")
        if filters.priority is not None:
            params.append(int(filters.priority))
            clauses.append(f"priority = ${len(params)}")
        if filters.reporter_id is not None:
            params.append(filters.reporter_id)
            clauses.append(f"reporter_id = ${len(params)}")
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        count_query = f"SELECT COUNT(*) FROM moderation_report {where}"
        list_query = f"""
        SELECT {_COLUMNS}
        FROM moderation_report
        {where}
        ORDER BY {_ORDER_BY[ordering]}
        LIMIT ${len(params) + 1} OFFSET ${len(params) + 2}
        """
        try:
            async with self.pool.acquire() as conn:
                total = await conn.fetchval(count_query, *params)
                records = await conn.fetch(list_query, *params, page_size, (page - 1) * page_size)
        except _BACKEND_ERRORS as exc:
            raise _unavailable("query") from exc
        return [_report_from_record(record) for record in records], int(total or 0)

    async def get(self, report_id: str) -> Report | None:
        key = _to_uuid(report_id)
        if key is None:
            return None
        query = f"SELECT {_COLUMNS} FROM moderation_report WHERE id = $1"
        try:
            record = await self.pool.fetchrow(query, key)
        except _BACKEND_ERRORS as exc:
            raise _unavailable("get") from exc
        if record is None:
            return None
        return _report_from_record(record)

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
        key = _to_uuid(report_id)
        if key is None:
            raise ReportNotFound()
        record: asyncpg.Record | None = None
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    current = await conn.fetchrow(
                        f"SELECT {_COLUMNS} FROM moderation_report WHERE id = $1 FOR UPDATE",
                        key,
                    )
                    if current is None:
                        raise ReportNotFound()
                    if current["status"] != expected_status.value:
                        raise AlreadyResolved()
                    if apply_effect is not None:
                        await apply_effect(_report_from_record(current), conn)
                    record = await conn.fetchrow(
                        f"""
                        UPDATE moderation_report
                        SET status = $2,
                            resolver_id = $3,
                            resolved_at = $4,
                            action_taken = $5,
                            resolution_notes = $6
                        WHERE id = $1 AND status = $7
                        RETURNING {_COLUMNS}
                        """,
                        key,
                        ReportStatus.RESOLVED.value,
                        resolver_id,
                        resolved_at,
                        action.value,
                        notes,
                        expected_status.value,
                    )
                    if record is None:
                        raise AlreadyResolved()
        except _BACKEND_ERRORS as exc:
            raise _unavailable("update_resolution") from exc
        return _report_from_record(record)

    async def count_recent_by_reporter(self, reporter_id: str, since: datetime) -> int:
        query = "SELECT COUNT(*) FROM moderation_report WHERE reporter_id = $1 AND created_at >= $2"
        try:
            value = await self.pool.fetchval(query, reporter_id, since)
        except _BACKEND_ERRORS as exc:
            raise _unavailable("count_recent_by_reporter") from exc
        return int(value or 0)


def _report_from_record(record: asyncpg.Record) -> Report:
    action = record["action_taken"]
    return Report(
        report_id=str(record["id"]),
        entity_type=EntityType(record["entity_type"]),
        entity_id=str(record["entity_id"]),
        reporter_id=str(record["reporter_id"]),
        reason=ReportReason(record["reason"]),
        description=record["description"],
        attachment_url=record["attachment_url"],
        priority=ReportPriority(int(record["priority"])),
        status=ReportStatus(record["status"]),
        created_at=record["created_at"],
        resolver_id=str(record["resolver_id"]) if record["resolver_id"] is not None else None,
        resolved_at=record["resolved_at"],
        action_taken=ModerationAction(action) if action is not None else None,
        resolution_notes=record["resolution_notes"],
    )
