from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import asyncpg
import pytest

from heritage.moderation.domain.actions import ActionExecutor
from heritage.moderation.domain.engine import ModerationEngine
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
from heritage.moderation.domain.rbac import Actor
from heritage.moderation.domain.resolver import EntityResolver
from heritage.moderation.domain.store import InMemoryReportStore
from heritage.moderation.infra.entity_stores import ENTITY_TABLES, PostgresEntityStore, build_postgres_registry
from heritage.moderation.infra.postgres_repo import PostgresReportStore

NOW = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


def _row(report_id, **overrides):
    row = {
        "id": report_id,
        "entity_type": "comment",
        "entity_id": "7",
        "reporter_id": "11",
        "reason": "spam",
        "description": None,
        "attachment_url": None,
        "priority": 1,
        "status": "pending",
        "created_at": NOW,
        "resolver_id": None,
        "resolved_at": None,
        "action_taken": None,
        "resolution_notes": None,
    }
    row.update(overrides)
    return row


def _report(report_id: str) -> Report:
    return Report(
        report_id=report_id,
        entity_type=EntityType.COMMENT,
        entity_id="7",
        reporter_id="11",
        reason=ReportReason.SPAM,
        description=None,
        attachment_url=None,
        priority=ReportPriority.NORMAL,
        status=ReportStatus.PENDING,
        created_at=NOW,
    )


def _pool_with_conn():
    pool = MagicMock(spec=asyncpg.Pool)
    conn = AsyncMock()
    conn.transaction = MagicMock()
    pool.acquire.return_value.__aenter__.return_value = conn
    return pool, conn


@pytest.mark.asyncio
async def test_insert_maps_unique_violation_to_duplicate() -> None:
    pool = MagicMock(spec=asyncpg.Pool)
    pool.fetchrow = AsyncMock(side_effect=asyncpg.UniqueViolationError("duplicate key"))
    store = PostgresReportStore(pool)
    with pytest.raises(DuplicateReport):
        await store.insert(_report(str(uuid4())))


@pytest.mark.asyncio
async def test_insert_wraps_backend_failures() -> None:
    pool = MagicMock(spec=asyncpg.Pool)
    pool.fetchrow = AsyncMock(side_effect=ConnectionRefusedError("db down"))
    store = PostgresReportStore(pool)
    with pytest.raises(StorageUnavailable) as excinfo:
        await store.insert(_report(str(uuid4())))
    assert excinfo.value.detail == "storage_unavailable"


@pytest.mark.asyncio
async def test_insert_round_trips_record() -> None:
    report_id = uuid4()
    pool = MagicMock(spec=asyncpg.Pool)
    pool.fetchrow = AsyncMock(return_value=_row(report_id))
    store = PostgresReportStore(pool)
    stored = await store.insert(_report(str(report_id)))
    assert stored.report_id == str(report_id)
    assert stored.priority is ReportPriority.NORMAL
    args = pool.fetchrow.call_args.args
    assert "INSERT INTO moderation_report" in args[0]
    assert args[8] == 1


@pytest.mark.asyncio
async def test_queue_query_orders_and_paginates() -> None:
    pool, conn = _pool_with_conn()
    conn.fetchval.return_value = 3
    conn.fetch.return_value = [_row(uuid4(), priority=3), _row(uuid4())]
    store = PostgresReportStore(pool)

    rows, total = await store.query(
        ReportFilters(status=ReportStatus.PENDING, priority=None),
        ReportOrdering.QUEUE,
        page=2,
        page_size=2,
    )

    assert total == 3
    assert [row.priority for row in rows] == [ReportPriority.URGENT, ReportPriority.NORMAL]
    sql, *params = conn.fetch.call_args.args
    assert "ORDER BY priority DESC, created_at ASC" in sql
    assert "LIMIT $2 OFFSET $3" in sql
    assert params == ["pending", 2, 2]


@pytest.mark.asyncio
async def test_get_with_malformed_id_is_not_found() -> None:
    pool = MagicMock(spec=asyncpg.Pool)
    pool.fetchrow = AsyncMock()
    store = PostgresReportStore(pool)
    assert await store.get("not-a-uuid") is None
    pool.fetchrow.assert_not_called()


@pytest.mark.asyncio
async def test_update_resolution_applies_effect_under_row_lock() -> None:
    report_id = uuid4()
    pool, conn = _pool_with_conn()
    resolved = _row(report_id, status="resolved", resolver_id="90", resolved_at=NOW, action_taken="warning")
    conn.fetchrow.side_effect = [_row(report_id), resolved]
    seen: list[str] = []

    async def effect(current: Report, conn) -> None:
        seen.append(current.status.value)

    store = PostgresReportStore(pool)
    result = await store.update_resolution(
        str(report_id), "90", ModerationAction.WARNING, None, resolved_at=NOW, apply_effect=effect
    )

    assert seen == ["pending"]
    assert result.action_taken is ModerationAction.WARNING
    lock_sql = conn.fetchrow.call_args_list[0].args[0]
    assert "FOR UPDATE" in lock_sql
    conn.transaction.assert_called_once()


@pytest.mark.asyncio
async def test_update_resolution_rejects_resolved_row_without_running_effect() -> None:
    report_id = uuid4()
    pool, conn = _pool_with_conn()
    conn.fetchrow.side_effect = [_row(report_id, status="resolved")]
    effect = AsyncMock()
    store = PostgresReportStore(pool)
    with pytest.raises(AlreadyResolved):
        await store.update_resolution(
            str(report_id), "90", ModerationAction.NONE, None, resolved_at=NOW, apply_effect=effect
        )
    effect.assert_not_awaited()


@pytest.mark.asyncio
async def test_update_resolution_missing_report() -> None:
    pool, conn = _pool_with_conn()
    conn.fetchrow.side_effect = [None]
    store = PostgresReportStore(pool)
    with pytest.raises(ReportNotFound):
        await store.update_resolution(str(uuid4()), "90", ModerationAction.NONE, None, resolved_at=NOW)


@pytest.mark.asyncio
async def test_update_resolution_effect_failure_skips_write() -> None:
    report_id = uuid4()
    pool, conn = _pool_with_conn()
    conn.fetchrow.side_effect = [_row(report_id)]
    store = PostgresReportStore(pool)

    async def effect(current: Report, conn) -> None:
        raise RuntimeError("effect failed")

    with pytest.raises(RuntimeError):
        await store.update_resolution(
            str(report_id), "90", ModerationAction.CONTENT_REMOVAL, None, resolved_at=NOW, apply_effect=effect
        )
    assert conn.fetchrow.await_count == 1


@pytest.mark.asyncio
async def test_entity_store_fetch_and_set_status() -> None:
    pool = MagicMock(spec=asyncpg.Pool)
    pool.fetchrow = AsyncMock(
        return_value={"id": 40, "first_name": '{"fr": "Amel"}', "last_name": '{"fr": "Haddad"}', "status": "actif"}
    )
    pool.fetchval = AsyncMock(return_value=40)
    store = PostgresEntityStore(pool, EntityType.USER, ENTITY_TABLES[EntityType.USER])

    record = await store.fetch("40")
    assert record is not None
    assert (record.entity_id, record.title, record.status) == ("40", "Amel Haddad", "actif")
    assert pool.fetchrow.call_args.args[1] == 40

    assert await store.set_status("40", "banni") is True
    assert pool.fetchval.call_args.args[1:] == (40, "banni")
    assert await store.fetch("forty") is None
    assert await store.set_status("forty", "banni") is False


class BoundedPool:
    """asyncpg-like pool with a fixed number of connection slots and slow queries."""

    def __init__(self, size: int) -> None:
        self._slots = asyncio.Semaphore(size)
        self.rows: dict[str, dict] = {}
        self.entity_writes: list[tuple[int, str, bool]] = []

    @asynccontextmanager
    async def acquire(self):
        async with self._slots:
            yield FakeConnection(self)

    async def fetchrow(self, query, *args):
        async with self.acquire() as conn:
            return await conn.fetchrow(query, *args)

    async def fetchval(self, query, *args):
        async with self.acquire() as conn:
            return await conn.fetchval(query, *args)


class FakeConnection:
    def __init__(self, pool: BoundedPool) -> None:
        self.pool = pool
        self.in_transaction = False

    @asynccontextmanager
    async def transaction(self):
        self.in_transaction = True
        try:
            yield
        finally:
            self.in_transaction = False

    async def fetchrow(self, query, *args):
        await asyncio.sleep(0.01)
        if "UPDATE moderation_report" in query:
            key = str(args[0])
            self.pool.rows[key] = dict(
                self.pool.rows[key],
                status=args[1],
                resolver_id=args[2],
                resolved_at=args[3],
                action_taken=args[4],
                resolution_notes=args[5],
            )
            return self.pool.rows[key]
        if "FROM moderation_report" in query:
            return self.pool.rows.get(str(args[0]))
        if "FROM commentaire" in query:
            return {"id": args[0], "title": "Premier commentaire", "status": "publie"}
        return None

    async def fetchval(self, query, *args):
        await asyncio.sleep(0.01)
        if "UPDATE commentaire" in query:
            self.pool.entity_writes.append((args[0], args[1], self.in_transaction))
            return args[0]
        return None


@pytest.mark.asyncio
async def test_concurrent_removals_fit_in_a_pool_of_matching_size() -> None:
    pool = BoundedPool(size=2)
    first, second = uuid4(), uuid4()
    pool.rows[str(first)] = _row(first, entity_id="7")
    pool.rows[str(second)] = _row(second, entity_id="8")
    registry = build_postgres_registry(pool)
    engine = ModerationEngine(
        store=PostgresReportStore(pool),
        resolver=EntityResolver(registry),
        executor=ActionExecutor(registry),
    )

    results = await asyncio.wait_for(
        asyncio.gather(
            engine.resolve(Actor.of("90", ("moderator",)), str(first), "content_removal"),
            engine.resolve(Actor.of("91", ("admin",)), str(second), "content_removal"),
        ),
        timeout=2,
    )

    assert [report.status for report in results] == [ReportStatus.RESOLVED, ReportStatus.RESOLVED]
    # entity writes ride on the locked report connection, inside its transaction
    assert sorted(pool.entity_writes) == [(7, "supprime", True), (8, "supprime", True)]


@pytest.mark.asyncio
async def test_alternate_spellings_of_an_entity_id_share_one_pending_report() -> None:
    pool = BoundedPool(size=2)
    store = InMemoryReportStore()
    registry = build_postgres_registry(pool)
    engine = ModerationEngine(
        store=store,
        resolver=EntityResolver(registry),
        executor=ActionExecutor(registry),
    )
    reporter = Actor.of("11", ("user",))

    item = await engine.create_report(reporter, entity_type="comment", entity_id="07", reason="spam")
    assert item.report.entity_id == "7"
    for spelling in ("7", "+7", "0_7", " 7 "):
        with pytest.raises(DuplicateReport):
            await engine.create_report(reporter, entity_type="comment", entity_id=spelling, reason="spam")
    assert [report.entity_id for report in store.reports.values()] == ["7"]
