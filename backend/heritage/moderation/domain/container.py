"""Lightweight service container shared by moderation modules."""

from __future__ import annotations

from datetime import timedelta
from typing import Mapping, Optional

import asyncpg
from redis.asyncio import Redis

from heritage.infra.redis import RedisProxy, redis_client
from heritage.moderation.domain.actions import ActionExecutor
from heritage.moderation.domain.engine import ModerationEngine, ReportEventPublisher
from heritage.moderation.domain.entities import EntityRegistry, EntityStore, build_memory_registry
from heritage.moderation.domain.models import EntityType
from heritage.moderation.domain.priority import PriorityPolicy
from heritage.moderation.domain.resolver import EntityResolver
from heritage.moderation.domain.store import InMemoryReportStore, ReportStore
from heritage.moderation.infra.entity_stores import build_postgres_registry
from heritage.moderation.infra.events import RedisReportEventPublisher
from heritage.moderation.infra.postgres_repo import PostgresReportStore
from heritage.settings import settings


def _default_events(redis_proxy: RedisProxy) -> ReportEventPublisher | None:
    if not settings.moderation_events_enabled:
        return None
    return RedisReportEventPublisher(redis_proxy, settings.moderation_events_stream)


def _build_engine(
    store: ReportStore,
    registry: EntityRegistry,
    events: ReportEventPublisher | None,
) -> ModerationEngine:
    policy = PriorityPolicy(
        activity=store,
        flood_threshold=settings.moderation_flood_threshold,
        flood_window=timedelta(hours=settings.moderation_flood_window_hours),
    )
    return ModerationEngine(
        store=store,
        resolver=EntityResolver(registry),
        executor=ActionExecutor(registry),
        priority_policy=policy,
        events=events,
        max_page_size=settings.moderation_max_page_size,
    )


_registry, _memory_stores = build_memory_registry()
_entity_stores: Mapping[EntityType, EntityStore] = _memory_stores
_store: ReportStore = InMemoryReportStore()
_events: ReportEventPublisher | None = _default_events(redis_client)
_engine: ModerationEngine = _build_engine(_store, _registry, _events)


def configure(
    *,
    store: Optional[ReportStore] = None,
    registry: Optional[EntityRegistry] = None,
    events: Optional[ReportEventPublisher] = None,
) -> ModerationEngine:
    """Rebuild the engine; omitted collaborators fall back to fresh in-memory ones."""
    global _registry, _entity_stores, _store, _events, _engine
    if registry is None:
        registry, memory_stores = build_memory_registry()
        _entity_stores = memory_stores
    else:
        _entity_stores = {binding.entity_type: binding.store for binding in registry}
    _registry = registry
    _store = store or InMemoryReportStore()
    _events = events if events is not None else _default_events(redis_client)
    _engine = _build_engine(_store, _registry, _events)
    return _engine


def configure_postgres(pool: asyncpg.Pool, redis_conn: Redis | RedisProxy | None = None) -> ModerationEngine:
    proxy = redis_client
    if redis_conn is not None:
        proxy = redis_conn if isinstance(redis_conn, RedisProxy) else RedisProxy(redis_conn)
    return configure(
        store=PostgresReportStore(pool),
        registry=build_postgres_registry(pool),
        events=_default_events(proxy),
    )


def get_engine() -> ModerationEngine:
    return _engine


def get_entity_stores() -> Mapping[EntityType, EntityStore]:
    return _entity_stores
