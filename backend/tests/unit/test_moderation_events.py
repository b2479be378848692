from __future__ import annotations

import pytest

from heritage.infra.redis import redis_client
from heritage.moderation.domain.container import configure, get_engine
from heritage.moderation.domain.models import EntityType
from heritage.moderation.domain.rbac import Actor
from heritage.moderation.infra.events import RedisReportEventPublisher


@pytest.mark.asyncio
async def test_publisher_appends_flattened_event(fake_redis) -> None:
    publisher = RedisReportEventPublisher(redis_client, "mod:reports:test")
    await publisher.publish("report.created", {"report_id": "r1", "description": None, "priority": "high"})

    entries = await fake_redis.xrange("mod:reports:test")
    assert len(entries) == 1
    _, fields = entries[0]
    assert fields["event"] == "report.created"
    assert fields["report_id"] == "r1"
    assert fields["description"] == ""
    assert "emitted_at" in fields


@pytest.mark.asyncio
async def test_engine_events_reach_the_configured_stream(fake_redis, entity_stores) -> None:
    entity_stores[EntityType.COMMENT].add("7", title="Un commentaire", status="publie")
    engine = get_engine()
    item = await engine.create_report(Actor.of("11"), entity_type="comment", entity_id="7", reason="spam")
    await engine.resolve(Actor.of("90", ("moderator",)), item.report.report_id, "content_removal")

    entries = await fake_redis.xrange("mod:reports")
    assert [fields["event"] for _, fields in entries] == ["report.created", "report.resolved"]
    assert entries[1][1]["action"] == "content_removal"


@pytest.mark.asyncio
async def test_redis_outage_does_not_fail_report_creation(entity_stores) -> None:
    class _DownRedis:
        async def xadd(self, *args, **kwargs):
            raise ConnectionError("redis unavailable")

    engine = configure(events=RedisReportEventPublisher(_DownRedis(), "mod:reports"))
    stores = {binding.entity_type: binding.store for binding in engine.resolver.registry}
    stores[EntityType.USER].add("40", title="Compte", status="actif")
    item = await engine.create_report(Actor.of("11"), entity_type="user", entity_id="40", reason="harassment")
    assert item.report.is_pending
