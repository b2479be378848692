"""Redis stream publisher for moderation report events."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from heritage.infra.redis import RedisProxy


class RedisReportEventPublisher:
    """Appends ``report.*`` events to a Redis stream with XADD."""

    def __init__(self, redis: RedisProxy, stream: str = "mod:reports", *, maxlen: int | None = 10000) -> None:
        self.redis = redis
        self.stream = stream
        self.maxlen = maxlen

    async def publish(self, event: str, payload: Mapping[str, Any]) -> None:
        body = {key: "" if value is None else str(value) for key, value in payload.items()}
        body["event"] = event
        body["emitted_at"] = datetime.now(timezone.utc).isoformat()
        await self.redis.xadd(self.stream, body, maxlen=self.maxlen, approximate=True)
