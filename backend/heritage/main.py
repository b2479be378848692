"""FastAPI application entrypoint."""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from heritage.api import ops
from heritage.api.errors import install_error_handlers
from heritage.infra import postgres
from heritage.infra.redis import redis_client
from heritage.moderation import api as moderation_api
from heritage.moderation.domain.container import configure_postgres as configure_moderation
from heritage.obs import init as obs_init


@asynccontextmanager
async def lifespan(app: FastAPI):
	pool = await postgres.init_pool()
	configure_moderation(pool, redis_client)
	try:
		yield
	finally:
		await postgres.close_pool()


app = FastAPI(title="Heritage Moderation", version="0.1.0", lifespan=lifespan)
install_error_handlers(app)
obs_init(app)

app.include_router(ops.router)
app.include_router(moderation_api.router, tags=["moderation"])


__all__ = ["app"]
