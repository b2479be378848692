import os
import sys
from pathlib import Path

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from fakeredis.aioredis import FakeRedis

# Ensure backend package is importable when tests run from repo root
BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
	sys.path.insert(0, str(BACKEND_ROOT))

os.environ.setdefault("SECRET_KEY", "heritage-test-secret-key-0123456789abcdef")

from heritage.infra import postgres
from heritage.main import app
from heritage.moderation.domain import container
from heritage.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from heritage.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Ensure a consistent test environment.

	API tests authenticate via X-User-Id/X-User-Roles headers, which are only
	accepted in dev mode.
	"""
	original_env = settings.environment
	original_events = settings.moderation_events_enabled
	settings.environment = "dev"
	settings.moderation_events_enabled = True
	try:
		yield
	finally:
		settings.environment = original_env
		settings.moderation_events_enabled = original_events


@pytest.fixture(autouse=True)
def moderation_container(force_test_settings):
	"""Give every test a fresh in-memory moderation engine."""
	engine = container.configure()
	try:
		yield engine
	finally:
		container.configure()


@pytest.fixture
def entity_stores(moderation_container):
	return container.get_entity_stores()


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
