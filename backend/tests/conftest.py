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

from dishlist.domain.search import reset_memory_state
from dishlist.infra import postgres
from dishlist.main import app
from dishlist.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from dishlist.infra.redis import redis_client, set_redis_client
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

	API tests authenticate via the X-User-Id header, which is only accepted in
	dev mode, and read from the in-memory catalog.
	"""
	original_env = settings.environment
	original_backend = settings.search_backend
	original_rate_limit = settings.search_rate_limit_per_minute
	settings.environment = "dev"
	settings.search_backend = "memory"
	settings.search_rate_limit_per_minute = 1000
	try:
		yield
	finally:
		settings.environment = original_env
		settings.search_backend = original_backend
		settings.search_rate_limit_per_minute = original_rate_limit


@pytest_asyncio.fixture(autouse=True)
async def clear_memory_state():
	await reset_memory_state()
	yield
	await reset_memory_state()


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
