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

from roomcode.domain.rooms.store import reset_memory_state
from roomcode.main import app
from roomcode.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from roomcode.infra.redis import redis_client, set_redis_client
	original = redis_client._client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest_asyncio.fixture(autouse=True)
async def reset_rooms():
	await reset_memory_state()
	yield
	await reset_memory_state()


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Keep settings predictable regardless of the developer's .env."""
	original_backend = settings.room_store_backend
	original_attempts = settings.room_code_max_attempts
	original_public = settings.obs_metrics_public
	settings.room_store_backend = "memory"
	settings.room_code_max_attempts = 16
	settings.obs_metrics_public = True
	try:
		yield
	finally:
		settings.room_store_backend = original_backend
		settings.room_code_max_attempts = original_attempts
		settings.obs_metrics_public = original_public


@pytest_asyncio.fixture
async def api_client():
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
