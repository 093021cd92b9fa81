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

from roomie.domain.engine import MatchEngine
from roomie.main import app
from roomie.settings import settings


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from roomie.infra.redis import redis_client, set_redis_client
	original = redis_client.client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def force_test_settings():
	"""Pin settings that would otherwise reach the network or depend on the host env."""
	original = {
		"environment": settings.environment,
		"geocoding_enabled": settings.geocoding_enabled,
		"match_limit": settings.match_limit,
		"placeholder_match_count": settings.placeholder_match_count,
	}
	settings.environment = "test"
	settings.geocoding_enabled = False
	settings.match_limit = 50
	settings.placeholder_match_count = 3
	try:
		yield
	finally:
		for key, value in original.items():
			setattr(settings, key, value)


@pytest_asyncio.fixture
async def engine():
	instance = MatchEngine()
	try:
		yield instance
	finally:
		await instance.stop()


@pytest_asyncio.fixture
async def api_client(engine):
	app.state.engine = engine
	app.state.presence = None
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
	app.state.engine = None
