import pytest

from roomie.infra.redis import redis_client


@pytest.mark.asyncio
async def test_heartbeat_stores_presence(api_client):
	headers = {"X-User-Id": "11111111-1111-1111-1111-111111111111"}

	response = await api_client.post("/presence/heartbeat", headers=headers)
	assert response.status_code == 200
	assert response.json()["ok"] is True

	stored = await redis_client.hgetall("presence:status:11111111-1111-1111-1111-111111111111")
	assert int(stored["lastActivity"]) == response.json()["ts"]


@pytest.mark.asyncio
async def test_repeat_heartbeat_inside_throttle_window_is_not_written(api_client):
	headers = {"X-User-Id": "u1"}

	first = await api_client.post("/presence/heartbeat", headers=headers)
	await redis_client.hset("presence:status:u1", "lastActivity", 5)
	second = await api_client.post("/presence/heartbeat", headers=headers)

	assert first.json()["throttled"] is False
	assert second.status_code == 200
	assert second.json()["throttled"] is True
	assert second.json()["ts"] == 5

	await redis_client.delete("presence:throttle:u1")
	third = await api_client.post("/presence/heartbeat", headers=headers)
	assert third.json()["throttled"] is False
	assert third.json()["ts"] > 5


@pytest.mark.asyncio
async def test_online_then_offline(api_client):
	headers = {"X-User-Id": "u1"}

	online = await api_client.post("/presence/online", json={"name": "Ana"}, headers=headers)
	assert online.status_code == 204

	status = await api_client.get("/presence/u1", headers={"X-User-Id": "u2"})
	assert status.status_code == 200
	assert status.json()["online"] is True
	assert status.json()["actually_online"] is True

	offline = await api_client.post("/presence/offline", headers=headers)
	assert offline.status_code == 204
	status = await api_client.get("/presence/u1", headers={"X-User-Id": "u2"})
	assert status.json()["online"] is False


@pytest.mark.asyncio
async def test_stale_heartbeat_is_not_actually_online(api_client):
	await redis_client.hset("presence:status:u9", mapping={"online": 1, "lastActivity": 1_000, "lastSeen": 1_000})

	status = await api_client.get("/presence/u9", headers={"X-User-Id": "u2"})

	assert status.json()["online"] is True
	assert status.json()["actually_online"] is False


@pytest.mark.asyncio
async def test_unknown_presence_is_404(api_client):
	response = await api_client.get("/presence/ghost", headers={"X-User-Id": "u2"})

	assert response.status_code == 404
