import pytest

from roomie.obs import logging as obs_logging
from roomie.infra.redis import redis_client

U1 = {"X-User-Id": "u1"}
U2 = {"X-User-Id": "u2"}


@pytest.mark.asyncio
async def test_send_and_list_messages(api_client):
	sent = await api_client.post("/chat/conversations/u2/messages", json={"text": "hi there"}, headers=U1)
	assert sent.status_code == 201
	assert sent.json()["conversation_id"] == "u1_u2"

	listed = await api_client.get("/chat/conversations/u1/messages", headers=U2)
	assert listed.status_code == 200
	body = listed.json()
	assert body["conversation_id"] == "u1_u2"
	assert [item["text"] for item in body["items"]] == ["hi there"]
	assert body["items"][0]["sender_id"] == "u1"


@pytest.mark.asyncio
async def test_chat_routes_bind_conversation_to_log_context(api_client, engine, monkeypatch):
	seen = []
	original_send = engine.chat.send

	async def recording_send(conversation_id, message):
		seen.append(obs_logging.current_conversation_id())
		return await original_send(conversation_id, message)

	monkeypatch.setattr(engine.chat, "send", recording_send)

	sent = await api_client.post("/chat/conversations/u2/messages", json={"text": "hello"}, headers=U1)

	assert sent.status_code == 201
	assert seen == ["u1_u2"]
	assert obs_logging.current_conversation_id() is None


@pytest.mark.asyncio
async def test_blank_message_is_rejected(api_client):
	response = await api_client.post("/chat/conversations/u2/messages", json={"text": "   "}, headers=U1)

	assert response.status_code == 400
	assert response.json()["detail"] == "empty_message"


@pytest.mark.asyncio
async def test_messaging_self_is_rejected(api_client):
	response = await api_client.post("/chat/conversations/u1/messages", json={"text": "me"}, headers=U1)

	assert response.status_code == 400
	assert response.json()["detail"] == "cannot_message_self"


@pytest.mark.asyncio
async def test_unread_counts_and_mark_read(api_client):
	await api_client.post("/chat/conversations/u2/messages", json={"text": "first"}, headers=U1)
	baseline = await api_client.get("/chat/unread", headers=U2)
	assert baseline.json() == {"total": 0, "conversations": {"u1": 0}}

	await api_client.post("/chat/conversations/u2/messages", json={"text": "second"}, headers=U1)
	await api_client.post("/chat/conversations/u2/messages", json={"text": "third"}, headers=U1)
	unread = await api_client.get("/chat/unread", headers=U2)
	assert unread.json()["conversations"]["u1"] >= 1

	marked = await api_client.post("/chat/conversations/u1/read", headers=U2)
	assert marked.status_code == 200
	assert marked.json() == {"conversation_id": "u1_u2", "unread": 0}


@pytest.mark.asyncio
async def test_typing_flag_round_trip(api_client):
	response = await api_client.post("/chat/conversations/u2/typing", json={"typing": True}, headers=U1)
	assert response.status_code == 204
	assert "u1" in await redis_client.hgetall("chat:u1_u2:typing")

	await api_client.post("/chat/conversations/u2/typing", json={"typing": False}, headers=U1)
	assert await redis_client.hgetall("chat:u1_u2:typing") == {}
