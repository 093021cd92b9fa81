"""Conversation messaging over the shared Redis store."""

from __future__ import annotations

import json
import logging
import time
from typing import Callable, Dict, Iterable, List, Optional

import ulid

from roomie.domain.chat.models import (
	ConsistencyReport,
	ConversationKey,
	Message,
	OutgoingMessage,
	SendResult,
)
from roomie.domain.errors import MessagingError
from roomie.infra.redis import redis_client
from roomie.infra.subscriptions import SnapshotHandler, Subscription, subscribe_snapshots
from roomie.obs import metrics as obs_metrics
from roomie.settings import settings

logger = logging.getLogger(__name__)

ALL_CONVERSATIONS_KEY = "chat:conversations"
MAX_MESSAGE_LENGTH = 4000


def _messages_key(conversation_id: str) -> str:
	return f"chat:{conversation_id}:messages"


def _meta_key(conversation_id: str) -> str:
	return f"chat:{conversation_id}:meta"


def _typing_key(conversation_id: str) -> str:
	return f"chat:{conversation_id}:typing"


def _user_index_key(user_id: str) -> str:
	return f"chat:user:{user_id}:conversations"


def messages_channel(conversation_id: str) -> str:
	return f"chat:{conversation_id}:changed"


def typing_channel(conversation_id: str) -> str:
	return f"chat:{conversation_id}:typing:changed"


def _now_ms() -> int:
	return int(time.time() * 1000)


class ChatService:
	"""Send, read and observe conversations.

	Messages live in a sorted set per conversation scored by their millisecond
	timestamp. Every write publishes on the conversation channel so open
	subscriptions re-pull the history. Sending never raises: store failures come
	back as ``SendResult(success=False)``.
	"""

	def __init__(self, *, clock: Callable[[], int] = _now_ms) -> None:
		self._clock = clock

	async def create_chat(self, conversation_id: str, participants: Iterable[str]) -> bool:
		"""Idempotent; returns True only when the conversation was new."""
		members = sorted({str(user) for user in participants if user})
		created = await redis_client.hsetnx(_meta_key(conversation_id), "createdAt", self._clock())
		pipe = redis_client.pipeline(transaction=True)
		pipe.hset(_meta_key(conversation_id), mapping={"id": conversation_id, "participants": json.dumps(members)})
		pipe.sadd(ALL_CONVERSATIONS_KEY, conversation_id)
		for user in members:
			pipe.sadd(_user_index_key(user), conversation_id)
		await pipe.execute()
		if created:
			logger.info("chat.conversation_created", extra={"conversation_id": conversation_id})
		return bool(created)

	async def open_conversation(self, user_id: str, other_user_id: str) -> str:
		if str(user_id) == str(other_user_id):
			raise MessagingError("cannot_message_self")
		key = ConversationKey.from_participants(user_id, other_user_id)
		await self.create_chat(key.conversation_id, key.participants())
		return key.conversation_id

	async def participants(self, conversation_id: str) -> List[str]:
		raw = await redis_client.hget(_meta_key(conversation_id), "participants")
		if not raw:
			return []
		return list(json.loads(raw))

	async def send(self, conversation_id: str, message: OutgoingMessage) -> SendResult:
		text = (message.text or "").strip()
		if not text:
			obs_metrics.inc_chat_send("rejected")
			return SendResult(success=False, error="empty_message")
		if len(text) > MAX_MESSAGE_LENGTH:
			obs_metrics.inc_chat_send("rejected")
			return SendResult(success=False, error="message_too_long")
		stored = Message(
			id=ulid.new().str,
			sender_id=message.sender_id,
			text=text,
			timestamp=self._clock(),
			sender_name=message.sender_name,
			type=message.type,
		)
		payload = json.dumps(stored.to_dict(), separators=(",", ":"))
		last = json.dumps(
			{"text": stored.text, "senderId": stored.sender_id, "timestamp": stored.timestamp},
			separators=(",", ":"),
		)
		try:
			pipe = redis_client.pipeline(transaction=True)
			pipe.zadd(_messages_key(conversation_id), {payload: stored.timestamp})
			pipe.hset(_meta_key(conversation_id), "lastMessage", last)
			pipe.sadd(ALL_CONVERSATIONS_KEY, conversation_id)
			pipe.sadd(_user_index_key(message.sender_id), conversation_id)
			await pipe.execute()
			await redis_client.publish_json(messages_channel(conversation_id), {"op": "message", "id": stored.id})
		except Exception as exc:
			obs_metrics.inc_chat_send("failed")
			logger.warning(
				"chat.send_failed",
				extra={"conversation_id": conversation_id, "error": type(exc).__name__},
			)
			return SendResult(success=False, error="store_unavailable")
		obs_metrics.inc_chat_send("ok")
		return SendResult(success=True, id=stored.id, timestamp=stored.timestamp)

	async def history(self, conversation_id: str) -> List[Message]:
		rows = await redis_client.zrange(_messages_key(conversation_id), 0, -1)
		messages: List[Message] = []
		for raw in rows:
			try:
				messages.append(Message.from_dict(json.loads(raw)))
			except (KeyError, TypeError, ValueError):
				logger.warning("chat.message_rejected", extra={"conversation_id": conversation_id})
		messages.sort(key=lambda item: (item.timestamp, item.id))
		return messages

	async def last_message(self, conversation_id: str) -> Optional[dict]:
		raw = await redis_client.hget(_meta_key(conversation_id), "lastMessage")
		return json.loads(raw) if raw else None

	async def subscribe(self, conversation_id: str, on_change: SnapshotHandler) -> Subscription:
		async def _load() -> List[Message]:
			return await self.history(conversation_id)

		return await subscribe_snapshots(
			messages_channel(conversation_id),
			_load,
			on_change,
			resync_interval_seconds=settings.profile_resync_interval_seconds,
			label="chat",
		)

	async def user_conversations(self, user_id: str) -> List[str]:
		members = await redis_client.smembers(_user_index_key(user_id))
		return sorted(members)

	async def verify_consistency(self, user_one: str, user_two: str) -> ConsistencyReport:
		conversation_id = ConversationKey.from_participants(user_one, user_two).conversation_id
		count = await redis_client.zcard(_messages_key(conversation_id))
		return ConsistencyReport(conversation_id=conversation_id, exists=count > 0, message_count=int(count))

	async def resync_last_messages(self) -> int:
		"""Rebuild `lastMessage` metadata from the message logs; returns conversations touched."""
		synced = 0
		for conversation_id in sorted(await redis_client.smembers(ALL_CONVERSATIONS_KEY)):
			try:
				rows = await redis_client.zrange(_messages_key(conversation_id), -1, -1)
				if not rows:
					continue
				latest = Message.from_dict(json.loads(rows[0]))
				await redis_client.hset(
					_meta_key(conversation_id),
					"lastMessage",
					json.dumps({"text": latest.text, "senderId": latest.sender_id, "timestamp": latest.timestamp}),
				)
				synced += 1
			except Exception:
				logger.warning("chat.resync_failed", extra={"conversation_id": conversation_id}, exc_info=True)
		logger.info("chat.resync_complete", extra={"synced": synced})
		return synced

	async def set_typing(self, conversation_id: str, user_id: str, is_typing: bool) -> None:
		if is_typing:
			await redis_client.hset(_typing_key(conversation_id), user_id, self._clock())
		else:
			await redis_client.hdel(_typing_key(conversation_id), user_id)
		await redis_client.publish_json(typing_channel(conversation_id), {"user": user_id, "typing": bool(is_typing)})

	async def typing_users(self, conversation_id: str) -> Dict[str, int]:
		rows = await redis_client.hgetall(_typing_key(conversation_id))
		return {user: int(value) for user, value in rows.items()}

	async def subscribe_typing(self, conversation_id: str, on_change: SnapshotHandler) -> Subscription:
		async def _load() -> Dict[str, int]:
			return await self.typing_users(conversation_id)

		return await subscribe_snapshots(
			typing_channel(conversation_id),
			_load,
			on_change,
			resync_interval_seconds=settings.profile_resync_interval_seconds,
			label="typing",
		)


__all__ = ["ChatService", "messages_channel", "typing_channel"]
