"""Presence records in Redis: an explicit online flag plus a heartbeat timestamp."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from roomie.infra.redis import redis_client
from roomie.obs import metrics as obs_metrics
from roomie.settings import settings


def _status_key(user_id: str) -> str:
	return f"presence:status:{user_id}"


def _throttle_key(user_id: str) -> str:
	return f"presence:throttle:{user_id}"


def _now_ms() -> int:
	return int(time.time() * 1000)


@dataclass(slots=True)
class PresenceRecord:
	user_id: str
	online: bool
	last_activity_at: Optional[int]
	last_seen_at: Optional[int] = None
	name: str = ""

	def is_actually_online(self, now_ms: int, window_seconds: float) -> bool:
		# Liveness comes from the heartbeat; the flag alone never expires
		if self.last_activity_at is None:
			return False
		return now_ms - self.last_activity_at < window_seconds * 1000

	def to_dict(self) -> dict:
		return {
			"userId": self.user_id,
			"online": self.online,
			"lastActivityAt": self.last_activity_at,
			"lastSeenAt": self.last_seen_at,
			"name": self.name,
		}


def _optional_int(value) -> Optional[int]:
	if value in (None, ""):
		return None
	return int(value)


class RedisPresenceStore:
	def __init__(self, *, clock: Callable[[], int] = _now_ms) -> None:
		self._clock = clock

	async def _touch(self, user_id: str, mapping: dict) -> None:
		key = _status_key(user_id)
		await redis_client.hset(key, mapping=mapping)
		await redis_client.expire(key, settings.presence_status_ttl_seconds)

	async def set_online(self, user_id: str, name: str = "") -> None:
		now = self._clock()
		await self._touch(user_id, {"online": 1, "name": name, "lastSeen": now, "lastActivity": now})

	async def set_offline(self, user_id: str) -> None:
		await self._touch(user_id, {"online": 0, "lastSeen": self._clock()})

	async def heartbeat(self, user_id: str) -> int:
		now = self._clock()
		await self._touch(user_id, {"lastActivity": now})
		obs_metrics.inc_presence_heartbeat()
		return now

	async def throttled_heartbeat(self, user_id: str, throttle_seconds: Optional[float] = None) -> Tuple[bool, Optional[int]]:
		"""Heartbeat at most once per throttle window per user, across every caller.

		Returns whether a write happened and the activity timestamp now on record.
		"""
		window = settings.presence_activity_throttle_seconds if throttle_seconds is None else throttle_seconds
		window_ms = int(window * 1000)
		if window_ms > 0:
			claimed = await redis_client.set(_throttle_key(user_id), "1", px=window_ms, nx=True)
			if not claimed:
				record = await self.get_record(user_id)
				return False, record.last_activity_at if record else None
		return True, await self.heartbeat(user_id)

	async def get_record(self, user_id: str) -> Optional[PresenceRecord]:
		raw = await redis_client.hgetall(_status_key(user_id))
		if not raw:
			return None
		return PresenceRecord(
			user_id=user_id,
			online=str(raw.get("online", "0")) == "1",
			last_activity_at=_optional_int(raw.get("lastActivity")),
			last_seen_at=_optional_int(raw.get("lastSeen")),
			name=raw.get("name", ""),
		)

	async def is_flagged_online(self, user_id: str) -> bool:
		record = await self.get_record(user_id)
		return bool(record and record.online)

	async def is_recently_active(self, user_id: str, window_seconds: Optional[float] = None) -> bool:
		record = await self.get_record(user_id)
		if record is None:
			return False
		window = settings.presence_online_window_seconds if window_seconds is None else window_seconds
		return record.is_actually_online(self._clock(), window)


__all__ = ["PresenceRecord", "RedisPresenceStore"]
