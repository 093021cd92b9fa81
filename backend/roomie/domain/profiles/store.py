"""Profile store adapter backed by a Redis hash with pub/sub change notifications."""

from __future__ import annotations

import json
import logging
from typing import Awaitable, Callable, List, Optional, Protocol, Union

from roomie.domain.errors import ProfileDataError, StoreUnavailableError
from roomie.domain.profiles.models import Profile
from roomie.infra.redis import redis_client
from roomie.infra.subscriptions import Subscription, subscribe_snapshots
from roomie.obs import metrics as obs_metrics
from roomie.settings import settings

logger = logging.getLogger(__name__)

PROFILES_KEY = "profiles"
PROFILES_CHANNEL = "profiles:changed"

ProfilesHandler = Callable[[List[Profile]], Union[None, Awaitable[None]]]


class ProfileStore(Protocol):
	async def get(self, profile_id: str) -> Optional[Profile]:
		...

	async def get_all(self) -> List[Profile]:
		...

	async def subscribe(self, on_change: ProfilesHandler) -> Subscription:
		...

	async def put(self, profile: Profile) -> None:
		...


def _decode(raw: str) -> Profile:
	try:
		doc = json.loads(raw)
	except (TypeError, ValueError) as exc:
		raise ProfileDataError("invalid_json") from exc
	try:
		return Profile.from_document(doc)
	except (TypeError, ValueError) as exc:
		raise ProfileDataError("invalid_document") from exc


class RedisProfileStore:
	"""Point reads, bulk reads, full-replace writes and snapshot subscriptions.

	Identity normalisation happens here: every profile leaving the adapter has a
	single canonical `id`, whichever of `id` / `userId` the stored document used.
	"""

	def __init__(self, *, key: str = PROFILES_KEY, channel: str = PROFILES_CHANNEL) -> None:
		self.key = key
		self.channel = channel

	async def get(self, profile_id: str) -> Optional[Profile]:
		try:
			raw = await redis_client.hget(self.key, profile_id)
		except Exception as exc:
			raise StoreUnavailableError("profile_read_failed") from exc
		if raw is not None:
			try:
				return _decode(raw)
			except ProfileDataError:
				obs_metrics.inc_profile_rejected()
				logger.warning("profiles.document_rejected", extra={"profile_id": profile_id})
				return None
		# The document may be keyed by an alias identity
		for profile in await self.get_all():
			if profile_id in profile.identities():
				return profile
		return None

	async def get_all(self) -> List[Profile]:
		try:
			rows = await redis_client.hgetall(self.key)
		except Exception as exc:
			raise StoreUnavailableError("profile_scan_failed") from exc
		profiles: List[Profile] = []
		for key, raw in sorted(rows.items()):
			try:
				profiles.append(_decode(raw))
			except ProfileDataError as exc:
				obs_metrics.inc_profile_rejected()
				logger.warning("profiles.document_rejected", extra={"profile_key": key, "reason": str(exc)})
		return profiles

	async def put(self, profile: Profile) -> None:
		document = json.dumps(profile.to_document(), separators=(",", ":"))
		try:
			await redis_client.hset(self.key, profile.id, document)
			await redis_client.publish_json(self.channel, {"op": "put", "id": profile.id})
		except Exception as exc:
			raise StoreUnavailableError("profile_write_failed") from exc

	async def reset(self, profile_id: str) -> bool:
		"""Explicit reset; the only path that removes a profile."""
		removed = await redis_client.hdel(self.key, profile_id)
		if removed:
			await redis_client.publish_json(self.channel, {"op": "reset", "id": profile_id})
		return bool(removed)

	async def subscribe(self, on_change: ProfilesHandler) -> Subscription:
		return await subscribe_snapshots(
			self.channel,
			self.get_all,
			on_change,
			resync_interval_seconds=settings.profile_resync_interval_seconds,
			label="profiles",
		)


__all__ = ["PROFILES_CHANNEL", "PROFILES_KEY", "ProfileStore", "ProfilesHandler", "RedisProfileStore"]
