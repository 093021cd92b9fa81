"""Per-session presence lifecycle: online flag, throttled activity and a refresh loop."""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import suppress
from typing import Callable, Optional

from roomie.domain.presence.store import RedisPresenceStore
from roomie.obs import metrics as obs_metrics
from roomie.settings import settings

logger = logging.getLogger(__name__)


class PresenceTracker:
	"""Owned by exactly one session; `stop()` revokes every timer it started.

	Input events call `record_activity()`, which writes a heartbeat at most once
	per throttle interval. While started and visible, a background task also
	writes a heartbeat every refresh interval.
	"""

	def __init__(
		self,
		user_id: str,
		name: str = "",
		*,
		store: Optional[RedisPresenceStore] = None,
		throttle_seconds: Optional[float] = None,
		refresh_interval_seconds: Optional[float] = None,
		online_window_seconds: Optional[float] = None,
		monotonic: Callable[[], float] = time.monotonic,
	) -> None:
		self.user_id = user_id
		self.name = name
		self.store = store or RedisPresenceStore()
		self.throttle_seconds = (
			settings.presence_activity_throttle_seconds if throttle_seconds is None else throttle_seconds
		)
		self.refresh_interval_seconds = (
			settings.presence_refresh_interval_seconds if refresh_interval_seconds is None else refresh_interval_seconds
		)
		self.online_window_seconds = (
			settings.presence_online_window_seconds if online_window_seconds is None else online_window_seconds
		)
		self._monotonic = monotonic
		self._last_activity_sent: Optional[float] = None
		self._refresh_task: Optional[asyncio.Task] = None
		self._started = False
		self._hidden = False

	@property
	def started(self) -> bool:
		return self._started

	@property
	def refreshing(self) -> bool:
		return self._refresh_task is not None and not self._refresh_task.done()

	async def start(self) -> None:
		if self._started:
			return
		self._started = True
		self._hidden = False
		obs_metrics.presence_tracker_started()
		await self._go_online()
		logger.info("presence.session_started", extra={"user_id": self.user_id})

	async def stop(self) -> None:
		if not self._started:
			return
		self._started = False
		obs_metrics.presence_tracker_stopped()
		await self._cancel_refresh()
		self._last_activity_sent = None
		try:
			await self.store.set_offline(self.user_id)
		except Exception:
			logger.warning("presence.offline_failed", extra={"user_id": self.user_id}, exc_info=True)
		logger.info("presence.session_stopped", extra={"user_id": self.user_id})

	async def record_activity(self) -> bool:
		"""Heartbeat on input; returns False when throttled or inactive."""
		if not self._started or self._hidden:
			return False
		now = self._monotonic()
		if self._last_activity_sent is not None and now - self._last_activity_sent < self.throttle_seconds:
			return False
		self._last_activity_sent = now
		await self.store.heartbeat(self.user_id)
		return True

	async def visibility_changed(self, hidden: bool) -> None:
		if not self._started or hidden == self._hidden:
			return
		self._hidden = hidden
		if hidden:
			await self._cancel_refresh()
			await self.store.set_offline(self.user_id)
		else:
			await self._go_online()

	async def is_actually_online(self, other_user_id: str) -> bool:
		return await self.store.is_recently_active(other_user_id, self.online_window_seconds)

	async def _go_online(self) -> None:
		await self.store.set_online(self.user_id, self.name)
		await self.store.heartbeat(self.user_id)
		self._last_activity_sent = self._monotonic()
		if not self.refreshing:
			self._refresh_task = asyncio.create_task(self._refresh_loop(), name=f"presence-refresh:{self.user_id}")

	async def _cancel_refresh(self) -> None:
		task = self._refresh_task
		self._refresh_task = None
		if task is not None:
			task.cancel()
			with suppress(asyncio.CancelledError):
				await task

	async def _refresh_loop(self) -> None:
		interval = max(0.05, float(self.refresh_interval_seconds))
		while True:
			await asyncio.sleep(interval)
			try:
				await self.store.heartbeat(self.user_id)
			except Exception:
				logger.warning("presence.refresh_failed", extra={"user_id": self.user_id}, exc_info=True)


__all__ = ["PresenceTracker"]
