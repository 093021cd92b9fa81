"""Keeps a live copy of the profile collection and fans snapshots out."""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Tuple

from roomie.domain.common.observers import Disposer, Handler, ObserverSet
from roomie.domain.profiles.models import Profile
from roomie.domain.profiles.store import ProfileStore
from roomie.domain.sync.changes import ChangeDetector
from roomie.infra.subscriptions import Subscription

logger = logging.getLogger(__name__)


class ProfileWatcher:
	def __init__(self, store: ProfileStore, *, detector: Optional[ChangeDetector] = None) -> None:
		self.store = store
		self.detector = detector or ChangeDetector()
		self.profiles: Tuple[Profile, ...] = ()
		self.version = 0
		self._snapshots: ObserverSet[Tuple[Profile, ...]] = ObserverSet("profile_snapshots")
		self._subscription: Optional[Subscription] = None

	@property
	def running(self) -> bool:
		return self._subscription is not None

	def on_snapshot(self, handler: Handler) -> Disposer:
		return self._snapshots.add(handler)

	async def start(self) -> None:
		if self._subscription is not None:
			return
		self._subscription = await self.store.subscribe(self.handle_snapshot)
		logger.info("sync.watcher_started", extra={"profiles": len(self.profiles)})

	async def stop(self) -> None:
		subscription = self._subscription
		self._subscription = None
		if subscription is not None:
			await subscription.close()
			logger.info("sync.watcher_stopped")

	async def refresh(self) -> None:
		if self._subscription is not None:
			await self._subscription.refresh()

	async def handle_snapshot(self, profiles: Sequence[Profile]) -> None:
		self.version += 1
		self.profiles = tuple(profiles)
		await self.detector.observe(self.profiles)
		await self._snapshots.emit(self.profiles)


__all__ = ["ProfileWatcher"]
