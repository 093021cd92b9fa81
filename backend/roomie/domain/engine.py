"""Matching and live-sync engine: the surface the UI layer talks to."""

from __future__ import annotations

import asyncio
import logging
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from redis.exceptions import RedisError

from roomie.domain.chat.models import conversation_id_for
from roomie.domain.chat.service import ChatService
from roomie.domain.common.observers import Disposer, Handler, ObserverSet
from roomie.domain.errors import ProfileNotFoundError, StoreUnavailableError
from roomie.domain.matching.models import MatchContext, MatchRecord
from roomie.domain.matching.ranking import MatchRanker, RankCoordinator, placeholder_matches
from roomie.domain.profiles.models import Profile
from roomie.domain.profiles.store import ProfileStore, RedisProfileStore
from roomie.domain.sync.watcher import ProfileWatcher
from roomie.domain.unread.persistence import RedisWatermarkStore, WatermarkStore
from roomie.domain.unread.tracker import UnreadTracker
from roomie.settings import settings

logger = logging.getLogger(__name__)


class MatchEngine:
	"""Ties the profile store, ranker, change detection and unread state together.

	`start()` subscribes to the profile collection. Every snapshot advances each
	viewer's rank coordinator and re-ranks for viewers that registered through
	`on_matches_changed`; a re-rank that finishes after a newer snapshot arrived
	is dropped.
	"""

	def __init__(
		self,
		*,
		store: Optional[ProfileStore] = None,
		chat: Optional[ChatService] = None,
		ranker: Optional[MatchRanker] = None,
		watermarks: Optional[WatermarkStore] = None,
	) -> None:
		self.store = store or RedisProfileStore()
		self.chat = chat or ChatService()
		self.ranker = ranker or MatchRanker()
		self.watermarks = watermarks or RedisWatermarkStore()
		self.watcher = ProfileWatcher(self.store)
		self._trackers: "OrderedDict[str, UnreadTracker]" = OrderedDict()
		self.tracker_cache_size = max(1, settings.unread_tracker_cache_size)
		self._coordinators: Dict[str, RankCoordinator] = {}
		self._match_observers: Dict[str, ObserverSet[List[MatchRecord]]] = {}
		self._pins: Dict[str, Set[str]] = {}
		self._tasks: Set[asyncio.Task] = set()
		self.watcher.on_snapshot(self._on_snapshot)

	@staticmethod
	def conversation_id_for(user_one: str, user_two: str) -> str:
		return conversation_id_for(user_one, user_two)

	async def start(self) -> None:
		await self.watcher.start()

	async def stop(self) -> None:
		await self.watcher.stop()
		tasks = list(self._tasks)
		for task in tasks:
			task.cancel()
		for task in tasks:
			try:
				await task
			except asyncio.CancelledError:
				pass
		self._tasks.clear()

	async def compute_matches(
		self,
		me: Profile,
		profiles: Sequence[Profile],
		context: Optional[MatchContext] = None,
	) -> List[MatchRecord]:
		return await self.ranker.rank(me, profiles, context)

	def on_profiles_added(self, handler: Handler) -> Disposer:
		return self.watcher.detector.on_added(handler)

	def on_matches_changed(self, user_id: str, handler: Handler, *, pins: Iterable[str] = ()) -> Disposer:
		observers = self._match_observers.setdefault(user_id, ObserverSet(f"matches:{user_id}"))
		self._pins[user_id] = set(pins)
		remove = observers.add(handler)

		def _release() -> None:
			remove()
			if len(observers) or self._match_observers.get(user_id) is not observers:
				return
			# Last observer gone: drop the viewer's rerank state
			del self._match_observers[user_id]
			self._pins.pop(user_id, None)
			self._coordinators.pop(user_id, None)

		return Disposer(_release)

	def coordinator_for(self, user_id: str) -> RankCoordinator:
		coordinator = self._coordinators.get(user_id)
		if coordinator is None:
			coordinator = RankCoordinator(self.ranker)
			self._coordinators[user_id] = coordinator
		return coordinator

	async def tracker_for(self, viewer_id: str) -> UnreadTracker:
		tracker = self._trackers.get(viewer_id)
		if tracker is None:
			tracker = UnreadTracker(viewer_id, self.watermarks)
			self._trackers[viewer_id] = tracker
			self._evict_trackers()
		else:
			self._trackers.move_to_end(viewer_id)
		await tracker.load()
		return tracker

	def _evict_trackers(self) -> None:
		"""Drop least recently used trackers that have no badge observers."""
		if len(self._trackers) <= self.tracker_cache_size:
			return
		for viewer_id in list(self._trackers)[:-1]:
			if len(self._trackers) <= self.tracker_cache_size:
				break
			if not self._trackers[viewer_id].observed:
				del self._trackers[viewer_id]

	async def get_unread_count(self, viewer_id: str, conversation_id: str) -> int:
		tracker = await self.tracker_for(viewer_id)
		return tracker.get_unread_count(conversation_id)

	async def mark_read(self, viewer_id: str, conversation_id: str, *, now_ms: Optional[int] = None) -> None:
		tracker = await self.tracker_for(viewer_id)
		await tracker.mark_read(conversation_id, now_ms=now_ms)

	async def refresh_unread(self, viewer_id: str) -> Dict[str, Tuple[int, Optional[int]]]:
		"""Re-observe every conversation of the viewer.

		Returns ``{other_user_id: (unread_count, last_message_ms)}``.
		"""
		tracker = await self.tracker_for(viewer_id)
		state: Dict[str, Tuple[int, Optional[int]]] = {}
		for conversation_id in await self.chat.user_conversations(viewer_id):
			participants = await self.chat.participants(conversation_id)
			others = [user for user in participants if user != viewer_id]
			if not others:
				continue
			messages = await self.chat.history(conversation_id)
			count = await tracker.observe(conversation_id, messages)
			last = messages[-1].timestamp if messages else None
			state[others[0]] = (count, last)
		return state

	async def context_for(self, viewer_id: str, pins: Iterable[str] = ()) -> MatchContext:
		state = await self.refresh_unread(viewer_id)
		return MatchContext.build(
			pins=pins,
			unread={other: count for other, (count, _) in state.items()},
			last_activity={other: last for other, (_, last) in state.items() if last is not None},
		)

	async def _load_profiles(self) -> Sequence[Profile]:
		if self.watcher.running and self.watcher.profiles:
			return self.watcher.profiles
		return await self.store.get_all()

	async def matches_for(self, user_id: str, pins: Iterable[str] = ()) -> List[MatchRecord]:
		"""Store-backed ranking; an unreachable store yields placeholder matches."""
		try:
			me = await self.store.get(user_id)
			if me is None:
				raise ProfileNotFoundError(user_id)
			profiles = await self._load_profiles()
			context = await self.context_for(user_id, pins)
		except (StoreUnavailableError, RedisError):
			logger.warning("engine.store_unavailable", extra={"user_id": user_id})
			return placeholder_matches()
		return await self.compute_matches(me, profiles, context)

	async def _on_snapshot(self, profiles: Tuple[Profile, ...]) -> None:
		for user_id, observers in self._match_observers.items():
			if len(observers):
				self.coordinator_for(user_id)
		for coordinator in self._coordinators.values():
			coordinator.advance()
		for user_id, observers in self._match_observers.items():
			if not len(observers):
				continue
			version = self._coordinators[user_id].version
			task = asyncio.create_task(self._rerank(user_id, profiles, observers, version), name=f"rerank:{user_id}")
			self._tasks.add(task)
			task.add_done_callback(self._tasks.discard)

	async def _rerank(
		self,
		user_id: str,
		profiles: Tuple[Profile, ...],
		observers: ObserverSet[List[MatchRecord]],
		version: int,
	) -> None:
		me = next((profile for profile in profiles if user_id in profile.identities()), None)
		if me is None:
			return
		coordinator = self._coordinators.get(user_id)
		if coordinator is None:
			return
		try:
			context = await self.context_for(user_id, self._pins.get(user_id, ()))
			records = await coordinator.rank(me, profiles, context, version=version)
		except Exception:
			logger.exception("engine.rerank_failed", extra={"user_id": user_id})
			return
		if records is not None:
			await observers.emit(records)


__all__ = ["MatchEngine"]
