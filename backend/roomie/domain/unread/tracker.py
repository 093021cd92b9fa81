"""Per-conversation last-read watermarks and the unread counts derived from them."""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Optional, Sequence, Set

from roomie.domain.chat.models import Message
from roomie.domain.common.observers import Disposer, Handler, ObserverSet
from roomie.domain.unread.persistence import WatermarkStore
from roomie.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


def _now_ms() -> int:
	return int(time.time() * 1000)


class UnreadTracker:
	"""Unread state for one viewer.

	The first observation of a conversation only records a watermark at its
	newest message, so existing history never counts as unread. After that, a
	message counts when it is from someone else and newer than the watermark.
	`mark_read` zeroes the count in memory before persisting the watermark.
	"""

	def __init__(
		self,
		viewer_id: str,
		store: WatermarkStore,
		*,
		clock: Callable[[], int] = _now_ms,
	) -> None:
		self.viewer_id = viewer_id
		self.store = store
		self._clock = clock
		self._watermarks: Dict[str, int] = {}
		self._counts: Dict[str, int] = {}
		self._observers: ObserverSet[int] = ObserverSet("unread_total")
		self._loaded = False
		self._provisional: Set[str] = set()

	async def load(self) -> None:
		if self._loaded:
			return
		try:
			stored = await self.store.load(self.viewer_id)
		except Exception:
			# Stays unloaded; the next call retries
			logger.warning("unread.load_failed", extra={"user_id": self.viewer_id}, exc_info=True)
			return
		# Watermarks set in this session win over stored ones, except baselines
		# taken while the store was unreadable
		provisional, self._provisional = self._provisional, set()
		for conversation_id, timestamp in stored.items():
			if conversation_id in provisional or conversation_id not in self._watermarks:
				self._watermarks[conversation_id] = timestamp
		self._loaded = True
		for conversation_id in provisional - set(stored):
			await self._persist(conversation_id, self._watermarks[conversation_id])

	@property
	def loaded(self) -> bool:
		return self._loaded

	@property
	def observed(self) -> bool:
		return len(self._observers) > 0

	def on_change(self, handler: Handler) -> Disposer:
		"""Badge observers receive the new total after every change."""
		return self._observers.add(handler)

	def watermark(self, conversation_id: str) -> Optional[int]:
		return self._watermarks.get(conversation_id)

	def get_unread_count(self, conversation_id: str) -> int:
		return self._counts.get(conversation_id, 0)

	def total_unread(self) -> int:
		return sum(self._counts.values())

	def counts(self) -> Dict[str, int]:
		return dict(self._counts)

	async def observe(self, conversation_id: str, messages: Sequence[Message]) -> int:
		watermark = self._watermarks.get(conversation_id)
		if watermark is None:
			newest = max((message.timestamp for message in messages), default=0)
			self._watermarks[conversation_id] = newest
			await self._set_count(conversation_id, 0)
			if self._loaded:
				await self._persist(conversation_id, newest)
			else:
				self._provisional.add(conversation_id)
			return 0
		count = sum(
			1
			for message in messages
			if message.sender_id != self.viewer_id and message.timestamp > watermark
		)
		await self._set_count(conversation_id, count)
		return count

	async def mark_read(self, conversation_id: str, *, now_ms: Optional[int] = None) -> None:
		timestamp = self._clock() if now_ms is None else now_ms
		self._watermarks[conversation_id] = timestamp
		self._provisional.discard(conversation_id)
		await self._set_count(conversation_id, 0)
		obs_metrics.inc_chat_read()
		await self._persist(conversation_id, timestamp)

	async def mark_all_existing_read(self, conversation_id: str, messages: Sequence[Message]) -> bool:
		if not messages:
			return False
		newest = max(message.timestamp for message in messages)
		self._watermarks[conversation_id] = newest
		self._provisional.discard(conversation_id)
		await self._set_count(conversation_id, 0)
		await self._persist(conversation_id, newest)
		return True

	async def clear(self, conversation_id: str) -> None:
		"""Drop the count and move the watermark to now."""
		self._counts.pop(conversation_id, None)
		timestamp = self._clock()
		self._watermarks[conversation_id] = timestamp
		self._provisional.discard(conversation_id)
		await self._emit()
		await self._persist(conversation_id, timestamp)

	async def clear_all(self) -> None:
		self._counts.clear()
		self._watermarks.clear()
		self._provisional.clear()
		await self._emit()
		try:
			await self.store.delete(self.viewer_id)
		except Exception:
			logger.warning("unread.clear_failed", extra={"user_id": self.viewer_id}, exc_info=True)

	async def _set_count(self, conversation_id: str, count: int) -> None:
		previous = self._counts.get(conversation_id)
		self._counts[conversation_id] = count
		if previous != count:
			await self._emit()

	async def _emit(self) -> None:
		total = self.total_unread()
		obs_metrics.set_unread_total(total)
		await self._observers.emit(total)

	async def _persist(self, conversation_id: str, timestamp: int) -> None:
		try:
			await self.store.save(self.viewer_id, conversation_id, timestamp)
		except Exception:
			# In-memory state stays authoritative for this session
			logger.warning(
				"unread.persist_failed",
				extra={"user_id": self.viewer_id, "conversation_id": conversation_id},
				exc_info=True,
			)


__all__ = ["UnreadTracker"]
