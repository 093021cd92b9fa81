"""Feeds live conversation snapshots into an UnreadTracker."""

from __future__ import annotations

import logging
from typing import Dict, List

from roomie.domain.chat.models import Message
from roomie.domain.chat.service import ChatService
from roomie.domain.unread.tracker import UnreadTracker
from roomie.infra.subscriptions import Subscription

logger = logging.getLogger(__name__)


class ConversationWatcher:
	def __init__(self, chat: ChatService, tracker: UnreadTracker) -> None:
		self.chat = chat
		self.tracker = tracker
		self._subscriptions: Dict[str, Subscription] = {}

	@property
	def watching(self) -> List[str]:
		return sorted(self._subscriptions)

	async def watch(self, conversation_id: str) -> Subscription:
		"""Start observing; the returned subscription's `close()` ends it."""
		subscription = self._subscriptions.get(conversation_id)
		if subscription is None:
			async def _on_messages(messages: List[Message]) -> None:
				await self.tracker.observe(conversation_id, messages)

			subscription = await self.chat.subscribe(conversation_id, _on_messages)
			self._subscriptions[conversation_id] = subscription
			logger.debug("unread.watch_started", extra={"conversation_id": conversation_id})
		return subscription

	async def unwatch(self, conversation_id: str) -> None:
		subscription = self._subscriptions.pop(conversation_id, None)
		if subscription is not None:
			await subscription.close()

	async def close(self) -> None:
		for conversation_id in list(self._subscriptions):
			await self.unwatch(conversation_id)


__all__ = ["ConversationWatcher"]
