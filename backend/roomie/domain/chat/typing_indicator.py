"""Typing flag with an idle timeout."""

from __future__ import annotations

import asyncio
import logging
from contextlib import suppress
from typing import Optional

from roomie.domain.chat.service import ChatService
from roomie.settings import settings

logger = logging.getLogger(__name__)


class TypingIndicator:
	"""One per open conversation view.

	`keystroke()` raises the flag and (re)arms an idle timer; the flag drops
	after `idle_seconds` without input, on `sent()`, or on `stop()`.
	"""

	def __init__(
		self,
		chat: ChatService,
		conversation_id: str,
		user_id: str,
		*,
		idle_seconds: Optional[float] = None,
	) -> None:
		self.chat = chat
		self.conversation_id = conversation_id
		self.user_id = user_id
		self.idle_seconds = settings.typing_idle_seconds if idle_seconds is None else idle_seconds
		self._typing = False
		self._idle_task: Optional[asyncio.Task] = None

	@property
	def typing(self) -> bool:
		return self._typing

	async def keystroke(self) -> None:
		if not self._typing:
			self._typing = True
			await self.chat.set_typing(self.conversation_id, self.user_id, True)
		self._cancel_idle()
		self._idle_task = asyncio.create_task(self._expire(), name=f"typing:{self.conversation_id}:{self.user_id}")

	async def sent(self) -> None:
		await self.stop()

	async def stop(self) -> None:
		task = self._idle_task
		self._idle_task = None
		if task is not None and task is not asyncio.current_task():
			task.cancel()
			with suppress(asyncio.CancelledError):
				await task
		await self._clear()

	def _cancel_idle(self) -> None:
		if self._idle_task is not None:
			self._idle_task.cancel()
			self._idle_task = None

	async def _expire(self) -> None:
		await asyncio.sleep(self.idle_seconds)
		self._idle_task = None
		await self._clear()

	async def _clear(self) -> None:
		if not self._typing:
			return
		self._typing = False
		try:
			await self.chat.set_typing(self.conversation_id, self.user_id, False)
		except Exception:
			logger.warning("chat.typing_clear_failed", extra={"conversation_id": self.conversation_id}, exc_info=True)


__all__ = ["TypingIndicator"]
