"""Observer registration with explicit disposers."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Generic, List, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")

Handler = Callable[[T], Union[None, Awaitable[None]]]


class Disposer:
	"""Callable handle that removes a registration exactly once."""

	def __init__(self, release: Callable[[], None]) -> None:
		self._release = release
		self._disposed = False

	@property
	def disposed(self) -> bool:
		return self._disposed

	def __call__(self) -> None:
		if self._disposed:
			return
		self._disposed = True
		self._release()


class ObserverSet(Generic[T]):
	"""Ordered set of handlers; sync and async handlers are both accepted.

	A failing handler is logged and does not prevent the remaining handlers
	from receiving the event.
	"""

	def __init__(self, name: str) -> None:
		self.name = name
		self._handlers: List[Handler] = []

	def __len__(self) -> int:
		return len(self._handlers)

	def add(self, handler: Handler) -> Disposer:
		self._handlers.append(handler)

		def _release() -> None:
			try:
				self._handlers.remove(handler)
			except ValueError:
				pass

		return Disposer(_release)

	def clear(self) -> None:
		self._handlers.clear()

	async def emit(self, event: Any) -> None:
		for handler in list(self._handlers):
			try:
				result = handler(event)
				if inspect.isawaitable(result):
					await result
			except Exception:
				logger.exception("observers.handler_failed", extra={"observer": self.name})


__all__ = ["Disposer", "Handler", "ObserverSet"]
