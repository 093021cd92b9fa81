"""Snapshot subscriptions over Redis pub/sub.

A subscription delivers the full current collection to its handler:
once immediately on start, again on every change notification published to
its channel, and periodically as a re-pull so a dropped notification heals
within one resync interval.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from contextlib import suppress
from typing import Awaitable, Callable, Generic, Optional, TypeVar, Union

from roomie.infra.redis import redis_client
from roomie.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)

T = TypeVar("T")

Loader = Callable[[], Awaitable[T]]
SnapshotHandler = Callable[[T], Union[None, Awaitable[None]]]

# Upper bound on a single pub/sub poll so close() is honoured promptly
_POLL_SECONDS = 1.0


class Subscription(Generic[T]):
	"""Handle for one snapshot subscription; `close()` is the disposer."""

	def __init__(
		self,
		*,
		channel: str,
		loader: Loader,
		handler: SnapshotHandler,
		resync_interval_seconds: float,
		label: Optional[str] = None,
	) -> None:
		self.channel = channel
		self.label = label or channel
		self._loader = loader
		self._handler = handler
		self._resync_interval = max(0.05, float(resync_interval_seconds))
		self._pubsub = None
		self._task: Optional[asyncio.Task] = None
		self._closed = False
		self.deliveries = 0

	@property
	def active(self) -> bool:
		return self._task is not None and not self._closed

	async def start(self) -> "Subscription[T]":
		if self._task is not None:
			return self
		self._pubsub = redis_client.pubsub()
		await self._pubsub.subscribe(self.channel)
		await self._deliver("initial")
		self._task = asyncio.create_task(self._listen(), name=f"subscription:{self.channel}")
		return self

	async def close(self) -> None:
		if self._closed:
			return
		self._closed = True
		task = self._task
		if task is not None:
			task.cancel()
			with suppress(asyncio.CancelledError):
				await task
		pubsub = self._pubsub
		self._pubsub = None
		if pubsub is not None:
			try:
				await pubsub.unsubscribe(self.channel)
				await pubsub.aclose()
			except Exception:  # pragma: no cover - connection already gone
				logger.debug("subscription.close_failed", extra={"channel": self.channel}, exc_info=True)

	async def refresh(self) -> None:
		"""Force a re-pull outside the notification path."""
		await self._deliver("manual")

	async def _listen(self) -> None:
		loop = asyncio.get_running_loop()
		last_delivery = loop.time()
		while not self._closed:
			remaining = self._resync_interval - (loop.time() - last_delivery)
			if remaining <= 0:
				await self._deliver("resync")
				last_delivery = loop.time()
				continue
			try:
				message = await self._pubsub.get_message(
					ignore_subscribe_messages=True,
					timeout=min(remaining, _POLL_SECONDS),
				)
			except Exception:
				logger.warning("subscription.poll_failed", extra={"channel": self.channel}, exc_info=True)
				await asyncio.sleep(min(remaining, _POLL_SECONDS))
				continue
			if message and message.get("type") == "message":
				await self._deliver("change")
				last_delivery = loop.time()

	async def _deliver(self, trigger: str) -> None:
		try:
			snapshot = await self._loader()
		except Exception:
			# Transient store failure: the next change or resync retries
			logger.warning("subscription.load_failed", extra={"channel": self.channel, "trigger": trigger}, exc_info=True)
			return
		obs_metrics.inc_subscription_snapshot(self.label, trigger)
		self.deliveries += 1
		try:
			result = self._handler(snapshot)
			if inspect.isawaitable(result):
				await result
		except Exception:
			logger.exception("subscription.handler_failed", extra={"channel": self.channel, "trigger": trigger})


async def subscribe_snapshots(
	channel: str,
	loader: Loader,
	handler: SnapshotHandler,
	*,
	resync_interval_seconds: float,
	label: Optional[str] = None,
) -> Subscription:
	subscription: Subscription = Subscription(
		channel=channel,
		loader=loader,
		handler=handler,
		resync_interval_seconds=resync_interval_seconds,
		label=label,
	)
	return await subscription.start()


__all__ = ["Subscription", "subscribe_snapshots"]
