"""Snapshot diffing for newly discovered profiles."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from roomie.domain.common.observers import Disposer, Handler, ObserverSet
from roomie.domain.profiles.models import Profile
from roomie.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class ProfilesAddedEvent:
	added: Tuple[Profile, ...]
	current: Tuple[Profile, ...]

	@property
	def added_ids(self) -> List[str]:
		return [profile.id for profile in self.added]


class ChangeDetector:
	"""Two states: uninitialized until the first snapshot, then watching.

	The first snapshot is the baseline and never reports additions. Removals are
	not signalled.
	"""

	def __init__(self) -> None:
		self._previous: Optional[Tuple[Profile, ...]] = None
		self._observers: ObserverSet[ProfilesAddedEvent] = ObserverSet("profiles_added")

	@property
	def initialized(self) -> bool:
		return self._previous is not None

	@property
	def previous(self) -> Tuple[Profile, ...]:
		return self._previous or ()

	def on_added(self, handler: Handler) -> Disposer:
		return self._observers.add(handler)

	def diff(self, current: Sequence[Profile]) -> Tuple[Profile, ...]:
		known = {profile.id for profile in self.previous}
		return tuple(profile for profile in current if profile.id not in known)

	async def observe(self, current: Sequence[Profile]) -> Optional[ProfilesAddedEvent]:
		snapshot = tuple(current)
		if self._previous is None:
			self._previous = snapshot
			logger.debug("sync.baseline_recorded", extra={"profiles": len(snapshot)})
			return None
		added = self.diff(snapshot)
		# Replaced before observers run so a re-entrant snapshot cannot re-report
		self._previous = snapshot
		if not added:
			return None
		event = ProfilesAddedEvent(added=added, current=snapshot)
		obs_metrics.inc_profiles_added(len(added))
		logger.info("sync.profiles_added", extra={"count": len(added), "profile_ids": event.added_ids})
		await self._observers.emit(event)
		return event

	def reset(self) -> None:
		self._previous = None


__all__ = ["ChangeDetector", "ProfilesAddedEvent"]
