"""Derived match records and the UI state they are ranked against."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, FrozenSet, Mapping, Optional

from roomie.domain.matching.distance import format_distance
from roomie.domain.profiles.models import Profile

PLACEHOLDER_PREFIX = "placeholder:"


@dataclass(slots=True, frozen=True)
class MatchContext:
	"""Local UI state: pinned ids, unread counts and last activity (ms) per candidate id."""

	pins: FrozenSet[str] = frozenset()
	unread: Mapping[str, int] = field(default_factory=dict)
	last_activity: Mapping[str, int] = field(default_factory=dict)

	@classmethod
	def build(
		cls,
		*,
		pins=None,
		unread: Optional[Mapping[str, int]] = None,
		last_activity: Optional[Mapping[str, int]] = None,
	) -> "MatchContext":
		return cls(
			pins=frozenset(pins or ()),
			unread=dict(unread or {}),
			last_activity=dict(last_activity or {}),
		)

	def is_pinned(self, profile: Profile) -> bool:
		return any(identity in self.pins for identity in profile.identities())

	def unread_for(self, profile: Profile) -> int:
		for identity in (profile.id, profile.alias_id):
			if identity and identity in self.unread:
				return int(self.unread[identity] or 0)
		return 0

	def activity_for(self, profile: Profile) -> Optional[int]:
		for identity in (profile.id, profile.alias_id):
			if identity and self.last_activity.get(identity) is not None:
				return int(self.last_activity[identity])
		return None


@dataclass(slots=True, frozen=True)
class MatchRecord:
	"""Never persisted; recomputed from two profiles plus local state."""

	profile: Profile
	compatibility: float
	distance_miles: Optional[float] = None
	is_pinned: bool = False
	unread_count: int = 0
	last_activity_at: Optional[int] = None
	allergy_info: str = ""

	@property
	def is_placeholder(self) -> bool:
		return self.profile.id.startswith(PLACEHOLDER_PREFIX)

	def to_dict(self) -> dict[str, Any]:
		profile = self.profile
		return {
			"id": profile.id,
			"name": profile.name,
			"major": profile.major,
			"age": profile.age,
			"location": profile.location,
			"instagram": profile.instagram_handle,
			"image": profile.image_ref,
			"compatibility": self.compatibility,
			"distanceMiles": self.distance_miles,
			"distance": format_distance(self.distance_miles),
			"isPinned": self.is_pinned,
			"unreadCount": self.unread_count,
			"lastActivityAt": self.last_activity_at,
			"allergyInfo": self.allergy_info,
			"isPlaceholder": self.is_placeholder,
		}


__all__ = ["MatchContext", "MatchRecord", "PLACEHOLDER_PREFIX"]
