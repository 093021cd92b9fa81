"""Candidate filtering and the tie-break ordering of match lists."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Iterable, List, Optional, Sequence, Tuple

from roomie.domain.matching.distance import DistanceEstimator
from roomie.domain.matching.models import PLACEHOLDER_PREFIX, MatchContext, MatchRecord
from roomie.domain.matching.scoring import CompatibilityScorer
from roomie.domain.profiles.models import Answer, Profile
from roomie.obs import metrics as obs_metrics
from roomie.settings import settings

logger = logging.getLogger(__name__)

NO_ALLERGY_INFO = "No allergies specified"

_PLACEHOLDER_PEOPLE = (
	("Sample Match A", "Undeclared", 82.5),
	("Sample Match B", "Undeclared", 74.0),
	("Sample Match C", "Undeclared", 61.25),
	("Sample Match D", "Undeclared", 55.0),
	("Sample Match E", "Undeclared", 50.0),
)


def extract_allergy_info(answers: Iterable[Answer]) -> str:
	for answer in answers:
		if "allerg" in answer.question_id.lower() or "allerg" in answer.question.lower():
			if answer.answer_text.strip():
				return answer.answer_text
			break
	return NO_ALLERGY_INFO


def placeholder_matches(count: Optional[int] = None) -> List[MatchRecord]:
	"""Clearly fake records shown when the store cannot be read at all."""
	total = settings.placeholder_match_count if count is None else count
	records: List[MatchRecord] = []
	for index in range(max(0, total)):
		name, major, compatibility = _PLACEHOLDER_PEOPLE[index % len(_PLACEHOLDER_PEOPLE)]
		profile = Profile(id=f"{PLACEHOLDER_PREFIX}{index + 1}", name=name, major=major, is_test_profile=True)
		records.append(MatchRecord(profile=profile, compatibility=compatibility, allergy_info=NO_ALLERGY_INFO))
	obs_metrics.inc_matches_computed("placeholder")
	return records


def _sort_key(record: MatchRecord) -> Tuple:
	activity = record.last_activity_at
	distance = record.distance_miles
	return (
		0 if record.is_pinned else 1,
		0 if record.unread_count > 0 else 1,
		0 if activity is not None else 1,
		-(activity or 0),
		0 if distance is not None else 1,
		distance if distance is not None else 0.0,
		-record.compatibility,
	)


class MatchRanker:
	"""Scores, filters and orders candidates for one viewer.

	Ordering is pinned, then unread, then most recent activity, then nearest
	known distance, then compatibility. `sorted` is stable, so candidates equal
	on every key keep their input order.
	"""

	def __init__(
		self,
		*,
		scorer: Optional[CompatibilityScorer] = None,
		estimator: Optional[DistanceEstimator] = None,
		limit: Optional[int] = None,
		concurrency: Optional[int] = None,
	) -> None:
		self.scorer = scorer or CompatibilityScorer()
		self.estimator = estimator or DistanceEstimator()
		self.limit = settings.match_limit if limit is None else limit
		self.concurrency = max(1, settings.rank_concurrency if concurrency is None else concurrency)

	def eligible(self, me: Profile, candidates: Sequence[Profile]) -> List[Profile]:
		mine = me.identities()
		seen: set[str] = set()
		survivors: List[Profile] = []
		for candidate in candidates:
			if candidate.identities() & mine:
				obs_metrics.inc_candidate_skipped("self")
				continue
			if not candidate.name.strip():
				obs_metrics.inc_candidate_skipped("missing_name")
				logger.warning("matching.profile_skipped", extra={"profile_id": candidate.id, "reason": "missing_name"})
				continue
			if candidate.id in seen:
				obs_metrics.inc_candidate_skipped("duplicate")
				continue
			seen.add(candidate.id)
			survivors.append(candidate)
		return survivors

	async def build_record(self, me: Profile, candidate: Profile, context: MatchContext) -> MatchRecord:
		distance = await self.estimator.estimate(
			me.location,
			candidate.location,
			coordinates_a=me.coordinates,
			coordinates_b=candidate.coordinates,
		)
		return MatchRecord(
			profile=candidate,
			compatibility=self.scorer.score(me, candidate),
			distance_miles=distance,
			is_pinned=context.is_pinned(candidate),
			unread_count=context.unread_for(candidate),
			last_activity_at=context.activity_for(candidate),
			allergy_info=extract_allergy_info(candidate.answers),
		)

	async def rank(
		self,
		me: Profile,
		candidates: Sequence[Profile],
		context: Optional[MatchContext] = None,
	) -> List[MatchRecord]:
		started = time.perf_counter()
		context = context or MatchContext()
		gate = asyncio.Semaphore(self.concurrency)

		async def _build(candidate: Profile) -> MatchRecord:
			async with gate:
				return await self.build_record(me, candidate, context)

		# gather keeps input order so the stable sort still breaks full ties by position
		records = await asyncio.gather(*(_build(candidate) for candidate in self.eligible(me, candidates)))
		ordered = sorted(records, key=_sort_key)[: max(0, self.limit)]
		obs_metrics.observe_rank_duration(time.perf_counter() - started)
		obs_metrics.inc_matches_computed("ranked")
		logger.debug(
			"matching.ranked",
			extra={"user_id": me.id, "candidates": len(candidates), "returned": len(ordered)},
		)
		return ordered


class RankCoordinator:
	"""Tags each rank with the snapshot version it was computed against.

	`advance()` is called whenever a newer profile snapshot arrives. A rank that
	completes after a newer snapshot has arrived is discarded so it never
	replaces a result computed from newer input.
	"""

	def __init__(self, ranker: Optional[MatchRanker] = None) -> None:
		self.ranker = ranker or MatchRanker()
		self._version = 0
		self._latest: Optional[List[MatchRecord]] = None
		self._latest_version = -1

	@property
	def version(self) -> int:
		return self._version

	@property
	def latest(self) -> Optional[List[MatchRecord]]:
		return self._latest

	def advance(self) -> int:
		self._version += 1
		return self._version

	def is_stale(self, version: int) -> bool:
		return version < self._version or version < self._latest_version

	async def rank(
		self,
		me: Profile,
		candidates: Sequence[Profile],
		context: Optional[MatchContext] = None,
		*,
		version: Optional[int] = None,
	) -> Optional[List[MatchRecord]]:
		"""Rank against a snapshot version (default: current); ``None`` when the result went stale."""
		version = self._version if version is None else version
		records = await self.ranker.rank(me, candidates, context)
		if self.is_stale(version):
			obs_metrics.inc_stale_rank_discarded()
			logger.info("matching.stale_rank_discarded", extra={"version": version, "current": self._version})
			return None
		self._latest = records
		self._latest_version = version
		return records


__all__ = [
	"MatchRanker",
	"NO_ALLERGY_INFO",
	"RankCoordinator",
	"extract_allergy_info",
	"placeholder_matches",
]
