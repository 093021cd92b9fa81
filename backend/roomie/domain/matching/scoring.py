"""Question-by-question compatibility scoring."""

from __future__ import annotations

from typing import Optional

from roomie.domain.profiles.models import Answer, Profile
from roomie.settings import settings

WEIGHT_IDENTICAL = 1.0
WEIGHT_CONTAINED = 0.8
WEIGHT_DIFFERENT = 0.2


def answer_weight(left: Answer, right: Answer) -> float:
	"""Weight of one shared question; symmetric in its arguments."""
	a = left.normalized()
	b = right.normalized()
	if a == b:
		return WEIGHT_IDENTICAL
	if not a or not b:
		# Answered on one side only: counted, contributes nothing
		return 0.0
	if a in b or b in a:
		return WEIGHT_CONTAINED
	return WEIGHT_DIFFERENT


class CompatibilityScorer:
	"""Pure 0-100 compatibility between two answer sets.

	The mean is taken over the overlapping questions only, so two profiles that
	share a single identical answer score 100. That thin-basis sensitivity is
	kept on purpose; callers that care should look at `overlap()`.
	"""

	def __init__(self, *, default: Optional[float] = None) -> None:
		self.default = settings.compatibility_default if default is None else float(default)

	@staticmethod
	def overlap(first: Profile, second: Profile) -> list[str]:
		left = first.answers_by_question()
		right = second.answers_by_question()
		return sorted(set(left) & set(right))

	def score(self, first: Profile, second: Profile) -> float:
		left = first.answers_by_question()
		right = second.answers_by_question()
		shared = sorted(set(left) & set(right))
		if not shared:
			return round(self.default, 2)
		total = sum(answer_weight(left[question], right[question]) for question in shared)
		return round(total / len(shared) * 100.0, 2)


def score(first: Profile, second: Profile) -> float:
	return CompatibilityScorer().score(first, second)


__all__ = ["CompatibilityScorer", "answer_weight", "score"]
