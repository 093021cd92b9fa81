"""Profile documents and their normalised in-memory form."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, FrozenSet, Mapping, Optional, Tuple

from roomie.domain.errors import ProfileDataError

# Fields that may carry the canonical identity, in priority order
_IDENTITY_FIELDS = ("id", "userId", "user_id")


def _first(doc: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
	for key in keys:
		value = doc.get(key)
		if value is not None and value != "":
			return value
	return default


def _as_float(value: Any, default: float = 0.0) -> float:
	try:
		return float(value)
	except (TypeError, ValueError):
		return default


def _as_int(value: Any) -> Optional[int]:
	try:
		return int(str(value).strip())
	except (TypeError, ValueError):
		return None


@dataclass(slots=True, frozen=True)
class Coordinates:
	lat: float
	lng: float

	@classmethod
	def from_document(cls, raw: Any) -> Optional["Coordinates"]:
		if not isinstance(raw, Mapping):
			return None
		lat = raw.get("lat", raw.get("latitude"))
		lng = raw.get("lng", raw.get("lon", raw.get("longitude")))
		try:
			return cls(lat=float(lat), lng=float(lng))
		except (TypeError, ValueError):
			return None

	def to_dict(self) -> dict:
		return {"lat": self.lat, "lng": self.lng}


@dataclass(slots=True, frozen=True)
class Answer:
	question_id: str
	answer_text: str
	sentiment_score: float = 0.5
	question: str = ""

	@classmethod
	def from_document(cls, raw: Mapping[str, Any]) -> Optional["Answer"]:
		question_id = _first(raw, "questionId", "question_id", "q")
		if question_id is None:
			return None
		text = _first(raw, "answer", "answerText", "answer_text", "a", default="")
		return cls(
			question_id=str(question_id),
			answer_text=str(text),
			sentiment_score=_as_float(_first(raw, "sentimentScore", "sentiment_score"), 0.5),
			question=str(raw.get("question") or ""),
		)

	def normalized(self) -> str:
		return self.answer_text.strip().lower()

	def to_dict(self) -> dict:
		return {
			"questionId": self.question_id,
			"question": self.question,
			"answer": self.answer_text,
			"sentimentScore": self.sentiment_score,
		}


@dataclass(slots=True, frozen=True)
class Profile:
	"""A roommate-seeker profile keyed by a single canonical identity."""

	id: str
	name: str
	answers: Tuple[Answer, ...] = ()
	location: str = ""
	coordinates: Optional[Coordinates] = None
	major: str = ""
	age: Optional[int] = None
	instagram_handle: str = ""
	image_ref: str = ""
	compatibility_base_score: float = 0.0
	created_at: int = 0
	alias_id: Optional[str] = None
	is_test_profile: bool = False
	extra: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

	@classmethod
	def from_document(cls, doc: Mapping[str, Any]) -> "Profile":
		"""Normalise a stored document; either `id` or `userId` may carry identity."""
		if not isinstance(doc, Mapping):
			raise ProfileDataError("document_not_mapping")
		identities = [str(doc[key]).strip() for key in _IDENTITY_FIELDS if doc.get(key) not in (None, "")]
		identities = [value for value in identities if value]
		if not identities:
			raise ProfileDataError("missing_identity")
		canonical = identities[0]
		alias = next((value for value in identities[1:] if value != canonical), None)
		raw_answers = doc.get("answers") or ()
		if not isinstance(raw_answers, (list, tuple)):
			raise ProfileDataError("invalid_answers")
		answers = tuple(
			answer
			for answer in (Answer.from_document(item) for item in raw_answers if isinstance(item, Mapping))
			if answer is not None
		)
		known = {
			"id", "userId", "user_id", "name", "displayName", "answers", "location", "coordinates",
			"major", "age", "instagram", "instagramHandle", "image", "imageRef", "score",
			"compatibilityBaseScore", "createdAt", "created_at", "timestamp", "isTestProfile",
		}
		return cls(
			id=canonical,
			name=str(_first(doc, "name", "displayName", default="")).strip(),
			answers=answers,
			location=str(doc.get("location") or "").strip(),
			coordinates=Coordinates.from_document(doc.get("coordinates")),
			major=str(doc.get("major") or ""),
			age=_as_int(doc.get("age")),
			instagram_handle=str(_first(doc, "instagramHandle", "instagram", default="")),
			image_ref=str(_first(doc, "imageRef", "image", default="")),
			compatibility_base_score=_as_float(_first(doc, "compatibilityBaseScore", "score"), 0.0),
			created_at=_as_int(_first(doc, "createdAt", "created_at", "timestamp")) or 0,
			alias_id=alias,
			is_test_profile=bool(doc.get("isTestProfile", False)),
			extra={key: value for key, value in doc.items() if key not in known},
		)

	def to_document(self) -> dict:
		doc: dict[str, Any] = dict(self.extra)
		doc.update(
			{
				"id": self.id,
				"name": self.name,
				"answers": [answer.to_dict() for answer in self.answers],
				"location": self.location,
				"major": self.major,
				"age": self.age,
				"instagram": self.instagram_handle,
				"image": self.image_ref,
				"compatibilityBaseScore": self.compatibility_base_score,
				"createdAt": self.created_at,
			}
		)
		if self.coordinates is not None:
			doc["coordinates"] = self.coordinates.to_dict()
		if self.alias_id:
			doc["userId"] = self.alias_id
		if self.is_test_profile:
			doc["isTestProfile"] = True
		return doc

	def identities(self) -> FrozenSet[str]:
		if self.alias_id:
			return frozenset((self.id, self.alias_id))
		return frozenset((self.id,))

	def answers_by_question(self) -> dict[str, Answer]:
		# First answer wins when a question was answered twice
		mapping: dict[str, Answer] = {}
		for answer in self.answers:
			mapping.setdefault(answer.question_id, answer)
		return mapping

	def with_updates(self, **changes: Any) -> "Profile":
		return replace(self, **changes)


__all__ = ["Answer", "Coordinates", "Profile"]
