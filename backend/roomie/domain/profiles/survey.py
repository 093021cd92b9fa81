"""Survey intake: validate submitted answers and build the stored profile.

Validation happens here, synchronously, so the scorer only ever sees
well-formed answer sets.
"""

from __future__ import annotations

import time
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, Field, ValidationError

from roomie.domain.errors import SurveyValidationError
from roomie.domain.profiles.models import Answer, Coordinates, Profile

MIN_AGE = 16
MAX_AGE = 99

# Questions answered by picking a keyword; anything else is rejected
KEYWORD_QUESTIONS: Dict[str, FrozenSet[str]] = {
	"sleep_schedule": frozenset({"morning", "night", "between"}),
	"cleanliness": frozenset({"tidy", "relaxed"}),
	"noise": frozenset({"quiet", "music"}),
	"guests": frozenset({"private", "merrier"}),
	"smoking": frozenset({"yes", "no"}),
}

KEYWORD_SENTIMENT: Dict[str, float] = {
	"morning": 1.0,
	"tidy": 1.0,
	"quiet": 1.0,
	"private": 0.5,
	"no": 1.0,
	"night": 0.8,
	"relaxed": 0.8,
	"music": 0.7,
	"merrier": 0.9,
	"between": 0.9,
	"yes": 0.3,
}

DEFAULT_SENTIMENT = 0.5

QUESTION_WEIGHTS: Dict[str, float] = {
	"cleanliness": 1.5,
	"smoking": 1.5,
	"noise": 1.2,
}


class SurveyAnswer(BaseModel):
	question_id: str = Field(..., min_length=1, max_length=64)
	question: str = ""
	answer: str = Field(..., max_length=2000)


class CoordinatesIn(BaseModel):
	lat: float = Field(..., ge=-90, le=90)
	lng: float = Field(..., ge=-180, le=180)


class SurveySubmission(BaseModel):
	user_id: str = Field(..., min_length=1, max_length=128)
	name: str = Field(..., max_length=120)
	age: int
	major: str = ""
	location: str = Field(default="", max_length=200)
	coordinates: Optional[CoordinatesIn] = None
	instagram: str = ""
	image: str = ""
	answers: List[SurveyAnswer] = Field(default_factory=list)


def sentiment_for(answer_text: str) -> float:
	return KEYWORD_SENTIMENT.get(answer_text.strip().lower(), DEFAULT_SENTIMENT)


def compute_base_score(answers: List[Answer]) -> float:
	"""Weighted mean of answer sentiments; 0.0 for an empty survey."""
	if not answers:
		return 0.0
	total = 0.0
	weight_sum = 0.0
	for answer in answers:
		weight = QUESTION_WEIGHTS.get(answer.question_id, 1.0)
		total += weight * answer.sentiment_score
		weight_sum += weight
	return round(total / weight_sum, 4)


def validate_submission(submission: SurveySubmission) -> None:
	if not submission.name.strip():
		raise SurveyValidationError("name", "required")
	if not MIN_AGE <= submission.age <= MAX_AGE:
		raise SurveyValidationError("age", "out_of_range")
	seen: set[str] = set()
	for item in submission.answers:
		question_id = item.question_id.strip()
		if question_id in seen:
			raise SurveyValidationError(question_id, "duplicate_answer")
		seen.add(question_id)
		text = item.answer.strip()
		if not text:
			raise SurveyValidationError(question_id, "empty_answer")
		allowed = KEYWORD_QUESTIONS.get(question_id)
		if allowed is not None and text.lower() not in allowed:
			raise SurveyValidationError(question_id, "unrecognized_keyword")


def parse_submission(payload: dict) -> SurveySubmission:
	"""Parse and validate raw input, raising SurveyValidationError on any problem."""
	try:
		submission = SurveySubmission.model_validate(payload)
	except ValidationError as exc:
		first = exc.errors()[0] if exc.errors() else {}
		location = ".".join(str(part) for part in first.get("loc", ())) or "payload"
		raise SurveyValidationError(location, first.get("type", "invalid")) from exc
	validate_submission(submission)
	return submission


def build_profile(submission: SurveySubmission, *, now_ms: Optional[int] = None) -> Profile:
	validate_submission(submission)
	answers = [
		Answer(
			question_id=item.question_id.strip(),
			answer_text=item.answer.strip(),
			sentiment_score=sentiment_for(item.answer),
			question=item.question,
		)
		for item in submission.answers
	]
	coordinates = None
	if submission.coordinates is not None:
		coordinates = Coordinates(lat=submission.coordinates.lat, lng=submission.coordinates.lng)
	return Profile(
		id=submission.user_id.strip(),
		name=submission.name.strip(),
		answers=tuple(answers),
		location=submission.location.strip(),
		coordinates=coordinates,
		major=submission.major.strip(),
		age=submission.age,
		instagram_handle=submission.instagram.strip().lstrip("@"),
		image_ref=submission.image.strip(),
		compatibility_base_score=compute_base_score(answers),
		created_at=now_ms if now_ms is not None else int(time.time() * 1000),
	)


__all__ = [
	"KEYWORD_QUESTIONS",
	"SurveySubmission",
	"build_profile",
	"compute_base_score",
	"parse_submission",
	"validate_submission",
]
