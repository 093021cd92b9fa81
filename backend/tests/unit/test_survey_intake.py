import pytest

from roomie.domain.errors import SurveyValidationError
from roomie.domain.profiles.survey import build_profile, compute_base_score, parse_submission


def _payload(**overrides):
    payload = {
        "user_id": "u1",
        "name": "Ana",
        "age": 20,
        "major": "Biology",
        "location": "Boston, MA",
        "instagram": "@ana",
        "answers": [
            {"question_id": "cleanliness", "answer": "tidy"},
            {"question_id": "smoking", "answer": "No"},
            {"question_id": "bio", "answer": "I like plants"},
        ],
    }
    payload.update(overrides)
    return payload


def test_build_profile_scores_answers():
    profile = build_profile(parse_submission(_payload()), now_ms=123)

    assert profile.id == "u1"
    assert profile.instagram_handle == "ana"
    assert profile.created_at == 123
    sentiments = {answer.question_id: answer.sentiment_score for answer in profile.answers}
    assert sentiments == {"cleanliness": 1.0, "smoking": 1.0, "bio": 0.5}
    # (1.5 * 1.0 + 1.5 * 1.0 + 1.0 * 0.5) / 4.0
    assert profile.compatibility_base_score == 0.875


def test_empty_survey_has_zero_base_score():
    assert compute_base_score([]) == 0.0


@pytest.mark.parametrize(
    "overrides,field,reason",
    [
        ({"age": 15}, "age", "out_of_range"),
        ({"age": 100}, "age", "out_of_range"),
        ({"name": "   "}, "name", "required"),
        ({"answers": [{"question_id": "noise", "answer": "loud"}]}, "noise", "unrecognized_keyword"),
        ({"answers": [{"question_id": "bio", "answer": "  "}]}, "bio", "empty_answer"),
        (
            {"answers": [{"question_id": "bio", "answer": "a"}, {"question_id": "bio", "answer": "b"}]},
            "bio",
            "duplicate_answer",
        ),
    ],
)
def test_invalid_submissions_are_rejected(overrides, field, reason):
    with pytest.raises(SurveyValidationError) as excinfo:
        parse_submission(_payload(**overrides))

    assert excinfo.value.field == field
    assert excinfo.value.reason == reason


def test_schema_errors_are_reported_as_survey_errors():
    with pytest.raises(SurveyValidationError) as excinfo:
        parse_submission({"user_id": "u1", "name": "Ana", "age": "old"})

    assert excinfo.value.field == "age"
