import pytest
from pydantic import ValidationError

from conftest import make_answers
from shared.config import Settings
from shared.contracts.enums import AdaptationLevel
from shared.contracts.errors import (
    AlreadyCompletedError,
    ConcurrentUpdateError,
    DuplicateFollowUpError,
    FollowUpError,
    NotFoundError,
    QuestionnaireValidationError,
    UnauthorizedError,
)
from shared.contracts.models import AdoptionRecord, InterventionRequest, Questionnaire


def test_questionnaire_parses_string_enums_and_defaults():
    answers = Questionnaire.model_validate(
        {
            "adaptation_level": "excellent",
            "eating_well": True,
            "sleeping_well": True,
            "using_bathroom_properly": True,
            "showing_affection": True,
            "vet_visit_scheduled": False,
            "satisfaction_score": 10,
            "would_recommend": True,
            "needs_support": False,
        }
    )
    assert answers.adaptation_level == AdaptationLevel.EXCELLENT
    assert answers.behavioral_issues == []
    assert answers.support_type == []


@pytest.mark.parametrize(
    "overrides",
    [
        {"satisfaction_score": 0},
        {"satisfaction_score": 11},
        {"adaptation_level": "amazing"},
        {"additional_comments": "x" * 1001},
    ],
)
def test_questionnaire_rejects_out_of_range_values(overrides):
    payload = make_answers().model_dump(mode="json")
    payload.update(overrides)
    with pytest.raises(ValidationError):
        Questionnaire.model_validate(payload)


def test_questionnaire_forbids_unknown_fields_and_is_frozen():
    payload = make_answers().model_dump(mode="json")
    with pytest.raises(ValidationError):
        Questionnaire.model_validate({**payload, "mood": "happy"})

    answers = make_answers()
    with pytest.raises(ValidationError):
        answers.satisfaction_score = 1


def test_adoption_record_ignores_extra_fields():
    record = AdoptionRecord.model_validate(
        {
            "adoption_id": "adoption-1",
            "adopter_id": "adopter-1",
            "owner_id": "shelter-1",
            "animal_id": "animal-1",
            "status": "approved",
        }
    )
    assert record.approval_date is None


def test_intervention_request_requires_type():
    with pytest.raises(ValidationError):
        InterventionRequest.model_validate({"intervention_type": ""})


@pytest.mark.parametrize(
    "error,status_code",
    [
        (NotFoundError("follow-up", "f-1"), 404),
        (UnauthorizedError("nope"), 403),
        (AlreadyCompletedError("f-1"), 409),
        (ConcurrentUpdateError("f-1"), 409),
        (DuplicateFollowUpError("adoption-1", "week_1"), 409),
        (QuestionnaireValidationError("bad", errors=[{"loc": ["satisfaction_score"]}]), 422),
    ],
)
def test_errors_carry_http_status(error, status_code):
    assert isinstance(error, FollowUpError)
    assert error.status_code == status_code
    assert error.message


def test_settings_build_policy_from_environment(monkeypatch):
    monkeypatch.setenv("HAIRYPAWS_OVERDUE_AFTER_DAYS", "10")
    monkeypatch.setenv("HAIRYPAWS_ORGANIZATION_DIRECTORY", '{"shelter-1": "ong-admin"}')

    settings = Settings()
    policy = settings.policy()

    assert policy.overdue_after_days == 10
    assert policy.custom_follow_up_days == 7
    assert settings.organization_directory == {"shelter-1": "ong-admin"}
    assert settings.database_url is None
