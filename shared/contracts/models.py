from __future__ import annotations

from datetime import date, datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from .enums import (
    AdaptationLevel,
    FollowUpStatus,
    FollowUpType,
    NotificationKind,
    ReferenceType,
    RiskLevel,
)


class Questionnaire(BaseModel):
    """Answers submitted by the adopter when completing a follow-up."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    adaptation_level: AdaptationLevel
    eating_well: bool
    sleeping_well: bool
    using_bathroom_properly: bool
    showing_affection: bool
    behavioral_issues: list[str] = Field(default_factory=list)
    health_concerns: list[str] = Field(default_factory=list)
    vet_visit_scheduled: bool
    vet_visit_date: date | None = None
    satisfaction_score: int = Field(ge=1, le=10)
    would_recommend: bool
    additional_comments: str | None = Field(default=None, max_length=1000)
    needs_support: bool
    support_type: list[str] = Field(default_factory=list)


class AdoptionRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    adoption_id: str = Field(min_length=1)
    adopter_id: str = Field(min_length=1)
    owner_id: str = Field(min_length=1)
    animal_id: str = Field(min_length=1)
    animal_name: str | None = None
    approval_date: datetime | None = None


class NotificationRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_id: str = Field(min_length=1)
    kind: NotificationKind = NotificationKind.GENERAL
    title: str = Field(min_length=1)
    message: str = Field(min_length=1)
    reference_id: str | None = None
    reference_type: ReferenceType | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))


class AdoptionApprovedEvent(BaseModel):
    adoption_id: str = Field(min_length=1)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))


class InterventionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    intervention_type: str = Field(min_length=1, max_length=64)
    notes: str | None = Field(default=None, max_length=1000)


class SweepResult(BaseModel):
    sent: int = 0
    errors: int = 0
    aged: int = 0


class FollowUpDTO(BaseModel):
    id: str
    adoption_id: str
    adopter_id: str
    owner_id: str | None = None
    follow_up_type: FollowUpType
    status: FollowUpStatus
    scheduled_date: datetime
    completed_date: datetime | None = None
    answers: Questionnaire | None = None
    risk_score: float | None = None
    risk_level: RiskLevel | None = None
    follow_up_required: bool = False
    reminder_sent: bool = False
    reminder_count: int = 0
    last_reminder_date: datetime | None = None


class CompletionResponse(BaseModel):
    follow_up: FollowUpDTO
    risk_score: float
    risk_assessment: RiskLevel
    recommendations: list[str]


class ScheduleResponse(BaseModel):
    adoption_id: str
    created: int
    follow_ups: list[FollowUpDTO]


class InterventionDTO(BaseModel):
    follow_up_id: str
    intervention_type: str
    notes: str | None = None
    initiated_by: str
    initiated_at: datetime
    notification_sent: bool
