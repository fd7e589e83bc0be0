from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Iterable

from shared.contracts.enums import FollowUpStatus, FollowUpType, RiskLevel
from shared.contracts.models import Questionnaire


TRANSITIONS: dict[FollowUpStatus, frozenset[FollowUpStatus]] = {
    FollowUpStatus.PENDING: frozenset(
        {FollowUpStatus.COMPLETED, FollowUpStatus.SKIPPED, FollowUpStatus.OVERDUE}
    ),
    FollowUpStatus.OVERDUE: frozenset({FollowUpStatus.COMPLETED, FollowUpStatus.SKIPPED}),
    FollowUpStatus.SKIPPED: frozenset({FollowUpStatus.COMPLETED}),
    FollowUpStatus.COMPLETED: frozenset(),
}


def ensure_utc(value: datetime | None = None) -> datetime:
    base = value or datetime.now(timezone.utc)
    if base.tzinfo is None:
        return base.replace(tzinfo=timezone.utc)
    return base.astimezone(timezone.utc)


def new_follow_up_id() -> str:
    return str(uuid.uuid4())


def can_transition(current: FollowUpStatus, target: FollowUpStatus) -> bool:
    return target in TRANSITIONS[current]


def sources_for(target: FollowUpStatus) -> frozenset[FollowUpStatus]:
    """Statuses from which ``target`` may legally be reached."""
    return frozenset(status for status, targets in TRANSITIONS.items() if target in targets)


@dataclass
class FollowUp:
    id: str
    adoption_id: str
    adopter_id: str
    follow_up_type: FollowUpType
    scheduled_date: datetime
    status: FollowUpStatus = FollowUpStatus.PENDING
    owner_id: str | None = None
    completed_date: datetime | None = None
    answers: Questionnaire | None = None
    risk_score: float | None = None
    risk_level: RiskLevel | None = None
    follow_up_required: bool = False
    reminder_sent: bool = False
    reminder_count: int = 0
    last_reminder_date: datetime | None = None
    version: int = 1
    created_at: datetime | None = None

    @classmethod
    def create(
        cls,
        adoption_id: str,
        adopter_id: str,
        follow_up_type: FollowUpType,
        scheduled_date: datetime,
        owner_id: str | None = None,
        created_at: datetime | None = None,
    ) -> FollowUp:
        return cls(
            id=new_follow_up_id(),
            adoption_id=adoption_id,
            adopter_id=adopter_id,
            owner_id=owner_id,
            follow_up_type=follow_up_type,
            scheduled_date=ensure_utc(scheduled_date),
            created_at=ensure_utc(created_at),
        )

    @property
    def is_completed(self) -> bool:
        return self.status == FollowUpStatus.COMPLETED

    def days_past_due(self, now: datetime) -> int:
        return max((ensure_utc(now) - self.scheduled_date).days, 0)


def complete_record(
    record: FollowUp,
    answers: Questionnaire,
    risk_score: float,
    risk_level: RiskLevel,
    follow_up_required: bool,
    now: datetime,
) -> FollowUp:
    if not can_transition(record.status, FollowUpStatus.COMPLETED):
        raise ValueError(f"cannot complete follow-up in status {record.status.value}")
    return replace(
        record,
        status=FollowUpStatus.COMPLETED,
        completed_date=ensure_utc(now),
        answers=answers,
        risk_score=risk_score,
        risk_level=risk_level,
        follow_up_required=follow_up_required,
        version=record.version + 1,
    )


def skip_record(record: FollowUp) -> FollowUp:
    if not can_transition(record.status, FollowUpStatus.SKIPPED):
        raise ValueError(f"cannot skip follow-up in status {record.status.value}")
    return replace(record, status=FollowUpStatus.SKIPPED, version=record.version + 1)


def age_out(
    items: Iterable[FollowUp],
    now: datetime,
    overdue_after_days: int,
) -> list[tuple[str, FollowUpStatus]]:
    """Pick the pending items scheduled more than ``overdue_after_days`` before ``now``."""
    cutoff = ensure_utc(now) - timedelta(days=overdue_after_days)
    return [
        (item.id, FollowUpStatus.OVERDUE)
        for item in items
        if item.status == FollowUpStatus.PENDING and item.scheduled_date < cutoff
    ]
