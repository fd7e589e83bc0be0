from __future__ import annotations

from datetime import datetime, timedelta
from typing import Iterable

from shared.contracts.enums import FollowUpType
from shared.contracts.models import AdoptionRecord

from .lifecycle import FollowUp, ensure_utc
from .policy import FollowUpPolicy


def schedule_base_date(adoption: AdoptionRecord, now: datetime) -> datetime:
    if adoption.approval_date is None:
        return ensure_utc(now)
    return ensure_utc(adoption.approval_date)


def build_schedule(
    adoption: AdoptionRecord,
    now: datetime,
    policy: FollowUpPolicy,
    existing_types: Iterable[FollowUpType] = (),
) -> list[FollowUp]:
    """Return the check-ins still missing from an adoption's fixed schedule, in table order."""
    base = schedule_base_date(adoption, now)
    already = set(existing_types)
    return [
        FollowUp.create(
            adoption_id=adoption.adoption_id,
            adopter_id=adoption.adopter_id,
            owner_id=adoption.owner_id,
            follow_up_type=follow_up_type,
            scheduled_date=base + timedelta(days=offset_days),
            created_at=now,
        )
        for follow_up_type, offset_days in policy.schedule
        if follow_up_type not in already
    ]


def build_custom_follow_up(source: FollowUp, now: datetime, policy: FollowUpPolicy) -> FollowUp:
    return FollowUp.create(
        adoption_id=source.adoption_id,
        adopter_id=source.adopter_id,
        owner_id=source.owner_id,
        follow_up_type=FollowUpType.CUSTOM,
        scheduled_date=ensure_utc(now) + timedelta(days=policy.custom_follow_up_days),
        created_at=now,
    )
