from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

import pytest

from hairypaws import FakeNotificationSink, InMemoryAdoptionLookup, InMemoryFollowUpStore
from services.followups.escalation import OwnerOrganizationResolver
from services.followups.policy import DEFAULT_POLICY, FollowUpPolicy
from services.followups.service import FollowUpService
from shared.contracts.enums import AdaptationLevel
from shared.contracts.models import AdoptionRecord, Questionnaire

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)
APPROVED_AT = NOW - timedelta(days=4)


class Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now = self.now + timedelta(**delta)


@dataclass
class Harness:
    store: InMemoryFollowUpStore
    adoptions: InMemoryAdoptionLookup
    sink: FakeNotificationSink
    clock: Clock
    service: FollowUpService
    directory: dict = field(default_factory=dict)


def make_adoption(**overrides) -> AdoptionRecord:
    values = dict(
        adoption_id="adoption-1",
        adopter_id="adopter-1",
        owner_id="shelter-1",
        animal_id="animal-1",
        animal_name="Luna",
        approval_date=APPROVED_AT,
    )
    values.update(overrides)
    return AdoptionRecord(**values)


def make_answers(**overrides) -> Questionnaire:
    values = dict(
        adaptation_level=AdaptationLevel.GOOD,
        eating_well=True,
        sleeping_well=True,
        using_bathroom_properly=True,
        showing_affection=True,
        behavioral_issues=[],
        health_concerns=[],
        vet_visit_scheduled=False,
        satisfaction_score=9,
        would_recommend=True,
        needs_support=False,
    )
    values.update(overrides)
    return Questionnaire(**values)


def build_harness(policy: FollowUpPolicy = DEFAULT_POLICY, directory: dict | None = None) -> Harness:
    store = InMemoryFollowUpStore()
    adoptions = InMemoryAdoptionLookup()
    sink = FakeNotificationSink()
    clock = Clock(NOW)
    service = FollowUpService(
        store=store,
        adoptions=adoptions,
        sink=sink,
        resolver=OwnerOrganizationResolver(adoptions, directory),
        policy=policy,
        clock=clock,
    )
    adoptions.add(make_adoption())
    return Harness(store=store, adoptions=adoptions, sink=sink, clock=clock, service=service, directory=directory or {})


@pytest.fixture
def harness() -> Harness:
    return build_harness()


@pytest.fixture
def answers():
    return make_answers


@pytest.fixture
def critical_answers() -> Questionnaire:
    return make_answers(
        adaptation_level=AdaptationLevel.CONCERNING,
        eating_well=False,
        behavioral_issues=["a", "b"],
        satisfaction_score=4,
    )
