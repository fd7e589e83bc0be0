import asyncio
import unittest
from datetime import timedelta

import pytest

from conftest import NOW, build_harness, make_answers
from hairypaws import InMemoryFollowUpStore
from services.followups.escalation import OwnerOrganizationResolver
from services.followups.lifecycle import (
    FollowUp,
    age_out,
    can_transition,
    complete_record,
    skip_record,
    sources_for,
)
from services.followups.service import FollowUpService
from shared.contracts.enums import AdaptationLevel, FollowUpStatus, FollowUpType, RiskLevel
from shared.contracts.errors import (
    AlreadyCompletedError,
    ConcurrentUpdateError,
    QuestionnaireValidationError,
    UnauthorizedError,
)


def _pending(scheduled_date=NOW) -> FollowUp:
    return FollowUp.create(
        adoption_id="adoption-1",
        adopter_id="adopter-1",
        owner_id="shelter-1",
        follow_up_type=FollowUpType.WEEK_1,
        scheduled_date=scheduled_date,
    )


def _first_follow_up(harness) -> FollowUp:
    asyncio.run(harness.service.create_schedule("adoption-1"))
    return asyncio.run(harness.store.list_for_adoption("adoption-1"))[0]


def test_transition_table():
    assert can_transition(FollowUpStatus.PENDING, FollowUpStatus.COMPLETED)
    assert can_transition(FollowUpStatus.PENDING, FollowUpStatus.OVERDUE)
    assert can_transition(FollowUpStatus.OVERDUE, FollowUpStatus.COMPLETED)
    assert can_transition(FollowUpStatus.SKIPPED, FollowUpStatus.COMPLETED)
    assert not can_transition(FollowUpStatus.OVERDUE, FollowUpStatus.PENDING)
    assert not can_transition(FollowUpStatus.SKIPPED, FollowUpStatus.OVERDUE)
    for target in FollowUpStatus:
        assert not can_transition(FollowUpStatus.COMPLETED, target)
    assert sources_for(FollowUpStatus.COMPLETED) == {
        FollowUpStatus.PENDING,
        FollowUpStatus.OVERDUE,
        FollowUpStatus.SKIPPED,
    }


def test_complete_and_skip_records_bump_version():
    record = _pending()
    completed = complete_record(
        record,
        answers=make_answers(),
        risk_score=0,
        risk_level=RiskLevel.LOW,
        follow_up_required=False,
        now=NOW,
    )

    assert completed.status == FollowUpStatus.COMPLETED
    assert completed.completed_date == NOW
    assert completed.version == record.version + 1
    assert record.status == FollowUpStatus.PENDING
    assert skip_record(record).version == record.version + 1
    with pytest.raises(ValueError):
        skip_record(completed)


def test_age_out_only_demotes_stale_pending_items():
    stale = _pending(NOW - timedelta(days=8))
    recent = _pending(NOW - timedelta(days=6))
    stale_skipped = skip_record(_pending(NOW - timedelta(days=20)))

    assert age_out([stale, recent, stale_skipped], NOW, 7) == [(stale.id, FollowUpStatus.OVERDUE)]


class CompletionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.harness = build_harness()
        self.follow_up = _first_follow_up(self.harness)

    def test_completion_is_single_shot(self) -> None:
        first_answers = make_answers()
        result = asyncio.run(self.harness.service.complete(self.follow_up.id, "adopter-1", first_answers))
        self.assertEqual(FollowUpStatus.COMPLETED, result.follow_up.status)
        self.assertEqual(RiskLevel.LOW, result.risk_level)

        with self.assertRaises(AlreadyCompletedError):
            asyncio.run(
                self.harness.service.complete(
                    self.follow_up.id,
                    "adopter-1",
                    make_answers(adaptation_level=AdaptationLevel.CONCERNING, satisfaction_score=1),
                )
            )

        stored = asyncio.run(self.harness.store.get(self.follow_up.id))
        self.assertEqual(first_answers, stored.answers)
        self.assertEqual(0, stored.risk_score)

    def test_other_user_cannot_complete(self) -> None:
        with self.assertRaises(UnauthorizedError):
            asyncio.run(self.harness.service.complete(self.follow_up.id, "intruder", make_answers()))
        stored = asyncio.run(self.harness.store.get(self.follow_up.id))
        self.assertEqual(FollowUpStatus.PENDING, stored.status)

    def test_invalid_questionnaire_is_rejected_before_any_change(self) -> None:
        payload = make_answers().model_dump(mode="json")
        payload["satisfaction_score"] = 11
        with self.assertRaises(QuestionnaireValidationError) as ctx:
            asyncio.run(self.harness.service.complete(self.follow_up.id, "adopter-1", payload))
        self.assertTrue(ctx.exception.errors)

        payload = make_answers().model_dump(mode="json")
        payload["favourite_toy"] = "ball"
        with self.assertRaises(QuestionnaireValidationError):
            asyncio.run(self.harness.service.complete(self.follow_up.id, "adopter-1", payload))

        stored = asyncio.run(self.harness.store.get(self.follow_up.id))
        self.assertEqual(FollowUpStatus.PENDING, stored.status)

    def test_completion_accepts_a_plain_mapping(self) -> None:
        payload = make_answers(satisfaction_score=3).model_dump(mode="json")
        result = asyncio.run(self.harness.service.complete(self.follow_up.id, "adopter-1", payload))
        self.assertEqual(5, result.risk_score)
        self.assertEqual(RiskLevel.HIGH, result.risk_level)
        self.assertTrue(result.follow_up.follow_up_required)

    def test_overdue_follow_up_can_still_be_completed(self) -> None:
        asyncio.run(
            self.harness.store.bulk_set_status(
                [self.follow_up.id], FollowUpStatus.PENDING, FollowUpStatus.OVERDUE
            )
        )
        result = asyncio.run(self.harness.service.complete(self.follow_up.id, "adopter-1", make_answers()))
        self.assertEqual(FollowUpStatus.COMPLETED, result.follow_up.status)


def test_skip_rules(harness):
    follow_up = _first_follow_up(harness)

    with pytest.raises(UnauthorizedError):
        asyncio.run(harness.service.skip(follow_up.id, "intruder"))

    skipped = asyncio.run(harness.service.skip(follow_up.id, "adopter-1"))
    assert skipped.status == FollowUpStatus.SKIPPED

    again = asyncio.run(harness.service.skip(follow_up.id, "adopter-1"))
    assert again.status == FollowUpStatus.SKIPPED
    assert again.version == skipped.version

    result = asyncio.run(harness.service.complete(follow_up.id, "adopter-1", make_answers()))
    assert result.follow_up.status == FollowUpStatus.COMPLETED

    with pytest.raises(AlreadyCompletedError):
        asyncio.run(harness.service.skip(follow_up.id, "adopter-1"))


class CompletingRivalStore(InMemoryFollowUpStore):
    """Lets another writer complete the record between read and write."""

    async def save_transition(self, follow_up, expected_version, from_statuses):
        rival = self.items[follow_up.id]
        rival.status = FollowUpStatus.COMPLETED
        rival.version += 1
        return await super().save_transition(follow_up, expected_version, from_statuses)


class BusyRivalStore(InMemoryFollowUpStore):
    """Bumps the version before every write, leaving the status alone."""

    async def save_transition(self, follow_up, expected_version, from_statuses):
        self.items[follow_up.id].version += 1
        return await super().save_transition(follow_up, expected_version, from_statuses)


class RemindingRivalStore(InMemoryFollowUpStore):
    """Lets a reminder sweep touch the record between read and write."""

    async def save_transition(self, follow_up, expected_version, from_statuses):
        await self.mark_reminded(follow_up.id, NOW)
        return await super().save_transition(follow_up, expected_version, from_statuses)


class AgingRivalStore(InMemoryFollowUpStore):
    """Lets the aging pass mark the record overdue between read and write."""

    async def save_transition(self, follow_up, expected_version, from_statuses):
        await self.bulk_set_status([follow_up.id], FollowUpStatus.PENDING, FollowUpStatus.OVERDUE)
        return await super().save_transition(follow_up, expected_version, from_statuses)


def _service_over(store_cls):
    harness = build_harness()
    store = store_cls()
    service = FollowUpService(
        store=store,
        adoptions=harness.adoptions,
        sink=harness.sink,
        resolver=OwnerOrganizationResolver(harness.adoptions),
        clock=harness.clock,
    )
    follow_up = _pending(NOW - timedelta(days=1))
    asyncio.run(store.add(follow_up))
    return harness, store, service, follow_up


@pytest.mark.parametrize(
    "store_cls,expected",
    [
        (CompletingRivalStore, AlreadyCompletedError),
        (BusyRivalStore, ConcurrentUpdateError),
    ],
)
def test_losing_a_race_reports_a_conflict(store_cls, expected):
    harness, _, service, follow_up = _service_over(store_cls)

    with pytest.raises(expected):
        asyncio.run(service.complete(follow_up.id, "adopter-1", make_answers(satisfaction_score=1)))

    assert harness.sink.sent == []


@pytest.mark.parametrize("store_cls", [RemindingRivalStore, AgingRivalStore])
def test_sweep_bookkeeping_does_not_block_completion(store_cls):
    _, store, service, follow_up = _service_over(store_cls)

    result = asyncio.run(service.complete(follow_up.id, "adopter-1", make_answers()))

    stored = asyncio.run(store.get(follow_up.id))
    assert result.follow_up.status == FollowUpStatus.COMPLETED
    assert stored.status == FollowUpStatus.COMPLETED
    assert stored.version == result.follow_up.version == follow_up.version + 2


def test_skip_survives_a_reminder_landing_first():
    _, store, service, follow_up = _service_over(RemindingRivalStore)

    skipped = asyncio.run(service.skip(follow_up.id, "adopter-1"))

    stored = asyncio.run(store.get(follow_up.id))
    assert skipped.status == FollowUpStatus.SKIPPED
    assert stored.status == FollowUpStatus.SKIPPED
    assert stored.reminder_sent
