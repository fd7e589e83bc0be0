from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Mapping

from pydantic import ValidationError

from shared.contracts.enums import AnalyticsPeriod, FollowUpStatus, NotificationKind, ReferenceType, RiskLevel
from shared.contracts.errors import (
    AlreadyCompletedError,
    ConcurrentUpdateError,
    DuplicateFollowUpError,
    NotFoundError,
    QuestionnaireValidationError,
    UnauthorizedError,
)
from shared.contracts.models import NotificationRequest, Questionnaire, SweepResult

from . import analytics
from .escalation import Effect, EscalationPolicy, run_effects
from .lifecycle import FollowUp, complete_record, ensure_utc, skip_record, sources_for
from .policy import DEFAULT_POLICY, FollowUpPolicy
from .ports import AdoptionLookup, FollowUpStore, NotificationSink, OrganizationResolver
from .risk import assess, needs_additional_follow_up, recommend
from .schedule import build_schedule
from .sweep import ReminderSweep

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionResult:
    follow_up: FollowUp
    risk_score: float
    risk_level: RiskLevel
    recommendations: list[str]


@dataclass(frozen=True)
class ScheduleResult:
    adoption_id: str
    created: list[FollowUp]
    follow_ups: list[FollowUp]


@dataclass(frozen=True)
class Intervention:
    follow_up_id: str
    intervention_type: str
    notes: str | None
    initiated_by: str
    initiated_at: datetime
    notification_sent: bool


def parse_answers(answers: Questionnaire | Mapping[str, Any]) -> Questionnaire:
    if isinstance(answers, Questionnaire):
        return answers
    try:
        return Questionnaire.model_validate(dict(answers))
    except ValidationError as exc:
        raise QuestionnaireValidationError(
            "invalid follow-up questionnaire",
            errors=exc.errors(include_url=False, include_context=False),
        ) from exc


class FollowUpService:
    """Use cases of the post-adoption follow-up engine."""

    def __init__(
        self,
        store: FollowUpStore,
        adoptions: AdoptionLookup,
        sink: NotificationSink,
        resolver: OrganizationResolver,
        policy: FollowUpPolicy = DEFAULT_POLICY,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store
        self.adoptions = adoptions
        self.sink = sink
        self.resolver = resolver
        self.policy = policy
        self.clock = clock or ensure_utc
        self.escalation = EscalationPolicy(store=store, sink=sink, resolver=resolver, policy=policy)
        self.sweep = ReminderSweep(store=store, sink=sink, policy=policy, adoptions=adoptions)

    def now(self) -> datetime:
        return ensure_utc(self.clock())

    async def create_schedule(self, adoption_id: str) -> ScheduleResult:
        adoption = await self.adoptions.get(adoption_id)
        if adoption is None:
            raise NotFoundError("adoption", adoption_id)

        now = self.now()
        if adoption.approval_date is None:
            logger.warning("Adoption %s has no approval date; scheduling from now", adoption_id)

        existing = await self.store.list_for_adoption(adoption_id)
        missing = build_schedule(
            adoption,
            now,
            self.policy,
            existing_types=[item.follow_up_type for item in existing],
        )
        if not missing:
            logger.info("Follow-up schedule already exists for adoption %s", adoption_id)
            return ScheduleResult(adoption_id=adoption_id, created=[], follow_ups=existing)

        created: list[FollowUp] = []
        for follow_up in missing:
            try:
                created.append(await self.store.add(follow_up))
            except DuplicateFollowUpError:
                logger.info(
                    "Follow-up %s for adoption %s was created concurrently",
                    follow_up.follow_up_type.value,
                    adoption_id,
                )
            except Exception:
                logger.error(
                    "Partial follow-up schedule for adoption %s: %d of %d created before %s failed",
                    adoption_id,
                    len(created),
                    len(missing),
                    follow_up.follow_up_type.value,
                )
                raise

        logger.info("Follow-up schedule created for adoption %s (%d entries)", adoption_id, len(created))
        return ScheduleResult(
            adoption_id=adoption_id,
            created=created,
            follow_ups=await self.store.list_for_adoption(adoption_id),
        )

    async def on_adoption_approved(self, adoption_id: str) -> ScheduleResult:
        return await self.create_schedule(adoption_id)

    async def get(self, follow_up_id: str) -> FollowUp:
        follow_up = await self.store.get(follow_up_id)
        if follow_up is None:
            raise NotFoundError("follow-up", follow_up_id)
        return follow_up

    async def get_for_viewer(self, follow_up_id: str, viewer_id: str) -> FollowUp:
        follow_up = await self.get(follow_up_id)
        if follow_up.adopter_id == viewer_id:
            return follow_up
        if await self._organization_for(follow_up) == viewer_id:
            return follow_up
        raise UnauthorizedError("not allowed to view this follow-up")

    async def list_for_adopter(self, adopter_id: str, status: FollowUpStatus | None = None) -> list[FollowUp]:
        return await self.store.list_for_adopter(adopter_id, status)

    async def complete(
        self,
        follow_up_id: str,
        actor_id: str,
        answers: Questionnaire | Mapping[str, Any],
    ) -> CompletionResult:
        questionnaire = parse_answers(answers)
        current = await self.get(follow_up_id)
        if current.adopter_id != actor_id:
            raise UnauthorizedError("not allowed to complete this follow-up")
        if current.is_completed:
            raise AlreadyCompletedError(follow_up_id)

        assessment = assess(questionnaire, self.policy)
        now = self.now()
        follow_up_required = needs_additional_follow_up(questionnaire, assessment.level, self.policy)
        completed = await self._save_transition(
            current,
            FollowUpStatus.COMPLETED,
            lambda record: complete_record(
                record,
                answers=questionnaire,
                risk_score=assessment.score,
                risk_level=assessment.level,
                follow_up_required=follow_up_required,
                now=now,
            ),
        )

        logger.info(
            "Follow-up %s completed: risk %s (score %.1f), follow-up required=%s",
            follow_up_id,
            assessment.level.value,
            assessment.score,
            completed.follow_up_required,
        )
        await self.escalation.apply(completed, now)

        return CompletionResult(
            follow_up=completed,
            risk_score=assessment.score,
            risk_level=assessment.level,
            recommendations=recommend(questionnaire, assessment.level, self.policy),
        )

    async def skip(self, follow_up_id: str, actor_id: str) -> FollowUp:
        current = await self.get(follow_up_id)
        if current.adopter_id != actor_id:
            raise UnauthorizedError("not allowed to skip this follow-up")

        if current.is_completed:
            raise AlreadyCompletedError(follow_up_id)
        if current.status == FollowUpStatus.SKIPPED:
            return current

        skipped = await self._save_transition(current, FollowUpStatus.SKIPPED, skip_record)
        logger.info("Follow-up %s skipped by adopter %s", follow_up_id, actor_id)
        return skipped

    async def _save_transition(
        self,
        current: FollowUp,
        target: FollowUpStatus,
        transition: Callable[[FollowUp], FollowUp],
    ) -> FollowUp:
        """Write ``transition(current)`` conditionally on its version and status.

        Reminder marking and aging bump the version while leaving the row open
        for ``target``; when that is what we lost to, the transition is rebuilt
        from the fresh row and tried once more.
        """
        sources = sources_for(target)
        for attempt in range(2):
            updated = transition(current)
            if await self.store.save_transition(updated, expected_version=current.version, from_statuses=sources):
                return updated
            current = await self.get(updated.id)
            if current.is_completed:
                raise AlreadyCompletedError(updated.id)
            if current.status == target:
                return current
            if current.status not in sources:
                break
            logger.info("Follow-up %s changed during %s (attempt %d); retrying", updated.id, target.value, attempt + 1)
        raise ConcurrentUpdateError(current.id)

    async def run_reminder_sweep(self) -> SweepResult:
        return await self.sweep.run(self.now())

    async def initiate_intervention(
        self,
        follow_up_id: str,
        organization_user_id: str,
        intervention_type: str,
        notes: str | None = None,
    ) -> Intervention:
        follow_up = await self.get(follow_up_id)
        if await self._organization_for(follow_up) != organization_user_id:
            raise UnauthorizedError("only the adoption's organization can start an intervention")

        request = NotificationRequest(
            user_id=follow_up.adopter_id,
            kind=NotificationKind.INTERVENTION,
            title="Support available",
            message=(
                "The organization reached out to offer extra support with your pet's adaptation. "
                "Check your messages for details."
            ),
            reference_id=follow_up.id,
            reference_type=ReferenceType.INTERVENTION,
        )
        outcomes = await run_effects(
            [Effect(name=f"intervention:{follow_up.id}", run=lambda: self.sink.send(request))],
            attempts=self.policy.effect_attempts,
        )
        return Intervention(
            follow_up_id=follow_up.id,
            intervention_type=intervention_type,
            notes=notes,
            initiated_by=organization_user_id,
            initiated_at=self.now(),
            notification_sent=outcomes[0].succeeded,
        )

    async def organization_dashboard(self, owner_id: str) -> analytics.OrganizationDashboard:
        return analytics.organization_dashboard(await self.store.list_for_owner(owner_id))

    async def organization_analytics(
        self,
        owner_id: str,
        period: AnalyticsPeriod = AnalyticsPeriod.MONTH,
    ) -> analytics.OrganizationAnalytics:
        items = await self.store.list_for_owner(owner_id)
        return analytics.organization_analytics(items, period, self.now())

    async def at_risk_adoptions(self, owner_id: str) -> list[FollowUp]:
        return analytics.at_risk(await self.store.list_for_owner(owner_id))

    async def global_stats(self) -> analytics.GlobalStats:
        return analytics.global_stats(await self.store.list_for_owner())

    async def monthly_trends(self, months: int = 6, owner_id: str | None = None) -> list[analytics.MonthlyTrend]:
        return analytics.monthly_trends(await self.store.list_for_owner(owner_id), self.now(), months)

    async def _organization_for(self, follow_up: FollowUp) -> str | None:
        try:
            return await self.resolver.resolve(follow_up.adoption_id)
        except Exception as exc:
            logger.warning("Organization resolution failed for adoption %s: %s", follow_up.adoption_id, exc)
            return None
