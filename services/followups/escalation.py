from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Mapping

from shared.contracts.enums import NotificationKind, ReferenceType
from shared.contracts.models import NotificationRequest

from .lifecycle import FollowUp
from .ports import AdoptionLookup, FollowUpStore, NotificationSink, OrganizationResolver
from .policy import FollowUpPolicy
from .schedule import build_custom_follow_up

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Effect:
    name: str
    run: Callable[[], Awaitable[bool]]


@dataclass(frozen=True)
class EffectOutcome:
    name: str
    succeeded: bool
    attempts: int
    error: str | None = None


async def run_effects(effects: list[Effect], attempts: int = 1) -> list[EffectOutcome]:
    """Run fire-and-forget effects one by one; failures are logged and never raised."""
    outcomes: list[EffectOutcome] = []
    for effect in effects:
        error: str | None = None
        succeeded = False
        attempt = 0
        while attempt < attempts and not succeeded:
            attempt += 1
            try:
                succeeded = await effect.run()
                if not succeeded:
                    error = "effect reported failure"
            except Exception as exc:
                error = str(exc) or exc.__class__.__name__
                logger.warning(
                    "Effect %s failed on attempt %d/%d: %s", effect.name, attempt, attempts, error
                )
        if succeeded:
            error = None
        else:
            logger.error("Effect %s gave up after %d attempt(s): %s", effect.name, attempt, error)
        outcomes.append(EffectOutcome(name=effect.name, succeeded=succeeded, attempts=attempt, error=error))
    return outcomes


class OwnerOrganizationResolver:
    """Resolve the organization user for an adoption through the animal's owner.

    ``directory`` maps an owner user id to the organization user that should
    receive alerts (for example the ONG account an employee publishes for).
    Owners missing from the directory are treated as the organization themselves.
    """

    def __init__(self, adoptions: AdoptionLookup, directory: Mapping[str, str] | None = None) -> None:
        self.adoptions = adoptions
        self.directory = dict(directory or {})

    async def resolve(self, adoption_id: str) -> str | None:
        adoption = await self.adoptions.get(adoption_id)
        if adoption is None:
            return None
        return self.directory.get(adoption.owner_id, adoption.owner_id)


def risk_alert_notification(follow_up: FollowUp, organization_user_id: str) -> NotificationRequest:
    level = follow_up.risk_level.value if follow_up.risk_level else "unknown"
    return NotificationRequest(
        user_id=organization_user_id,
        kind=NotificationKind.RISK_ALERT,
        title="Adoption needs attention",
        message=(
            f"One of your adoptions was flagged as {level} risk. "
            "Please contact the adopter to offer support."
        ),
        reference_id=follow_up.id,
        reference_type=ReferenceType.RISK_ALERT,
    )


class EscalationPolicy:
    def __init__(
        self,
        store: FollowUpStore,
        sink: NotificationSink,
        resolver: OrganizationResolver,
        policy: FollowUpPolicy,
    ) -> None:
        self.store = store
        self.sink = sink
        self.resolver = resolver
        self.policy = policy

    def plan(self, completed: FollowUp, now: datetime) -> list[Effect]:
        effects: list[Effect] = []
        if completed.risk_level in self.policy.escalation_levels:
            effects.append(Effect(name=f"notify_organization:{completed.id}", run=lambda: self._notify_organization(completed)))
        if completed.follow_up_required:
            custom = build_custom_follow_up(completed, now, self.policy)
            effects.append(Effect(name=f"schedule_custom:{completed.id}", run=lambda: self._schedule_custom(custom)))
        return effects

    async def apply(self, completed: FollowUp, now: datetime) -> list[EffectOutcome]:
        return await run_effects(self.plan(completed, now), attempts=self.policy.effect_attempts)

    async def _notify_organization(self, completed: FollowUp) -> bool:
        organization_user_id = await self.resolver.resolve(completed.adoption_id)
        if organization_user_id is None:
            logger.warning(
                "No organization resolved for adoption %s; risk alert for follow-up %s not sent",
                completed.adoption_id,
                completed.id,
            )
            return True
        return await self.sink.send(risk_alert_notification(completed, organization_user_id))

    async def _schedule_custom(self, custom: FollowUp) -> bool:
        # the id is fixed at plan time so a retry never inserts a second check-in
        if await self.store.get(custom.id) is not None:
            return True
        await self.store.add(custom)
        logger.info(
            "Scheduled custom follow-up %s for adoption %s on %s",
            custom.id,
            custom.adoption_id,
            custom.scheduled_date.isoformat(),
        )
        return True
