from __future__ import annotations

import logging
from datetime import datetime, timedelta

from shared.contracts.enums import FollowUpStatus, NotificationKind, ReferenceType
from shared.contracts.models import AdoptionRecord, NotificationRequest, SweepResult

from .lifecycle import FollowUp, age_out, ensure_utc
from .ports import AdoptionLookup, FollowUpStore, NotificationSink
from .policy import FollowUpPolicy

logger = logging.getLogger(__name__)


def reminder_notification(
    follow_up: FollowUp,
    now: datetime,
    adoption: AdoptionRecord | None = None,
) -> NotificationRequest:
    pet = adoption.animal_name if adoption and adoption.animal_name else "your pet"
    days = follow_up.days_past_due(now)
    due = "today" if days == 0 else f"{days} day{'s' if days != 1 else ''} ago"
    return NotificationRequest(
        user_id=follow_up.adopter_id,
        kind=NotificationKind.FOLLOWUP_REMINDER,
        title="Adoption follow-up pending",
        message=(
            f"You have a pending follow-up about {pet} (due {due}). "
            "Your experience matters to us and it only takes 5 minutes!"
        ),
        reference_id=follow_up.id,
        reference_type=ReferenceType.FOLLOWUP,
    )


class ReminderSweep:
    """Daily batch: remind adopters about due check-ins, then age out stale ones."""

    def __init__(
        self,
        store: FollowUpStore,
        sink: NotificationSink,
        policy: FollowUpPolicy,
        adoptions: AdoptionLookup | None = None,
    ) -> None:
        self.store = store
        self.sink = sink
        self.policy = policy
        self.adoptions = adoptions

    async def run(self, now: datetime | None = None) -> SweepResult:
        safe_now = ensure_utc(now)
        sent, errors = await self.send_reminders(safe_now)
        aged = await self.mark_overdue(safe_now)
        logger.info("Reminder sweep finished: %d sent, %d errors, %d aged", sent, errors, aged)
        return SweepResult(sent=sent, errors=errors, aged=aged)

    async def send_reminders(self, now: datetime) -> tuple[int, int]:
        sent = 0
        errors = 0
        for follow_up in await self.store.list_due_for_reminder(now):
            try:
                delivered = await self.sink.send(
                    reminder_notification(follow_up, now, await self._adoption(follow_up.adoption_id))
                )
            except Exception as exc:
                logger.error("Error sending reminder for follow-up %s: %s", follow_up.id, exc)
                errors += 1
                continue

            if not delivered:
                logger.error("Notification sink rejected reminder for follow-up %s", follow_up.id)
                errors += 1
                continue

            if await self.store.mark_reminded(follow_up.id, now):
                sent += 1
            else:
                # completed, skipped or reminded by a concurrent sweep since it was listed
                logger.info("Follow-up %s changed during the sweep; reminder not recorded", follow_up.id)
        return sent, errors

    async def mark_overdue(self, now: datetime) -> int:
        cutoff = now - timedelta(days=self.policy.overdue_after_days)
        candidates = await self.store.list_pending_before(cutoff)
        transitions = age_out(candidates, now, self.policy.overdue_after_days)
        if not transitions:
            return 0
        aged = await self.store.bulk_set_status(
            [follow_up_id for follow_up_id, _ in transitions],
            from_status=FollowUpStatus.PENDING,
            to_status=FollowUpStatus.OVERDUE,
        )
        logger.info("Marked %d follow-up(s) overdue (scheduled before %s)", aged, cutoff.isoformat())
        return aged

    async def _adoption(self, adoption_id: str) -> AdoptionRecord | None:
        if self.adoptions is None:
            return None
        try:
            return await self.adoptions.get(adoption_id)
        except Exception as exc:
            logger.warning("Adoption lookup failed for %s: %s", adoption_id, exc)
            return None
