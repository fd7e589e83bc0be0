from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from services.followups.clients import HttpAdoptionLookup, HttpNotificationSink
from services.followups.escalation import OwnerOrganizationResolver
from services.followups.lifecycle import FollowUp
from services.followups.service import FollowUpService
from shared.config import Settings, get_settings
from shared.contracts.enums import FollowUpStatus, FollowUpType
from shared.contracts.errors import DuplicateFollowUpError
from shared.contracts.models import AdoptionRecord, NotificationRequest

logger = logging.getLogger(__name__)


def _by_schedule(items: Iterable[FollowUp]) -> List[FollowUp]:
    return [copy.deepcopy(item) for item in sorted(items, key=lambda f: (f.scheduled_date, f.id))]


@dataclass
class InMemoryFollowUpStore:
    """Dict-backed store with the same conditional-write rules as the SQL store."""

    items: Dict[str, FollowUp] = field(default_factory=dict)

    async def add(self, follow_up: FollowUp) -> FollowUp:
        if follow_up.id in self.items:
            raise ValueError(f"follow-up {follow_up.id} already exists")
        if follow_up.follow_up_type != FollowUpType.CUSTOM and any(
            item.adoption_id == follow_up.adoption_id and item.follow_up_type == follow_up.follow_up_type
            for item in self.items.values()
        ):
            raise DuplicateFollowUpError(follow_up.adoption_id, follow_up.follow_up_type.value)
        self.items[follow_up.id] = copy.deepcopy(follow_up)
        return follow_up

    async def get(self, follow_up_id: str) -> Optional[FollowUp]:
        item = self.items.get(follow_up_id)
        return copy.deepcopy(item) if item is not None else None

    async def list_for_adoption(self, adoption_id: str) -> List[FollowUp]:
        return _by_schedule(f for f in self.items.values() if f.adoption_id == adoption_id)

    async def list_for_adopter(
        self, adopter_id: str, status: Optional[FollowUpStatus] = None
    ) -> List[FollowUp]:
        return _by_schedule(
            f
            for f in self.items.values()
            if f.adopter_id == adopter_id and (status is None or f.status == status)
        )

    async def list_for_owner(
        self, owner_id: Optional[str] = None, status: Optional[FollowUpStatus] = None
    ) -> List[FollowUp]:
        return _by_schedule(
            f
            for f in self.items.values()
            if (owner_id is None or f.owner_id == owner_id) and (status is None or f.status == status)
        )

    async def save_transition(
        self,
        follow_up: FollowUp,
        expected_version: int,
        from_statuses: Iterable[FollowUpStatus],
    ) -> bool:
        current = self.items.get(follow_up.id)
        if current is None or current.version != expected_version or current.status not in set(from_statuses):
            return False
        self.items[follow_up.id] = copy.deepcopy(follow_up)
        return True

    async def list_due_for_reminder(self, now: datetime) -> List[FollowUp]:
        return _by_schedule(
            f
            for f in self.items.values()
            if f.status == FollowUpStatus.PENDING and not f.reminder_sent and f.scheduled_date < now
        )

    async def mark_reminded(self, follow_up_id: str, at: datetime) -> bool:
        current = self.items.get(follow_up_id)
        if current is None or current.status != FollowUpStatus.PENDING or current.reminder_sent:
            return False
        current.reminder_sent = True
        current.reminder_count += 1
        current.last_reminder_date = at
        current.version += 1
        return True

    async def list_pending_before(self, cutoff: datetime) -> List[FollowUp]:
        return _by_schedule(
            f for f in self.items.values() if f.status == FollowUpStatus.PENDING and f.scheduled_date < cutoff
        )

    async def bulk_set_status(
        self,
        follow_up_ids: Iterable[str],
        from_status: FollowUpStatus,
        to_status: FollowUpStatus,
    ) -> int:
        changed = 0
        for follow_up_id in follow_up_ids:
            current = self.items.get(follow_up_id)
            if current is None or current.status != from_status:
                continue
            current.status = to_status
            current.version += 1
            changed += 1
        return changed


@dataclass
class InMemoryAdoptionLookup:
    adoptions: Dict[str, AdoptionRecord] = field(default_factory=dict)

    def add(self, adoption: AdoptionRecord) -> AdoptionRecord:
        self.adoptions[adoption.adoption_id] = adoption
        return adoption

    async def get(self, adoption_id: str) -> Optional[AdoptionRecord]:
        return self.adoptions.get(adoption_id)


@dataclass
class FakeNotificationSink:
    sent: List[NotificationRequest] = field(default_factory=list)
    failing_users: Set[str] = field(default_factory=set)
    raise_on_failure: bool = False

    async def send(self, request: NotificationRequest) -> bool:
        if request.user_id in self.failing_users:
            if self.raise_on_failure:
                raise ConnectionError(f"notification delivery to {request.user_id} failed")
            return False
        self.sent.append(request)
        return True

    def sent_to(self, user_id: str) -> List[NotificationRequest]:
        return [n for n in self.sent if n.user_id == user_id]


def build_service(settings: Optional[Settings] = None) -> FollowUpService:
    """Wire the follow-up service from settings; unset URLs fall back to in-memory fakes."""
    settings = settings or get_settings()

    if settings.database_url:
        from app.db import SqlFollowUpStore, create_session_factory

        store = SqlFollowUpStore(create_session_factory(settings.database_url, echo=settings.database_echo))
    else:
        logger.warning("HAIRYPAWS_DATABASE_URL not set; follow-ups are kept in memory")
        store = InMemoryFollowUpStore()

    if settings.adoptions_service_url:
        adoptions = HttpAdoptionLookup(settings.adoptions_service_url, timeout=settings.http_timeout_seconds)
    else:
        adoptions = InMemoryAdoptionLookup()

    if settings.notifications_service_url:
        sink = HttpNotificationSink(settings.notifications_service_url, timeout=settings.http_timeout_seconds)
    else:
        sink = FakeNotificationSink()

    return FollowUpService(
        store=store,
        adoptions=adoptions,
        sink=sink,
        resolver=OwnerOrganizationResolver(adoptions, settings.organization_directory),
        policy=settings.policy(),
    )
