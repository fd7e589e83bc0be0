from __future__ import annotations

from datetime import datetime
from typing import Iterable, Protocol

from shared.contracts.enums import FollowUpStatus
from shared.contracts.models import AdoptionRecord, NotificationRequest

from .lifecycle import FollowUp


class FollowUpStore(Protocol):
    """Persistence contract. Every mutation is conditional and reports whether it applied."""

    async def add(self, follow_up: FollowUp) -> FollowUp: ...

    async def get(self, follow_up_id: str) -> FollowUp | None: ...

    async def list_for_adoption(self, adoption_id: str) -> list[FollowUp]: ...

    async def list_for_adopter(
        self, adopter_id: str, status: FollowUpStatus | None = None
    ) -> list[FollowUp]: ...

    async def list_for_owner(
        self, owner_id: str | None = None, status: FollowUpStatus | None = None
    ) -> list[FollowUp]: ...

    async def save_transition(
        self,
        follow_up: FollowUp,
        expected_version: int,
        from_statuses: Iterable[FollowUpStatus],
    ) -> bool: ...

    async def list_due_for_reminder(self, now: datetime) -> list[FollowUp]: ...

    async def mark_reminded(self, follow_up_id: str, at: datetime) -> bool: ...

    async def list_pending_before(self, cutoff: datetime) -> list[FollowUp]: ...

    async def bulk_set_status(
        self,
        follow_up_ids: Iterable[str],
        from_status: FollowUpStatus,
        to_status: FollowUpStatus,
    ) -> int: ...


class AdoptionLookup(Protocol):
    async def get(self, adoption_id: str) -> AdoptionRecord | None: ...


class NotificationSink(Protocol):
    async def send(self, request: NotificationRequest) -> bool: ...


class OrganizationResolver(Protocol):
    async def resolve(self, adoption_id: str) -> str | None: ...
