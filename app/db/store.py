from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from services.followups.lifecycle import FollowUp, ensure_utc
from shared.contracts.enums import FollowUpStatus, FollowUpType
from shared.contracts.errors import DuplicateFollowUpError
from shared.contracts.models import Questionnaire

from .models import PostAdoptionFollowUp

ANSWER_COLUMNS = tuple(Questionnaire.model_fields)


def _utc(value: datetime | None) -> datetime | None:
    return ensure_utc(value) if value is not None else None


def _answer_values(answers: Questionnaire | None) -> dict[str, Any]:
    if answers is None:
        values: dict[str, Any] = {column: None for column in ANSWER_COLUMNS}
        values.update(behavioral_issues=[], health_concerns=[], support_type=[], needs_support=False)
        return values
    return answers.model_dump()


def _to_row(follow_up: FollowUp) -> PostAdoptionFollowUp:
    values = dict(
        id=follow_up.id,
        adoption_id=follow_up.adoption_id,
        adopter_id=follow_up.adopter_id,
        owner_id=follow_up.owner_id,
        follow_up_type=follow_up.follow_up_type,
        status=follow_up.status,
        scheduled_date=follow_up.scheduled_date,
        completed_date=follow_up.completed_date,
        risk_score=follow_up.risk_score,
        risk_level=follow_up.risk_level,
        follow_up_required=follow_up.follow_up_required,
        reminder_sent=follow_up.reminder_sent,
        reminder_count=follow_up.reminder_count,
        last_reminder_date=follow_up.last_reminder_date,
        version=follow_up.version,
        **_answer_values(follow_up.answers),
    )
    if follow_up.created_at is not None:
        values["created_at"] = follow_up.created_at
    return PostAdoptionFollowUp(**values)


def _to_record(row: PostAdoptionFollowUp) -> FollowUp:
    answers = None
    if row.adaptation_level is not None:
        answers = Questionnaire.model_validate({column: getattr(row, column) for column in ANSWER_COLUMNS})
    return FollowUp(
        id=row.id,
        adoption_id=row.adoption_id,
        adopter_id=row.adopter_id,
        owner_id=row.owner_id,
        follow_up_type=row.follow_up_type,
        status=row.status,
        scheduled_date=ensure_utc(row.scheduled_date),
        completed_date=_utc(row.completed_date),
        answers=answers,
        risk_score=row.risk_score,
        risk_level=row.risk_level,
        follow_up_required=row.follow_up_required,
        reminder_sent=row.reminder_sent,
        reminder_count=row.reminder_count,
        last_reminder_date=_utc(row.last_reminder_date),
        version=row.version,
        created_at=_utc(row.created_at),
    )


class SqlFollowUpStore:
    """Follow-up store on SQLAlchemy; mutations are conditional UPDATEs checked by row count."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self.session_factory = session_factory

    async def add(self, follow_up: FollowUp) -> FollowUp:
        async with self.session_factory() as session:
            session.add(_to_row(follow_up))
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                if follow_up.follow_up_type == FollowUpType.CUSTOM:
                    raise
                raise DuplicateFollowUpError(follow_up.adoption_id, follow_up.follow_up_type.value) from exc
        return follow_up

    async def get(self, follow_up_id: str) -> FollowUp | None:
        async with self.session_factory() as session:
            row = await session.get(PostAdoptionFollowUp, follow_up_id)
            return _to_record(row) if row is not None else None

    async def list_for_adoption(self, adoption_id: str) -> list[FollowUp]:
        return await self._select(PostAdoptionFollowUp.adoption_id == adoption_id)

    async def list_for_adopter(self, adopter_id: str, status: FollowUpStatus | None = None) -> list[FollowUp]:
        criteria = [PostAdoptionFollowUp.adopter_id == adopter_id]
        if status is not None:
            criteria.append(PostAdoptionFollowUp.status == status)
        return await self._select(*criteria)

    async def list_for_owner(
        self, owner_id: str | None = None, status: FollowUpStatus | None = None
    ) -> list[FollowUp]:
        criteria = []
        if owner_id is not None:
            criteria.append(PostAdoptionFollowUp.owner_id == owner_id)
        if status is not None:
            criteria.append(PostAdoptionFollowUp.status == status)
        return await self._select(*criteria)

    async def list_due_for_reminder(self, now: datetime) -> list[FollowUp]:
        return await self._select(
            PostAdoptionFollowUp.status == FollowUpStatus.PENDING,
            PostAdoptionFollowUp.reminder_sent.is_(False),
            PostAdoptionFollowUp.scheduled_date < ensure_utc(now),
        )

    async def list_pending_before(self, cutoff: datetime) -> list[FollowUp]:
        return await self._select(
            PostAdoptionFollowUp.status == FollowUpStatus.PENDING,
            PostAdoptionFollowUp.scheduled_date < ensure_utc(cutoff),
        )

    async def save_transition(
        self,
        follow_up: FollowUp,
        expected_version: int,
        from_statuses: Iterable[FollowUpStatus],
    ) -> bool:
        stmt = (
            update(PostAdoptionFollowUp)
            .where(
                PostAdoptionFollowUp.id == follow_up.id,
                PostAdoptionFollowUp.version == expected_version,
                PostAdoptionFollowUp.status.in_(list(from_statuses)),
            )
            .values(
                status=follow_up.status,
                completed_date=follow_up.completed_date,
                risk_score=follow_up.risk_score,
                risk_level=follow_up.risk_level,
                follow_up_required=follow_up.follow_up_required,
                version=follow_up.version,
                **_answer_values(follow_up.answers),
            )
        )
        return await self._execute_update(stmt) == 1

    async def mark_reminded(self, follow_up_id: str, at: datetime) -> bool:
        stmt = (
            update(PostAdoptionFollowUp)
            .where(
                PostAdoptionFollowUp.id == follow_up_id,
                PostAdoptionFollowUp.status == FollowUpStatus.PENDING,
                PostAdoptionFollowUp.reminder_sent.is_(False),
            )
            .values(
                reminder_sent=True,
                reminder_count=PostAdoptionFollowUp.reminder_count + 1,
                last_reminder_date=ensure_utc(at),
                version=PostAdoptionFollowUp.version + 1,
            )
        )
        return await self._execute_update(stmt) == 1

    async def bulk_set_status(
        self,
        follow_up_ids: Iterable[str],
        from_status: FollowUpStatus,
        to_status: FollowUpStatus,
    ) -> int:
        ids = list(follow_up_ids)
        if not ids:
            return 0
        stmt = (
            update(PostAdoptionFollowUp)
            .where(
                PostAdoptionFollowUp.id.in_(ids),
                PostAdoptionFollowUp.status == from_status,
            )
            .values(status=to_status, version=PostAdoptionFollowUp.version + 1)
        )
        return await self._execute_update(stmt)

    async def _select(self, *criteria) -> list[FollowUp]:
        stmt = select(PostAdoptionFollowUp)
        if criteria:
            stmt = stmt.where(*criteria)
        stmt = stmt.order_by(PostAdoptionFollowUp.scheduled_date.asc(), PostAdoptionFollowUp.id.asc())
        async with self.session_factory() as session:
            rows = (await session.scalars(stmt)).all()
        return [_to_record(row) for row in rows]

    async def _execute_update(self, stmt) -> int:
        async with self.session_factory() as session:
            result = await session.execute(stmt.execution_options(synchronize_session=False))
            await session.commit()
        return result.rowcount
