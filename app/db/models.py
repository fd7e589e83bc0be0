from __future__ import annotations

import enum
from datetime import date, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    Float,
    Index,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from shared.contracts.enums import AdaptationLevel, FollowUpStatus, FollowUpType, RiskLevel


class Base(DeclarativeBase):
    """Declarative base for application models."""


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


def _enum(enum_cls: type[enum.Enum], name: str) -> Enum:
    # persist the lowercase values, not the member names
    return Enum(enum_cls, name=name, values_callable=lambda members: [m.value for m in members])


class PostAdoptionFollowUp(TimestampMixin, Base):
    __tablename__ = "post_adoption_followups"
    __table_args__ = (
        Index("ix_followups_status_scheduled_date", "status", "scheduled_date"),
        Index("ix_followups_owner_status", "owner_id", "status"),
        # one row per fixed schedule slot; custom check-ins may repeat
        Index(
            "uq_followups_adoption_type",
            "adoption_id",
            "follow_up_type",
            unique=True,
            postgresql_where=text("follow_up_type <> 'custom'"),
            sqlite_where=text("follow_up_type <> 'custom'"),
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    adoption_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    adopter_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    owner_id: Mapped[str | None] = mapped_column(String(64))

    follow_up_type: Mapped[FollowUpType] = mapped_column(_enum(FollowUpType, "followup_type"), nullable=False)
    status: Mapped[FollowUpStatus] = mapped_column(
        _enum(FollowUpStatus, "followup_status"), nullable=False, default=FollowUpStatus.PENDING
    )
    scheduled_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    adaptation_level: Mapped[AdaptationLevel | None] = mapped_column(_enum(AdaptationLevel, "adaptation_level"))
    eating_well: Mapped[bool | None] = mapped_column(Boolean)
    sleeping_well: Mapped[bool | None] = mapped_column(Boolean)
    using_bathroom_properly: Mapped[bool | None] = mapped_column(Boolean)
    showing_affection: Mapped[bool | None] = mapped_column(Boolean)
    behavioral_issues: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    health_concerns: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    vet_visit_scheduled: Mapped[bool | None] = mapped_column(Boolean)
    vet_visit_date: Mapped[date | None] = mapped_column(Date)
    satisfaction_score: Mapped[int | None] = mapped_column(Integer)
    would_recommend: Mapped[bool | None] = mapped_column(Boolean)
    additional_comments: Mapped[str | None] = mapped_column(Text)
    needs_support: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    support_type: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    risk_score: Mapped[float | None] = mapped_column(Float)
    risk_level: Mapped[RiskLevel | None] = mapped_column(_enum(RiskLevel, "risk_level"))
    follow_up_required: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    reminder_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    reminder_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_reminder_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
