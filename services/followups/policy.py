from __future__ import annotations

from dataclasses import dataclass, field

from shared.contracts.enums import FollowUpType, RiskLevel


DEFAULT_SCHEDULE: tuple[tuple[FollowUpType, int], ...] = (
    (FollowUpType.INITIAL_3_DAYS, 3),
    (FollowUpType.WEEK_1, 7),
    (FollowUpType.WEEK_2, 14),
    (FollowUpType.MONTH_1, 30),
    (FollowUpType.MONTH_3, 90),
    (FollowUpType.MONTH_6, 180),
    (FollowUpType.YEAR_1, 365),
)

SEPARATION_ANXIETY_MARKERS = frozenset(
    {
        "separation anxiety",
        "separation_anxiety",
        "ansiedad por separación",
    }
)


@dataclass(frozen=True)
class RiskWeights:
    poor_adaptation: float = 3
    concerning_adaptation: float = 5
    not_eating_well: float = 2
    not_sleeping_well: float = 1
    bathroom_problems: float = 2
    no_affection: float = 1
    per_behavioral_issue: float = 1
    per_health_concern: float = 0.5
    low_satisfaction: float = 3
    very_low_satisfaction: float = 2
    needs_support: float = 1
    # inclusive upper bounds on the 1-10 satisfaction scale
    low_satisfaction_max: int = 5
    very_low_satisfaction_max: int = 3


@dataclass(frozen=True)
class RiskThresholds:
    critical: float = 8
    high: float = 5
    medium: float = 3


@dataclass(frozen=True)
class FollowUpPolicy:
    """Immutable tuning for scheduling, scoring, escalation and the sweep."""

    schedule: tuple[tuple[FollowUpType, int], ...] = DEFAULT_SCHEDULE
    weights: RiskWeights = field(default_factory=RiskWeights)
    thresholds: RiskThresholds = field(default_factory=RiskThresholds)
    escalation_levels: frozenset[RiskLevel] = frozenset({RiskLevel.HIGH, RiskLevel.CRITICAL})
    separation_anxiety_markers: frozenset[str] = SEPARATION_ANXIETY_MARKERS
    behavioral_issue_limit: int = 2
    custom_follow_up_days: int = 7
    overdue_after_days: int = 7
    effect_attempts: int = 2

    def __post_init__(self) -> None:
        if not self.schedule:
            raise ValueError("schedule must contain at least one entry")
        types = [follow_up_type for follow_up_type, _ in self.schedule]
        if FollowUpType.CUSTOM in types:
            raise ValueError("custom follow-ups cannot be part of the fixed schedule")
        if len(set(types)) != len(types):
            raise ValueError("schedule types must be unique")
        if any(days < 0 for _, days in self.schedule):
            raise ValueError("schedule offsets must be non-negative")
        if not self.thresholds.critical >= self.thresholds.high >= self.thresholds.medium:
            raise ValueError("risk thresholds must be ordered critical >= high >= medium")
        if self.custom_follow_up_days < 1 or self.overdue_after_days < 1:
            raise ValueError("day windows must be at least 1")
        if self.effect_attempts < 1:
            raise ValueError("effect_attempts must be at least 1")


DEFAULT_POLICY = FollowUpPolicy()
