from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable

from shared.contracts.enums import AdaptationLevel, AnalyticsPeriod, FollowUpStatus, RiskLevel

from .lifecycle import FollowUp, ensure_utc


ADAPTATION_SCORES = {
    AdaptationLevel.EXCELLENT: 5,
    AdaptationLevel.GOOD: 4,
    AdaptationLevel.FAIR: 3,
    AdaptationLevel.POOR: 2,
    AdaptationLevel.CONCERNING: 1,
}
AT_RISK_LEVELS = frozenset({RiskLevel.HIGH, RiskLevel.CRITICAL})
PERIOD_DAYS = {
    AnalyticsPeriod.WEEK: 7,
    AnalyticsPeriod.MONTH: 30,
    AnalyticsPeriod.QUARTER: 90,
    AnalyticsPeriod.YEAR: 365,
}
TREND_MONTHS = {
    AnalyticsPeriod.WEEK: 1,
    AnalyticsPeriod.MONTH: 1,
    AnalyticsPeriod.QUARTER: 3,
    AnalyticsPeriod.YEAR: 12,
}


@dataclass(frozen=True)
class CompletionStats:
    total: int
    completed: int
    pending: int
    overdue: int
    skipped: int
    completion_rate: float


@dataclass(frozen=True)
class AdaptationStats:
    average_adaptation_score: float
    average_satisfaction_score: float
    risk_distribution: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True)
class MonthlyTrend:
    month: str
    completed: int
    average_satisfaction: float
    risk_cases: int


@dataclass(frozen=True)
class IssueFrequency:
    issue: str
    frequency: int


@dataclass(frozen=True)
class OrganizationDashboard:
    total_follow_ups: int
    completed_follow_ups: int
    pending_follow_ups: int
    at_risk_adoptions: int
    completion_rate: float


@dataclass(frozen=True)
class OrganizationAnalytics:
    period: AnalyticsPeriod
    since: datetime
    completion: CompletionStats
    adaptation: AdaptationStats
    common_issues: list[IssueFrequency]
    satisfaction_trend: list[MonthlyTrend]


@dataclass(frozen=True)
class GlobalStats:
    total_follow_ups: int
    completed_follow_ups: int
    completion_rate: float
    at_risk_adoptions: int
    average_satisfaction_score: float


def _rate(part: int, whole: int) -> float:
    return (part / whole) * 100 if whole > 0 else 0.0


def _completed(items: Iterable[FollowUp]) -> list[FollowUp]:
    return [item for item in items if item.status == FollowUpStatus.COMPLETED and item.answers is not None]


def _average_satisfaction(items: list[FollowUp]) -> float:
    if not items:
        return 0.0
    return sum(item.answers.satisfaction_score for item in items) / len(items)


def is_at_risk(item: FollowUp) -> bool:
    return item.status == FollowUpStatus.COMPLETED and item.risk_level in AT_RISK_LEVELS


def completion_stats(items: Iterable[FollowUp]) -> CompletionStats:
    counts = Counter(item.status for item in items)
    total = sum(counts.values())
    completed = counts[FollowUpStatus.COMPLETED]
    return CompletionStats(
        total=total,
        completed=completed,
        pending=counts[FollowUpStatus.PENDING],
        overdue=counts[FollowUpStatus.OVERDUE],
        skipped=counts[FollowUpStatus.SKIPPED],
        completion_rate=_rate(completed, total),
    )


def adaptation_stats(items: Iterable[FollowUp]) -> AdaptationStats:
    completed = _completed(items)
    if not completed:
        return AdaptationStats(average_adaptation_score=0.0, average_satisfaction_score=0.0)

    adaptation_total = sum(ADAPTATION_SCORES[item.answers.adaptation_level] for item in completed)
    distribution = Counter(item.risk_level.value if item.risk_level else "unknown" for item in completed)
    return AdaptationStats(
        average_adaptation_score=adaptation_total / len(completed),
        average_satisfaction_score=_average_satisfaction(completed),
        risk_distribution=dict(distribution),
    )


def _month_start(year: int, month: int) -> tuple[int, int]:
    # normalize month arithmetic that walked past January
    while month < 1:
        month += 12
        year -= 1
    return year, month


def monthly_trends(items: Iterable[FollowUp], now: datetime, months: int = 6) -> list[MonthlyTrend]:
    completed = _completed(items)
    safe_now = ensure_utc(now)
    trends: list[MonthlyTrend] = []
    for offset in range(months - 1, -1, -1):
        year, month = _month_start(safe_now.year, safe_now.month - offset)
        in_month = [
            item
            for item in completed
            if item.completed_date is not None
            and (item.completed_date.year, item.completed_date.month) == (year, month)
        ]
        trends.append(
            MonthlyTrend(
                month=f"{year:04d}-{month:02d}",
                completed=len(in_month),
                average_satisfaction=round(_average_satisfaction(in_month), 1),
                risk_cases=sum(1 for item in in_month if item.risk_level in AT_RISK_LEVELS),
            )
        )
    return trends


def common_issues(items: Iterable[FollowUp], limit: int = 10) -> list[IssueFrequency]:
    counts: Counter[str] = Counter()
    for item in _completed(items):
        counts.update(issue.strip().lower() for issue in item.answers.behavioral_issues if issue.strip())
    return [IssueFrequency(issue=issue, frequency=frequency) for issue, frequency in counts.most_common(limit)]


def at_risk(items: Iterable[FollowUp]) -> list[FollowUp]:
    flagged = [item for item in items if is_at_risk(item)]
    flagged.sort(key=lambda item: item.completed_date or item.scheduled_date, reverse=True)
    return flagged


def organization_dashboard(items: Iterable[FollowUp]) -> OrganizationDashboard:
    materialized = list(items)
    stats = completion_stats(materialized)
    return OrganizationDashboard(
        total_follow_ups=stats.total,
        completed_follow_ups=stats.completed,
        pending_follow_ups=stats.pending,
        at_risk_adoptions=len(at_risk(materialized)),
        completion_rate=stats.completion_rate,
    )


def organization_analytics(
    items: Iterable[FollowUp],
    period: AnalyticsPeriod,
    now: datetime,
) -> OrganizationAnalytics:
    safe_now = ensure_utc(now)
    since = safe_now - timedelta(days=PERIOD_DAYS[period])
    in_period = [item for item in items if item.scheduled_date >= since and item.scheduled_date <= safe_now]
    return OrganizationAnalytics(
        period=period,
        since=since,
        completion=completion_stats(in_period),
        adaptation=adaptation_stats(in_period),
        common_issues=common_issues(in_period),
        satisfaction_trend=monthly_trends(in_period, safe_now, months=TREND_MONTHS[period]),
    )


def global_stats(items: Iterable[FollowUp]) -> GlobalStats:
    materialized = list(items)
    stats = completion_stats(materialized)
    return GlobalStats(
        total_follow_ups=stats.total,
        completed_follow_ups=stats.completed,
        completion_rate=stats.completion_rate,
        at_risk_adoptions=len(at_risk(materialized)),
        average_satisfaction_score=round(_average_satisfaction(_completed(materialized)), 1),
    )
