"""Deterministic questionnaire scoring, recommendations and follow-up decisions.

Everything here is a pure function of the answers and the policy, so the
same questionnaire always yields the same score, category and advice.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared.contracts.enums import AdaptationLevel, RiskLevel
from shared.contracts.models import Questionnaire

from .policy import DEFAULT_POLICY, FollowUpPolicy, RiskThresholds, RiskWeights


FEEDING_ADVICE = (
    "Talk to a veterinarian about your pet's diet",
    "Try different food types or feeding times",
)
SLEEP_ADVICE = (
    "Set up a calm, quiet place for your pet to sleep",
    "Keep a consistent sleep routine",
)
HOUSE_TRAINING_ADVICE = (
    "Reinforce house training with rewards",
    "Take your pet outside more often",
)
SEPARATION_ANXIETY_ADVICE = (
    "Practice short departures and gradually increase the time away",
    "Consider interactive toys to keep your pet busy",
)
LOW_SATISFACTION_ADVICE = (
    "Schedule a call with the organization for extra support",
    "Consider professional training",
)
URGENT_CONTACT_ADVICE = (
    "Contact the organization right away for support",
    "Consider a complete veterinary evaluation",
)


@dataclass(frozen=True)
class RiskAssessment:
    score: float
    level: RiskLevel


def score_answers(answers: Questionnaire, weights: RiskWeights | None = None) -> float:
    w = weights or DEFAULT_POLICY.weights
    score = 0.0

    if answers.adaptation_level == AdaptationLevel.POOR:
        score += w.poor_adaptation
    elif answers.adaptation_level == AdaptationLevel.CONCERNING:
        score += w.concerning_adaptation

    if not answers.eating_well:
        score += w.not_eating_well
    if not answers.sleeping_well:
        score += w.not_sleeping_well
    if not answers.using_bathroom_properly:
        score += w.bathroom_problems
    if not answers.showing_affection:
        score += w.no_affection

    score += len(answers.behavioral_issues) * w.per_behavioral_issue
    score += len(answers.health_concerns) * w.per_health_concern

    if answers.satisfaction_score <= w.low_satisfaction_max:
        score += w.low_satisfaction
    if answers.satisfaction_score <= w.very_low_satisfaction_max:
        score += w.very_low_satisfaction

    if answers.needs_support:
        score += w.needs_support

    return score


def categorize(score: float, thresholds: RiskThresholds | None = None) -> RiskLevel:
    t = thresholds or DEFAULT_POLICY.thresholds
    if score >= t.critical:
        return RiskLevel.CRITICAL
    if score >= t.high:
        return RiskLevel.HIGH
    if score >= t.medium:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def assess(answers: Questionnaire, policy: FollowUpPolicy = DEFAULT_POLICY) -> RiskAssessment:
    score = score_answers(answers, policy.weights)
    return RiskAssessment(score=score, level=categorize(score, policy.thresholds))


def has_separation_anxiety(answers: Questionnaire, policy: FollowUpPolicy = DEFAULT_POLICY) -> bool:
    return any(
        issue.strip().lower() in policy.separation_anxiety_markers
        for issue in answers.behavioral_issues
    )


def recommend(
    answers: Questionnaire,
    risk_level: RiskLevel,
    policy: FollowUpPolicy = DEFAULT_POLICY,
) -> list[str]:
    recommendations: list[str] = []

    if not answers.eating_well:
        recommendations.extend(FEEDING_ADVICE)
    if not answers.sleeping_well:
        recommendations.extend(SLEEP_ADVICE)
    if not answers.using_bathroom_properly:
        recommendations.extend(HOUSE_TRAINING_ADVICE)
    if has_separation_anxiety(answers, policy):
        recommendations.extend(SEPARATION_ANXIETY_ADVICE)
    if answers.satisfaction_score <= policy.weights.low_satisfaction_max:
        recommendations.extend(LOW_SATISFACTION_ADVICE)
    if risk_level in policy.escalation_levels:
        recommendations.extend(URGENT_CONTACT_ADVICE)

    return recommendations


def needs_additional_follow_up(
    answers: Questionnaire,
    risk_level: RiskLevel,
    policy: FollowUpPolicy = DEFAULT_POLICY,
) -> bool:
    return (
        risk_level in policy.escalation_levels
        or answers.needs_support
        or answers.satisfaction_score <= policy.weights.low_satisfaction_max
        or len(answers.behavioral_issues) > policy.behavioral_issue_limit
    )
