from enum import Enum


class FollowUpType(str, Enum):
    INITIAL_3_DAYS = "initial_3_days"
    WEEK_1 = "week_1"
    WEEK_2 = "week_2"
    MONTH_1 = "month_1"
    MONTH_3 = "month_3"
    MONTH_6 = "month_6"
    YEAR_1 = "year_1"
    CUSTOM = "custom"


class FollowUpStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    SKIPPED = "skipped"
    OVERDUE = "overdue"


class AdaptationLevel(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CONCERNING = "concerning"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class NotificationKind(str, Enum):
    GENERAL = "general"
    FOLLOWUP_REMINDER = "followup_reminder"
    RISK_ALERT = "risk_alert"
    INTERVENTION = "intervention"


class ReferenceType(str, Enum):
    FOLLOWUP = "followup"
    RISK_ALERT = "risk_alert"
    INTERVENTION = "intervention"


class AnalyticsPeriod(str, Enum):
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
