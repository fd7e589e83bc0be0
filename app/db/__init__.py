from .models import Base, PostAdoptionFollowUp, TimestampMixin
from .session import create_session_factory
from .store import SqlFollowUpStore

__all__ = [
    "Base",
    "PostAdoptionFollowUp",
    "SqlFollowUpStore",
    "TimestampMixin",
    "create_session_factory",
]
