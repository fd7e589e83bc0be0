"""
Application configuration loaded from environment variables.
"""
import logging
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from services.followups.policy import FollowUpPolicy


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="HAIRYPAWS_", env_file=".env", extra="ignore")

    # Database (unset: in-memory store)
    database_url: Optional[str] = None
    database_echo: bool = False

    # Redis for the arq worker (unset: the scheduler generates schedules inline)
    redis_url: Optional[str] = None

    # Collaborator services (unset: in-memory fakes)
    adoptions_service_url: Optional[str] = None
    notifications_service_url: Optional[str] = None
    http_timeout_seconds: float = Field(default=10.0, gt=0)

    # Optional owner -> organization user mapping for escalation alerts
    organization_directory: dict[str, str] = Field(default_factory=dict)

    # Daily reminder sweep, wall-clock UTC
    reminder_sweep_hour: int = Field(default=9, ge=0, le=23)
    reminder_sweep_minute: int = Field(default=0, ge=0, le=59)

    # Policy overrides
    overdue_after_days: int = Field(default=7, ge=1)
    custom_follow_up_days: int = Field(default=7, ge=1)
    effect_attempts: int = Field(default=2, ge=1)

    log_level: str = "INFO"

    def policy(self) -> FollowUpPolicy:
        return FollowUpPolicy(
            overdue_after_days=self.overdue_after_days,
            custom_follow_up_days=self.custom_follow_up_days,
            effect_attempts=self.effect_attempts,
        )


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Reduce verbosity of third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
