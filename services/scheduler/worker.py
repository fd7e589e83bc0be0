"""
arq worker for the follow-up engine.

Runs the daily reminder sweep as a cron job and generates the follow-up
schedules that the scheduler service queues when an adoption is approved
(see services.scheduler.queue).
"""
import logging

from arq.connections import RedisSettings

from hairypaws import build_service
from shared.config import configure_logging, get_settings

logger = logging.getLogger(__name__)

settings = get_settings()
configure_logging(settings)


async def startup(ctx) -> None:
    ctx["service"] = build_service(settings)
    logger.info("Follow-up worker started")


async def run_reminder_sweep_task(ctx) -> dict:
    """Send reminders for due check-ins and age out stale ones."""
    service = ctx.get("service") or build_service(settings)
    logger.info("Reminder sweep started (job %s)", ctx.get("job_id", "cron"))
    result = await service.run_reminder_sweep()
    return result.model_dump()


async def generate_schedule_task(ctx, adoption_id: str) -> dict:
    service = ctx.get("service") or build_service(settings)
    result = await service.on_adoption_approved(adoption_id)
    logger.info("Schedule job for adoption %s created %d follow-ups", adoption_id, len(result.created))
    return {"adoption_id": adoption_id, "created": len(result.created)}


class WorkerSettings:
    functions = [
        run_reminder_sweep_task,
        generate_schedule_task,
    ]
    on_startup = startup
    redis_settings = RedisSettings.from_dsn(settings.redis_url) if settings.redis_url else RedisSettings()

    max_tries = 3

    # Cron jobs - daily sweep, wall-clock UTC
    from arq.cron import cron

    cron_jobs = [
        cron(
            run_reminder_sweep_task,
            hour=settings.reminder_sweep_hour,
            minute=settings.reminder_sweep_minute,
        ),
    ]
