"""
Hands schedule generation to the arq worker.
"""
import logging

from arq import create_pool
from arq.connections import RedisSettings

logger = logging.getLogger(__name__)

GENERATE_SCHEDULE_TASK = "generate_schedule_task"


class ArqScheduleQueue:
    def __init__(self, redis_url: str) -> None:
        self.redis_settings = RedisSettings.from_dsn(redis_url)

    async def enqueue_schedule(self, adoption_id: str) -> str | None:
        """Queue schedule generation; returns None when a job for the adoption is already queued."""
        pool = await create_pool(self.redis_settings)
        try:
            # job id per adoption, arq drops the second enqueue
            job = await pool.enqueue_job(GENERATE_SCHEDULE_TASK, adoption_id, _job_id=f"schedule:{adoption_id}")
        finally:
            await pool.close()

        if job is None:
            logger.info("Schedule job for adoption %s is already queued", adoption_id)
            return None
        logger.info("Queued schedule job %s for adoption %s", job.job_id, adoption_id)
        return job.job_id
