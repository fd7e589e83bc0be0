import logging

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from hairypaws import build_service
from services.followups.service import FollowUpService
from services.scheduler.queue import ArqScheduleQueue
from shared.config import Settings, configure_logging, get_settings
from shared.contracts.errors import FollowUpError, NotFoundError
from shared.contracts.models import AdoptionApprovedEvent, SweepResult

logger = logging.getLogger(__name__)


def get_service(request: Request) -> FollowUpService:
    return request.app.state.service


def create_app(
    service: FollowUpService | None = None,
    settings: Settings | None = None,
    queue: ArqScheduleQueue | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    app = FastAPI(title="scheduler")
    app.state.settings = settings
    app.state.service = service or build_service(settings)
    # without redis the scheduler generates schedules itself
    if queue is None and settings.redis_url:
        queue = ArqScheduleQueue(settings.redis_url)
    app.state.queue = queue

    @app.exception_handler(FollowUpError)
    async def handle_follow_up_error(request: Request, exc: FollowUpError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.get("/health")
    def health() -> dict[str, str | bool]:
        return {
            "status": "ok",
            "service": "scheduler",
            "redis_configured": bool(app.state.settings.redis_url),
        }

    @app.post("/jobs/tick", response_model=SweepResult)
    async def tick(service: FollowUpService = Depends(get_service)) -> SweepResult:
        return await service.run_reminder_sweep()

    @app.post("/events/adoption-approved")
    async def adoption_approved(
        event: AdoptionApprovedEvent,
        service: FollowUpService = Depends(get_service),
    ) -> dict[str, str | int | None]:
        logger.info("Adoption %s approved at %s", event.adoption_id, event.occurred_at.isoformat())

        if app.state.queue is not None:
            if await service.adoptions.get(event.adoption_id) is None:
                raise NotFoundError("adoption", event.adoption_id)
            job_id = await app.state.queue.enqueue_schedule(event.adoption_id)
            return {"adoption_id": event.adoption_id, "status": "queued", "job_id": job_id}

        result = await service.on_adoption_approved(event.adoption_id)
        return {"adoption_id": result.adoption_id, "status": "created", "created": len(result.created)}

    return app


configure_logging(get_settings())
app = create_app()
