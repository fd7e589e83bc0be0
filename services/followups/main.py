from dataclasses import asdict
from typing import Any

from fastapi import Body, Depends, FastAPI, Header, Request
from fastapi.responses import JSONResponse

from hairypaws import build_service
from services.followups.lifecycle import FollowUp
from services.followups.service import CompletionResult, FollowUpService
from shared.config import configure_logging, get_settings
from shared.contracts.enums import AnalyticsPeriod, FollowUpStatus
from shared.contracts.errors import FollowUpError, QuestionnaireValidationError
from shared.contracts.models import (
    CompletionResponse,
    FollowUpDTO,
    InterventionDTO,
    InterventionRequest,
    ScheduleResponse,
    SweepResult,
)


def _follow_up_to_dto(follow_up: FollowUp) -> FollowUpDTO:
    return FollowUpDTO(
        id=follow_up.id,
        adoption_id=follow_up.adoption_id,
        adopter_id=follow_up.adopter_id,
        owner_id=follow_up.owner_id,
        follow_up_type=follow_up.follow_up_type,
        status=follow_up.status,
        scheduled_date=follow_up.scheduled_date,
        completed_date=follow_up.completed_date,
        answers=follow_up.answers,
        risk_score=follow_up.risk_score,
        risk_level=follow_up.risk_level,
        follow_up_required=follow_up.follow_up_required,
        reminder_sent=follow_up.reminder_sent,
        reminder_count=follow_up.reminder_count,
        last_reminder_date=follow_up.last_reminder_date,
    )


def _completion_to_response(result: CompletionResult) -> CompletionResponse:
    return CompletionResponse(
        follow_up=_follow_up_to_dto(result.follow_up),
        risk_score=result.risk_score,
        risk_assessment=result.risk_level,
        recommendations=result.recommendations,
    )


def get_service(request: Request) -> FollowUpService:
    return request.app.state.service


def create_app(service: FollowUpService | None = None) -> FastAPI:
    app = FastAPI(title="followups")
    app.state.service = service or build_service()

    @app.exception_handler(FollowUpError)
    async def handle_follow_up_error(request: Request, exc: FollowUpError) -> JSONResponse:
        content: dict[str, Any] = {"detail": exc.message}
        if isinstance(exc, QuestionnaireValidationError):
            content["errors"] = exc.errors
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "service": "followups"}

    @app.get("/post-adoption/my-followups", response_model=list[FollowUpDTO])
    async def my_follow_ups(
        status: FollowUpStatus | None = None,
        user_id: str = Header(alias="X-User-Id"),
        service: FollowUpService = Depends(get_service),
    ) -> list[FollowUpDTO]:
        return [_follow_up_to_dto(f) for f in await service.list_for_adopter(user_id, status)]

    @app.post("/post-adoption/schedule/{adoption_id}", response_model=ScheduleResponse)
    async def schedule_follow_ups(
        adoption_id: str,
        service: FollowUpService = Depends(get_service),
    ) -> ScheduleResponse:
        result = await service.create_schedule(adoption_id)
        return ScheduleResponse(
            adoption_id=result.adoption_id,
            created=len(result.created),
            follow_ups=[_follow_up_to_dto(f) for f in result.follow_ups],
        )

    @app.get("/post-adoption/followup/{follow_up_id}", response_model=FollowUpDTO)
    async def get_follow_up(
        follow_up_id: str,
        user_id: str = Header(alias="X-User-Id"),
        service: FollowUpService = Depends(get_service),
    ) -> FollowUpDTO:
        return _follow_up_to_dto(await service.get_for_viewer(follow_up_id, user_id))

    @app.post("/post-adoption/followup/{follow_up_id}/complete", response_model=CompletionResponse)
    async def complete_follow_up(
        follow_up_id: str,
        payload: dict[str, Any] = Body(...),
        user_id: str = Header(alias="X-User-Id"),
        service: FollowUpService = Depends(get_service),
    ) -> CompletionResponse:
        result = await service.complete(follow_up_id, user_id, payload)
        return _completion_to_response(result)

    @app.post("/post-adoption/followup/{follow_up_id}/skip", response_model=FollowUpDTO)
    async def skip_follow_up(
        follow_up_id: str,
        user_id: str = Header(alias="X-User-Id"),
        service: FollowUpService = Depends(get_service),
    ) -> FollowUpDTO:
        return _follow_up_to_dto(await service.skip(follow_up_id, user_id))

    @app.get("/post-adoption/ong/dashboard")
    async def organization_dashboard(
        user_id: str = Header(alias="X-User-Id"),
        service: FollowUpService = Depends(get_service),
    ) -> dict:
        return asdict(await service.organization_dashboard(user_id))

    @app.get("/post-adoption/ong/analytics")
    async def organization_analytics(
        period: AnalyticsPeriod = AnalyticsPeriod.MONTH,
        user_id: str = Header(alias="X-User-Id"),
        service: FollowUpService = Depends(get_service),
    ) -> dict:
        return asdict(await service.organization_analytics(user_id, period))

    @app.get("/post-adoption/ong/at-risk", response_model=list[FollowUpDTO])
    async def at_risk_adoptions(
        user_id: str = Header(alias="X-User-Id"),
        service: FollowUpService = Depends(get_service),
    ) -> list[FollowUpDTO]:
        return [_follow_up_to_dto(f) for f in await service.at_risk_adoptions(user_id)]

    @app.post("/post-adoption/ong/intervention/{follow_up_id}", response_model=InterventionDTO)
    async def initiate_intervention(
        follow_up_id: str,
        payload: InterventionRequest,
        user_id: str = Header(alias="X-User-Id"),
        service: FollowUpService = Depends(get_service),
    ) -> InterventionDTO:
        intervention = await service.initiate_intervention(
            follow_up_id,
            organization_user_id=user_id,
            intervention_type=payload.intervention_type,
            notes=payload.notes,
        )
        return InterventionDTO(**asdict(intervention))

    @app.get("/post-adoption/admin/stats")
    async def global_stats(service: FollowUpService = Depends(get_service)) -> dict:
        stats = await service.global_stats()
        return {**asdict(stats), "monthly_trends": [asdict(t) for t in await service.monthly_trends()]}

    @app.post("/post-adoption/admin/send-reminders", response_model=SweepResult)
    async def send_reminders(service: FollowUpService = Depends(get_service)) -> SweepResult:
        return await service.run_reminder_sweep()

    return app


configure_logging(get_settings())
app = create_app()
