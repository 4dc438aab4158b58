"""Aggregated health endpoint for the monitoring collaborator."""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from ptflio.dependencies import HealthDep
from ptflio.schemas.health import HealthState, SystemHealthResponse

router = APIRouter()


@router.get(
    "",
    response_model=SystemHealthResponse,
    summary="System health",
    description=(
        "Health of the cache and every integration. Answers 200 while the "
        "system is healthy or degraded and 503 once any component is unhealthy."
    ),
    responses={503: {"model": SystemHealthResponse, "description": "Unhealthy"}},
)
async def get_health(health: HealthDep) -> JSONResponse:
    document = await health.check()
    status_code = (
        status.HTTP_503_SERVICE_UNAVAILABLE
        if document.status == HealthState.UNHEALTHY
        else status.HTTP_200_OK
    )
    return JSONResponse(
        status_code=status_code,
        content=document.model_dump(mode="json"),
        headers={"Cache-Control": "no-cache, no-store, must-revalidate"},
    )
