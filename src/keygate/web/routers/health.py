from fastapi import APIRouter
from pydantic import BaseModel

from keygate.core.modules.gate.models import AuthStatus
from keygate.web.deps import AppDep
from keygate.web.openapi import ErrorResponse

router = APIRouter(tags=["health"])


class DetailedHealthResponse(BaseModel):
    success: bool = True
    status: str = "ok"
    auth: AuthStatus
    sessions: int
    connection_tokens: int


@router.get(
    "/health/detailed",
    summary="Detailed health",
    description="Health with authentication mode and live session counts. Requires authentication.",
    operation_id="getDetailedHealth",
    responses={
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Invalid API key"},
    },
)
async def detailed_health(app: AppDep) -> DetailedHealthResponse:
    stats = app.get_session_stats()
    return DetailedHealthResponse(
        auth=app.get_auth_status(), sessions=stats["sessions"], connection_tokens=stats["connection_tokens"]
    )
