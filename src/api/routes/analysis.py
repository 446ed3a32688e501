"""
Analysis API routes.

Submit code for analysis and poll the resulting session.
"""

from fastapi import APIRouter, BackgroundTasks, status
import structlog

from src.api.dependencies import AnalysisServiceDep
from src.api.schemas import AnalysisRequest, SessionListResponse
from src.core.logging import bind_context
from src.domain.models.session import AnalysisSession

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/analysis", tags=["analysis"])


@router.post(
    "",
    response_model=AnalysisSession,
    status_code=status.HTTP_202_ACCEPTED,
)
async def start_analysis(
    request: AnalysisRequest,
    background_tasks: BackgroundTasks,
    service: AnalysisServiceDep,
):
    """Create a session and analyze the submitted code in the background.

    Returns the pending session immediately; poll GET /analysis/{session_id}
    for progress, stage and results.
    """
    session = service.create_session()
    bind_context(session_id=session.session_id)

    background_tasks.add_task(
        service.run_analysis_in_background, session.session_id, request.code
    )

    log.info(
        "analysis_requested",
        session_id=session.session_id,
        code_length=len(request.code or ""),
    )
    return service.store.snapshot(session.session_id)


@router.get("", response_model=SessionListResponse)
async def list_sessions(service: AnalysisServiceDep):
    """List the ids of all sessions known to this process."""
    session_ids = service.store.list_ids()
    return SessionListResponse(session_ids=session_ids, total=len(session_ids))


@router.get("/{session_id}", response_model=AnalysisSession)
async def get_analysis(session_id: str, service: AnalysisServiceDep):
    """Poll a session. Raises SessionNotFoundError (404) for unknown ids."""
    return service.store.snapshot(session_id)
