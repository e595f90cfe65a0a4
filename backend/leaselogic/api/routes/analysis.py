"""
Analysis endpoints — submit, poll status, fetch result, terminate.

Pipeline errors raised here are mapped to HTTP responses by the
exception handlers registered in leaselogic.main.
"""

from typing import Any

from fastapi import APIRouter, Depends

from leaselogic.api.deps import get_services
from leaselogic.api.schemas.analysis import AnalyzeRequest, AnalyzeResponse
from leaselogic.core.logging import get_logger
from leaselogic.services import Services

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["Analysis"])


# ─── Submit ───────────────────────────────────────────────
@router.post("/analyze", response_model=AnalyzeResponse)
async def start_analysis(
    body: AnalyzeRequest,
    services: Services = Depends(get_services),
):
    """
    Start an analysis.

    1. Validates the request and checks the file exists (400 / 404)
    2. Records the job as Running/Initializing/0%
    3. Hands the job to the runner and returns immediately
    """
    snapshot = await services.orchestrator.start(body.to_domain())
    await services.runner.submit(snapshot.id)

    logger.info("Analysis submitted", analysis_id=snapshot.id, file_id=snapshot.file_id)
    return AnalyzeResponse(
        analysis_id=snapshot.id,
        status=str(snapshot.status),
        status_url=f"/api/status/{snapshot.id}",
        result_url=f"/api/result/{snapshot.id}",
        estimated_duration=services.settings.ESTIMATED_DURATION,
        created_time=snapshot.created_at,
    )


# ─── Status ───────────────────────────────────────────────
@router.get("/status/{analysis_id}")
async def get_analysis_status(
    analysis_id: str,
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Current progress; includes the Result once the job is terminal."""
    snapshot = await services.status.get_status(analysis_id)
    return snapshot.to_status_dict()


# ─── Result ───────────────────────────────────────────────
@router.get("/result/{analysis_id}")
async def get_analysis_result(
    analysis_id: str,
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """The full Result; 400 with the current status while still running."""
    return await services.status.get_result(analysis_id)


# ─── Terminate ────────────────────────────────────────────
@router.post("/terminate/{analysis_id}")
async def terminate_analysis(
    analysis_id: str,
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """
    Request cancellation.  The job stops at its next phase boundary;
    the runner is nudged so an idle job observes the request too.
    """
    snapshot = await services.orchestrator.terminate(analysis_id)
    if not snapshot.is_terminal:
        await services.runner.submit(analysis_id)
    return snapshot.to_status_dict()
