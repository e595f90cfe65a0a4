"""
Celery tasks — out-of-process execution of analysis jobs.

Wires `Orchestrator.resume()` into the Celery task system for
EXECUTION_BACKEND=celery.  Resume is idempotent, so a redelivered or
retried task never re-runs a checkpointed phase, and the job lease keeps
two workers from advancing the same job at once.
"""

import asyncio

import structlog

from leaselogic.core.config import settings
from leaselogic.core.constants import JobStatus
from leaselogic.pipeline.errors import ConflictError, StorageError
from leaselogic.services import build_services
from leaselogic.tasks import celery_app

logger = structlog.get_logger("tasks.analysis")


async def _resume(job_id: str) -> dict:
    """Resume the job with a fresh service container (asyncio.run gives a new loop)."""
    services = build_services(settings)
    try:
        try:
            snapshot = await services.orchestrator.resume(job_id)
        except ConflictError as exc:
            # a checkpoint landed from another worker after our lease lapsed
            logger.warning("Job advanced by another worker", job_id=job_id, error=str(exc))
            snapshot = await services.states.get(job_id)
    finally:
        await services.aclose()
    return {
        "analysis_id": snapshot.id,
        "status": str(snapshot.status),
        "phase": str(snapshot.phase),
        "progress": snapshot.progress,
    }


@celery_app.task(
    bind=True,
    name="leaselogic.tasks.analysis_tasks.resume_analysis",
    max_retries=settings.STORAGE_MAX_RETRIES,
)
def resume_analysis(self, job_id: str):
    """
    Drive one analysis job as far as it can go.

    StorageError is a process-level fault: the task is retried after
    STORAGE_RETRY_DELAY_SECONDS.  Phase failures never reach here; they
    end the job Failed with a fallback Result.  A job still Running
    afterwards is leased by another worker and is checked again after
    JOB_LEASE_RECHECK_SECONDS.
    """
    task_log = logger.bind(task_id=self.request.id, job_id=job_id)
    task_log.info("Analysis task started")

    try:
        outcome = asyncio.run(_resume(job_id))
    except StorageError as exc:
        task_log.warning(
            "Storage error, retrying task",
            error=str(exc),
            retries=self.request.retries,
        )
        raise self.retry(exc=exc, countdown=settings.STORAGE_RETRY_DELAY_SECONDS)

    if outcome["status"] == JobStatus.RUNNING:
        task_log.info("Job leased by another worker, rechecking later", delay=settings.JOB_LEASE_RECHECK_SECONDS)
        self.apply_async(args=[job_id], countdown=settings.JOB_LEASE_RECHECK_SECONDS)
        return outcome

    task_log.info("Analysis task finished", status=outcome["status"], progress=outcome["progress"])
    return outcome
