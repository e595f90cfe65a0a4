import asyncio

import pytest
from celery.signals import worker_process_init

import leaselogic.tasks as tasks_package
from leaselogic.services import build_services
from leaselogic.tasks import analysis_tasks
from tests.fakes import SAMPLE_LEASE, make_request


async def _create_job(settings, leased_to=None):
    services = build_services(settings)
    try:
        await services.init_db()
        services.file_store.save("f1", SAMPLE_LEASE.encode("utf-8"))
        snapshot = await services.orchestrator.start(make_request())
        if leased_to is not None:
            await services.states.acquire_lease(snapshot.id, leased_to, 600)
    finally:
        await services.aclose()
    return snapshot.id


@pytest.mark.unit
class TestResumeAnalysisTask:
    def test_task_completes_job(self, settings, monkeypatch):
        """Test the Celery task resumes a job to completion."""
        monkeypatch.setattr(analysis_tasks, "settings", settings)
        job_id = asyncio.run(_create_job(settings))

        outcome = analysis_tasks.resume_analysis.apply(args=[job_id]).get()

        assert outcome == {
            "analysis_id": job_id,
            "status": "Completed",
            "phase": "Done",
            "progress": 100,
        }

    def test_task_is_idempotent(self, settings, monkeypatch):
        """Test a redelivered task leaves a finished job unchanged."""
        monkeypatch.setattr(analysis_tasks, "settings", settings)
        job_id = asyncio.run(_create_job(settings))

        first = analysis_tasks.resume_analysis.apply(args=[job_id]).get()
        second = analysis_tasks.resume_analysis.apply(args=[job_id]).get()

        assert first == second

    def test_job_leased_by_another_worker_is_rechecked(self, settings, monkeypatch):
        """Test a task backs off from a leased job and schedules itself again."""
        monkeypatch.setattr(analysis_tasks, "settings", settings)
        dispatched = []

        def fake_apply_async(*args, **kwargs):
            dispatched.append(kwargs)

        monkeypatch.setattr(analysis_tasks.resume_analysis, "apply_async", fake_apply_async)
        job_id = asyncio.run(_create_job(settings, leased_to="worker-b"))

        outcome = analysis_tasks.resume_analysis.apply(args=[job_id]).get()

        assert outcome["status"] == "Running"
        assert outcome["progress"] == 0
        assert dispatched == [
            {"args": [job_id], "countdown": settings.JOB_LEASE_RECHECK_SECONDS},
        ]


@pytest.mark.unit
class TestWorkerSetup:
    def test_worker_process_configures_logging_and_tracing(self, monkeypatch):
        """Test each worker process sets up structlog and LangSmith on start."""
        calls = []
        monkeypatch.setattr(tasks_package, "setup_logging", lambda: calls.append("logging"))
        monkeypatch.setattr(tasks_package, "setup_tracing", lambda settings: calls.append("tracing"))

        worker_process_init.send(sender=None)

        assert calls == ["logging", "tracing"]
