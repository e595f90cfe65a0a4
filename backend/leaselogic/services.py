"""
Service container — builds every pipeline component from Settings.

Components receive their collaborators at construction; nothing below
reads global state, so tests build a container against a throwaway
database and swap in their own activities.

Usage:
    services = build_services(settings)
    await services.runner.start()
    snapshot = await services.orchestrator.start(request)
    await services.runner.submit(snapshot.id)
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from leaselogic.core.config import Settings, settings as default_settings
from leaselogic.core.logging import get_logger
from leaselogic.db.session import build_engine, build_session_factory, init_models
from leaselogic.pipeline.activities import build_activity_registry
from leaselogic.pipeline.checkpoint_log import CheckpointLog
from leaselogic.pipeline.gateway import ActivityGateway
from leaselogic.pipeline.orchestrator import Orchestrator
from leaselogic.pipeline.registry import ActivityRegistry
from leaselogic.pipeline.runner import AnalysisRunner, CeleryDispatcher
from leaselogic.pipeline.state_store import JobStateStore
from leaselogic.pipeline.status import StatusReader
from leaselogic.processing.base import FileStore, ReportSynthesizer
from leaselogic.processing.content_structurer import RegexContentStructurer
from leaselogic.processing.document_parser import TextDocumentParser
from leaselogic.processing.file_store import LocalFileStore
from leaselogic.processing.lease_classifier import RuleBasedLeaseClassifier
from leaselogic.processing.report_synthesizer import DefaultReportSynthesizer

logger = get_logger(__name__)


@dataclass
class Services:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    file_store: FileStore
    checkpoints: CheckpointLog
    states: JobStateStore
    gateway: ActivityGateway
    orchestrator: Orchestrator
    status: StatusReader
    runner: AnalysisRunner | CeleryDispatcher

    async def init_db(self) -> None:
        await init_models(self.engine)

    async def aclose(self) -> None:
        await self.runner.stop()
        await self.engine.dispose()


def build_services(
    settings: Settings | None = None,
    *,
    registry: ActivityRegistry | None = None,
    file_store: FileStore | None = None,
    synthesizer: ReportSynthesizer | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> Services:
    """Wire the full pipeline.  Keyword overrides replace the default collaborators."""
    settings = settings or default_settings

    engine = build_engine(settings.DATABASE_URL, echo=settings.DB_ECHO)
    session_factory = build_session_factory(engine)

    file_store = file_store or LocalFileStore(settings.FILE_STORE_DIR)
    synthesizer = synthesizer or DefaultReportSynthesizer()
    registry = registry or build_activity_registry(
        file_store=file_store,
        parser=TextDocumentParser(),
        structurer=RegexContentStructurer(),
        classifier=RuleBasedLeaseClassifier(),
        synthesizer=synthesizer,
        notification_timeout=settings.NOTIFICATION_TIMEOUT_SECONDS,
    )

    checkpoints = CheckpointLog(session_factory)
    states = JobStateStore(session_factory)
    gateway = ActivityGateway(
        registry,
        max_attempts=settings.ACTIVITY_MAX_ATTEMPTS,
        backoff_seconds=settings.ACTIVITY_BACKOFF_SECONDS,
        default_timeout=settings.PHASE_TIMEOUT_SECONDS,
        pool_size=settings.ACTIVITY_WORKER_POOL_SIZE,
        sleep=sleep,
    )
    orchestrator = Orchestrator(
        checkpoints=checkpoints,
        states=states,
        gateway=gateway,
        file_store=file_store,
        synthesizer=synthesizer,
        max_file_size=settings.MAX_FILE_SIZE_BYTES,
        lease_seconds=settings.JOB_LEASE_SECONDS,
    )

    backend = settings.EXECUTION_BACKEND.lower()
    if backend == "celery":
        runner: AnalysisRunner | CeleryDispatcher = CeleryDispatcher(states)
    elif backend == "local":
        runner = AnalysisRunner(
            orchestrator,
            states,
            worker_count=settings.JOB_WORKER_COUNT,
            storage_max_retries=settings.STORAGE_MAX_RETRIES,
            storage_retry_delay=settings.STORAGE_RETRY_DELAY_SECONDS,
            lease_recheck_delay=settings.JOB_LEASE_RECHECK_SECONDS,
            sleep=sleep,
        )
    else:
        raise ValueError(f"Unknown EXECUTION_BACKEND: {settings.EXECUTION_BACKEND!r}")

    logger.info(
        "Services built",
        execution_backend=backend,
        activities=registry.list_available(),
    )
    return Services(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        file_store=file_store,
        checkpoints=checkpoints,
        states=states,
        gateway=gateway,
        orchestrator=orchestrator,
        status=StatusReader(states),
        runner=runner,
    )
