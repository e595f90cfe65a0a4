import pytest

from leaselogic.core.config import Settings
from leaselogic.db.session import build_engine, build_session_factory, init_models
from leaselogic.pipeline.activities import build_activity_registry
from leaselogic.pipeline.checkpoint_log import CheckpointLog
from leaselogic.pipeline.gateway import ActivityGateway
from leaselogic.pipeline.orchestrator import Orchestrator
from leaselogic.pipeline.registry import ActivityRegistry
from leaselogic.pipeline.state_store import JobStateStore
from leaselogic.pipeline.status import StatusReader
from leaselogic.processing.content_structurer import RegexContentStructurer
from leaselogic.processing.document_parser import TextDocumentParser
from leaselogic.processing.file_store import LocalFileStore
from leaselogic.processing.lease_classifier import RuleBasedLeaseClassifier
from leaselogic.processing.report_synthesizer import DefaultReportSynthesizer
from tests.fakes import SAMPLE_LEASE, CountingActivity, no_sleep


def pytest_configure(config):
    """Add custom markers"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "api: API tests")


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path}/test.db",
        FILE_STORE_DIR=str(tmp_path / "documents"),
        EXECUTION_BACKEND="local",
        JOB_WORKER_COUNT=2,
        ACTIVITY_MAX_ATTEMPTS=3,
        ACTIVITY_BACKOFF_SECONDS=0.0,
        PHASE_TIMEOUT_SECONDS=5.0,
        STORAGE_RETRY_DELAY_SECONDS=0.0,
        LANGSMITH_TRACING=False,
        APP_ENV="test",
    )


@pytest.fixture
async def engine(settings):
    engine = build_engine(settings.DATABASE_URL)
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def checkpoint_log(session_factory) -> CheckpointLog:
    return CheckpointLog(session_factory)


@pytest.fixture
def state_store(session_factory) -> JobStateStore:
    return JobStateStore(session_factory)


@pytest.fixture
def file_store(settings) -> LocalFileStore:
    store = LocalFileStore(settings.FILE_STORE_DIR)
    store.save("f1", SAMPLE_LEASE.encode("utf-8"))
    return store


@pytest.fixture
def synthesizer() -> DefaultReportSynthesizer:
    return DefaultReportSynthesizer()


@pytest.fixture
def activities(file_store, synthesizer) -> dict[str, CountingActivity]:
    """Real activities wrapped with call counters, keyed by kind."""
    standard = build_activity_registry(
        file_store=file_store,
        parser=TextDocumentParser(),
        structurer=RegexContentStructurer(),
        classifier=RuleBasedLeaseClassifier(),
        synthesizer=synthesizer,
    )
    return {
        kind: CountingActivity(standard.resolve(kind))
        for kind in standard.list_available()
    }


@pytest.fixture
def registry(activities) -> ActivityRegistry:
    return ActivityRegistry(list(activities.values()))


@pytest.fixture
def gateway(registry) -> ActivityGateway:
    return ActivityGateway(
        registry,
        max_attempts=3,
        backoff_seconds=0.0,
        default_timeout=5.0,
        pool_size=4,
        sleep=no_sleep,
    )


@pytest.fixture
def orchestrator(checkpoint_log, state_store, gateway, file_store, synthesizer) -> Orchestrator:
    return Orchestrator(
        checkpoints=checkpoint_log,
        states=state_store,
        gateway=gateway,
        file_store=file_store,
        synthesizer=synthesizer,
        max_file_size=52_428_800,
    )


@pytest.fixture
def status_reader(state_store) -> StatusReader:
    return StatusReader(state_store)
