import pytest

from leaselogic.core.constants import JobStatus, Phase
from leaselogic.pipeline.errors import NotFoundError
from tests.fakes import make_snapshot


@pytest.mark.unit
class TestJobStateStore:
    async def test_insert_and_get(self, state_store):
        """Test a new snapshot is stored and returned."""
        stored = await state_store.upsert(make_snapshot("job-1"))
        fetched = await state_store.get("job-1")
        assert fetched.id == "job-1"
        assert fetched.status == JobStatus.RUNNING
        assert fetched.phase == Phase.INITIALIZING
        assert fetched.progress == 0
        assert fetched.updated_at == stored.updated_at
        assert fetched.updated_at >= fetched.created_at
        assert fetched.termination_requested is False

    async def test_get_unknown_raises(self, state_store):
        """Test unknown ids raise NotFoundError."""
        with pytest.raises(NotFoundError):
            await state_store.get("missing")

    async def test_progress_never_decreases(self, state_store):
        """Test a lower progress value does not overwrite a higher one."""
        await state_store.upsert(make_snapshot("job-1"))
        await state_store.upsert(make_snapshot("job-1", phase=Phase.CLASSIFYING, progress=35))
        stored = await state_store.upsert(make_snapshot("job-1", phase=Phase.STRUCTURING, progress=15))
        assert stored.progress == 35
        assert stored.phase == Phase.CLASSIFYING

    async def test_updated_at_strictly_increases(self, state_store):
        """Test every write moves updated_at forward."""
        previous = await state_store.upsert(make_snapshot("job-1"))
        for progress in (15, 15, 35, 35):
            current = await state_store.upsert(make_snapshot("job-1", progress=progress))
            assert current.updated_at > previous.updated_at
            previous = current

    async def test_terminal_snapshot_is_immutable(self, state_store):
        """Test nothing changes a job once it is terminal."""
        await state_store.upsert(make_snapshot("job-1"))
        completed = await state_store.upsert(make_snapshot(
            "job-1",
            status=JobStatus.COMPLETED,
            phase=Phase.DONE,
            progress=100,
            message="Analysis completed",
            result={"analysisId": "job-1"},
        ))

        after = await state_store.upsert(make_snapshot(
            "job-1",
            status=JobStatus.FAILED,
            progress=100,
            error="late failure",
        ))
        assert after == completed
        assert (await state_store.get("job-1")).status == JobStatus.COMPLETED
        assert (await state_store.get("job-1")).result == {"analysisId": "job-1"}

    async def test_request_termination(self, state_store):
        """Test the termination flag is recorded for known jobs only."""
        assert await state_store.request_termination("missing") is False

        await state_store.upsert(make_snapshot("job-1"))
        assert await state_store.is_termination_requested("job-1") is False
        assert await state_store.request_termination("job-1") is True
        assert await state_store.is_termination_requested("job-1") is True
        assert (await state_store.get("job-1")).termination_requested is True

    async def test_upsert_keeps_termination_flag(self, state_store):
        """Test snapshot writes never clear a pending termination request."""
        await state_store.upsert(make_snapshot("job-1"))
        await state_store.request_termination("job-1")
        stored = await state_store.upsert(make_snapshot("job-1", progress=15))
        assert stored.termination_requested is True

    async def test_list_unfinished(self, state_store):
        """Test only Running jobs are listed."""
        await state_store.upsert(make_snapshot("running-1"))
        await state_store.upsert(make_snapshot("running-2"))
        await state_store.upsert(make_snapshot("done"))
        await state_store.upsert(make_snapshot(
            "done", status=JobStatus.COMPLETED, phase=Phase.DONE, progress=100,
        ))
        assert sorted(await state_store.list_unfinished()) == ["running-1", "running-2"]

    async def test_lease_is_exclusive(self, state_store):
        """Test a live lease keeps other workers out until it is released."""
        await state_store.upsert(make_snapshot("job-1"))

        assert await state_store.acquire_lease("job-1", "worker-a", 60) is True
        assert await state_store.acquire_lease("job-1", "worker-b", 60) is False
        assert await state_store.acquire_lease("job-1", "worker-a", 60) is True

        await state_store.release_lease("job-1", "worker-b")
        assert await state_store.acquire_lease("job-1", "worker-b", 60) is False

        await state_store.release_lease("job-1", "worker-a")
        assert await state_store.acquire_lease("job-1", "worker-b", 60) is True

    async def test_lapsed_lease_can_be_taken_over(self, state_store):
        """Test a lease left behind by a dead worker is reclaimed after it expires."""
        await state_store.upsert(make_snapshot("job-1"))
        assert await state_store.acquire_lease("job-1", "dead-worker", -1) is True
        assert await state_store.acquire_lease("job-1", "worker-b", 60) is True
        assert await state_store.acquire_lease("job-1", "dead-worker", 60) is False

    async def test_lease_on_unknown_job(self, state_store):
        """Test leasing an unknown id fails without raising."""
        assert await state_store.acquire_lease("missing", "worker-a", 60) is False
