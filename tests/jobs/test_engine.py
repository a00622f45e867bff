"""Tests for the JobEngine: creation, lookup, restore and shutdown."""

import pytest

from fabjobs.devices import DeviceRegistry
from fabjobs.infra.persistence import PersistenceAdapter
from fabjobs.jobs import (
    DeviceNotFoundError,
    JobEngine,
    JobNotFoundError,
    JobState,
)


@pytest.fixture
def engine(registry, store, broadcaster) -> JobEngine:
    return JobEngine(registry, store, broadcaster, tick_interval=0)


class TestCreateJob:
    """Job creation."""

    @pytest.mark.asyncio
    async def test_create_job_records_ready_without_broadcast(self, engine, store, broadcaster):
        job = await engine.create_job("D1", file_id="benchy.gcode", job_uuid="J1")

        assert job.uuid == "J1"
        assert job.state is JobState.READY
        assert store.jobs["J1"]["state"] == "ready"
        assert store.jobs["J1"]["file_id"] == "benchy.gcode"
        assert broadcaster.messages == []

    @pytest.mark.asyncio
    async def test_create_job_for_unknown_device(self, engine):
        with pytest.raises(DeviceNotFoundError):
            await engine.create_job("D404")

    @pytest.mark.asyncio
    async def test_create_job_requires_device_id(self, engine):
        with pytest.raises(ValueError):
            await engine.create_job("")

    @pytest.mark.asyncio
    async def test_record_failure_still_creates_job(self, engine, store, caplog):
        store.fail_writes = True

        job = await engine.create_job("D1", job_uuid="J1")

        assert engine.get_job("J1") is job
        assert "record creation failed" in caplog.text


class TestLookupAndCommands:
    """Lookup and command routing."""

    @pytest.mark.asyncio
    async def test_process_command_by_uuid(self, engine, device):
        await engine.create_job("D1", job_uuid="J1")

        reply = await engine.process_command("J1", "start")

        assert reply["state"] == "running"
        assert device.calls == ["start"]
        await engine.shutdown()

    @pytest.mark.asyncio
    async def test_unknown_job(self, engine):
        with pytest.raises(JobNotFoundError):
            engine.get_job("nope")
        with pytest.raises(JobNotFoundError):
            await engine.process_command("nope", "start")

    @pytest.mark.asyncio
    async def test_get_jobs_lists_projections(self, engine):
        await engine.create_job("D1", job_uuid="J1")
        await engine.create_job("D1", job_uuid="J2", file_id=None)

        jobs = engine.get_jobs()

        assert set(jobs) == {"J1", "J2"}
        assert jobs["J2"]["fileId"] is False

    @pytest.mark.asyncio
    async def test_complete_and_progress_by_uuid(self, engine):
        await engine.create_job("D1", job_uuid="J1")
        await engine.process_command("J1", "start")

        progress = await engine.set_percent_complete("J1", 55)
        assert progress["percentComplete"] == 55

        done = await engine.complete_job("J1")
        assert done["state"] == "complete"
        assert done["percentComplete"] == 100

    @pytest.mark.asyncio
    async def test_shutdown_stops_trackers(self, engine):
        job = await engine.create_job("D1", job_uuid="J1")
        await engine.process_command("J1", "start")

        await engine.shutdown()

        assert job.tracker.running is False


class TestRestoreJob:
    """Restoring jobs from durable records."""

    @pytest.mark.asyncio
    async def test_restore_from_sqlite(self, tmp_path, device, broadcaster):
        store = PersistenceAdapter(tmp_path / "jobs.db")
        registry = DeviceRegistry(store, strategies=[])
        registry.register(device)

        first = JobEngine(registry, store, broadcaster, tick_interval=0)
        job = await first.create_job("D1", file_id="F1", job_uuid="J1", subscribers=["ws://ui"])
        await job.start()
        await job.set_percent_complete(30)
        await job.pause()
        expected = job.get_job()
        await first.shutdown()

        second = JobEngine(registry, store, broadcaster, tick_interval=0)
        messages_before = len(broadcaster.messages)
        restored = await second.restore_job("J1")

        assert restored.state is JobState.PAUSED
        assert restored.get_job() == expected
        assert restored.subscribers == ["ws://ui"]
        assert len(broadcaster.messages) == messages_before

        await restored.resume()
        assert restored.state is JobState.RUNNING
        await second.shutdown()

    @pytest.mark.asyncio
    async def test_restore_running_job_keeps_counting(self, engine, store):
        store.upsert_job_record({
            "uuid": "J9",
            "device_id": "D1",
            "file_id": None,
            "state": "running",
            "started_at": 1700000000000,
            "elapsed_ms": 4000,
            "percent_complete": 12,
            "subscribers": [],
        })

        job = await engine.restore_job("J9")

        assert job.state is JobState.RUNNING
        assert job.tracker.running is True
        assert job.get_job()["elapsedMs"] >= 4000
        assert job.get_job()["startedAt"] == 1700000000000
        await engine.shutdown()

    @pytest.mark.asyncio
    async def test_restore_missing_record(self, engine):
        with pytest.raises(JobNotFoundError):
            await engine.restore_job("ghost")

    @pytest.mark.asyncio
    async def test_restore_returns_live_job(self, engine):
        job = await engine.create_job("D1", job_uuid="J1")

        assert await engine.restore_job("J1") is job
