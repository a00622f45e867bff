"""
Pytest configuration and shared fixtures.

Fakes for the engine's collaborators:
- FakeDevice: device handle with scripted failures and gates
- RecordingStore: in-memory JobStore + DeviceStore that records every write
- RecordingBroadcaster: keeps every published message
"""

import asyncio
import copy
import logging
from typing import Callable, Optional

import pytest

from fabjobs.devices import DeviceRegistry
from fabjobs.jobs import DeviceCommandError, Job


class FakeDevice:
    """
    Device handle for tests.

    - fail: operations that raise DeviceCommandError
    - gates: operations that wait on an asyncio.Event before finishing
    """

    def __init__(self, device_id: str = "D1", name: str = "Fake Printer"):
        self.id = device_id
        self.name = name
        self.calls: list[str] = []
        self.fail: set[str] = set()
        self.gates: dict[str, asyncio.Event] = {}
        self.closed = False

    async def start(self, job) -> None:
        await self._op("start")

    async def pause(self, job, params=None) -> None:
        await self._op("pause")

    async def resume(self, job, params=None) -> None:
        await self._op("resume")

    async def cancel(self, job, params=None) -> None:
        await self._op("cancel")

    async def close(self) -> None:
        self.closed = True

    def get_device(self) -> dict:
        return {"id": self.id, "name": self.name, "port": self.id, "connected": True, "config": {}}

    async def _op(self, operation: str) -> None:
        self.calls.append(operation)
        gate = self.gates.get(operation)
        if gate is not None:
            await gate.wait()
        if operation in self.fail:
            raise DeviceCommandError(self.id, operation, "scripted failure")


class RecordingStore:
    """In-memory store recording job writes and device records."""

    def __init__(self):
        self.job_writes: list[dict] = []
        self.jobs: dict[str, dict] = {}
        self.device_records: list[dict] = []
        self.fail_writes = False
        self.fail_reads = False

    def find_job_record(self, job_uuid: str) -> Optional[dict]:
        record = self.jobs.get(job_uuid)
        return copy.deepcopy(record) if record else None

    def upsert_job_record(self, record) -> dict:
        if self.fail_writes:
            raise RuntimeError("database is locked")
        stored = copy.deepcopy(dict(record))
        self.job_writes.append(stored)
        self.jobs[stored["uuid"]] = stored
        return stored

    def find_all_device_records(self) -> list[dict]:
        if self.fail_reads:
            raise RuntimeError("no such table: devices")
        return [dict(r) for r in self.device_records]

    def create_device_record(self, config) -> dict:
        record = {"id": len(self.device_records) + 1, **dict(config)}
        self.device_records.append(record)
        return dict(record)

    @property
    def written_states(self) -> list[str]:
        return [w["state"] for w in self.job_writes]


class RecordingBroadcaster:
    """
    Broadcaster that records (topic, message) pairs.

    - block_next: the next publish waits on this event before recording
    """

    def __init__(self):
        self.messages: list[tuple[str, dict]] = []
        self.fail = False
        self.block_next: Optional[asyncio.Event] = None

    async def publish(self, topic: str, message) -> None:
        gate, self.block_next = self.block_next, None
        if gate is not None:
            await gate.wait()
        if self.fail:
            raise ConnectionError("subscriber gone")
        self.messages.append((topic, copy.deepcopy(dict(message))))

    @property
    def states(self) -> list[str]:
        return [m["data"]["state"] for _, m in self.messages]


@pytest.fixture(autouse=True)
def reset_fabjobs_logger():
    """Let fabjobs records reach caplog even after setup_logging() ran."""
    logger = logging.getLogger("fabjobs")
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    yield


@pytest.fixture
def device() -> FakeDevice:
    return FakeDevice("D1")


@pytest.fixture
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture
def registry(store: RecordingStore, device: FakeDevice) -> DeviceRegistry:
    """Registry holding the fake device, without running initialization."""
    reg = DeviceRegistry(store, strategies=[])
    reg.register(device)
    return reg


@pytest.fixture
def make_job(registry, store, broadcaster) -> Callable[..., Job]:
    """Factory for jobs bound to the fake device and recording collaborators."""

    def _make(**kwargs) -> Job:
        kwargs.setdefault("device_id", "D1")
        kwargs.setdefault("file_id", "F1")
        kwargs.setdefault("tick_interval", 0)
        return Job(devices=registry, store=store, broadcaster=broadcaster, **kwargs)

    return _make
