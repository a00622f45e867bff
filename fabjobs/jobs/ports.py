"""
Collaborator protocols for the job engine.

The engine depends only on these shapes; concrete implementations live in
fabjobs.infra (persistence, broadcast) and fabjobs.devices (device handles,
registry).
"""

from typing import Any, Mapping, Optional, Protocol


class DeviceCommandPort(Protocol):
    """Capabilities a live device handle exposes to a job."""

    id: str

    async def start(self, job: Any) -> None:
        """Begin running the job's file. Raises DeviceCommandError on failure."""
        ...

    async def pause(self, job: Any, params: Optional[dict] = None) -> None:
        ...

    async def resume(self, job: Any, params: Optional[dict] = None) -> None:
        ...

    async def cancel(self, job: Any, params: Optional[dict] = None) -> None:
        ...


class DeviceLookup(Protocol):
    """Read side of the device registry used by jobs."""

    def get(self, device_id: str) -> DeviceCommandPort:
        """Return the live handle. Raises DeviceNotFoundError."""
        ...


class JobStore(Protocol):
    """Durable job record storage."""

    def find_job_record(self, job_uuid: str) -> Optional[dict]:
        ...

    def upsert_job_record(self, record: Mapping[str, Any]) -> dict:
        ...


class DeviceStore(Protocol):
    """Durable device configuration storage."""

    def find_all_device_records(self) -> list[dict]:
        ...

    def create_device_record(self, config: Mapping[str, Any]) -> dict:
        ...


class BroadcastPort(Protocol):
    """Fan-out of events to current subscribers. Best effort, no acks."""

    async def publish(self, topic: str, message: Mapping[str, Any]) -> None:
        ...
