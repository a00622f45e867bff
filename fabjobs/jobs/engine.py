"""
Job Execution Engine.

Owns the live jobs of the process and routes commands to them. Device
handles come from the injected registry, never from process-wide state.
"""

import asyncio
import logging
from typing import Optional

from .entities import JobState
from .errors import JobNotFoundError
from .job import Job
from .ports import BroadcastPort, DeviceLookup, JobStore
from .timing import DEFAULT_TICK_INTERVAL_SECONDS


logger = logging.getLogger(__name__)


class JobEngine:
    """
    Registry of live Job objects plus the collaborators they share.

    Jobs on different devices run independently; the only shared structure
    is the device registry, which jobs only read.
    """

    def __init__(
        self,
        devices: DeviceLookup,
        store: JobStore,
        broadcaster: BroadcastPort,
        tick_interval: float = DEFAULT_TICK_INTERVAL_SECONDS,
    ):
        self.devices = devices
        self.store = store
        self.broadcaster = broadcaster
        self.tick_interval = tick_interval
        self._jobs: dict[str, Job] = {}

    async def create_job(
        self,
        device_id: str,
        file_id: Optional[str] = None,
        job_uuid: Optional[str] = None,
        subscribers: Optional[list[str]] = None,
    ) -> Job:
        """
        Create a ready job for a registered device and record it.

        Raises:
            DeviceNotFoundError: device_id is not in the registry
            ValueError: device_id is empty
        """
        if not device_id:
            raise ValueError('"device_id" is not defined')
        self.devices.get(device_id)

        job = self._build(
            device_id=device_id,
            file_id=file_id,
            job_uuid=job_uuid,
            subscribers=subscribers,
        )
        self._jobs[job.uuid] = job

        try:
            await asyncio.to_thread(self.store.upsert_job_record, job.to_record())
        except Exception as e:
            logger.error(f"Job {job.uuid} record creation failed: {e}")

        logger.info(f"Job {job.uuid} created for device {device_id} (file {file_id})")
        return job

    async def restore_job(self, job_uuid: str) -> Job:
        """
        Rebuild a job from its persisted record.

        Raises:
            JobNotFoundError: No live job and no record for job_uuid
        """
        if job_uuid in self._jobs:
            return self._jobs[job_uuid]

        record = await asyncio.to_thread(self.store.find_job_record, job_uuid)
        if record is None:
            raise JobNotFoundError(job_uuid)

        job = self._build(
            device_id=record["device_id"],
            file_id=record.get("file_id"),
            job_uuid=record["uuid"],
            initial_state=record["state"],
            subscribers=record.get("subscribers"),
            started_at=record.get("started_at"),
            elapsed_ms=record.get("elapsed_ms"),
            percent_complete=record.get("percent_complete") or 0,
        )
        if job.state is JobState.RUNNING:
            job.tracker.start()

        self._jobs[job.uuid] = job
        logger.info(f"Job {job.uuid} restored in state {job.state.value}")
        return job

    def get_job(self, job_uuid: str) -> Job:
        try:
            return self._jobs[job_uuid]
        except KeyError:
            raise JobNotFoundError(job_uuid) from None

    def get_jobs(self) -> dict[str, dict]:
        """Projections of all live jobs keyed by uuid."""
        return {job_uuid: job.get_job() for job_uuid, job in self._jobs.items()}

    async def process_command(
        self,
        job_uuid: str,
        command: str,
        params: Optional[dict] = None,
    ) -> dict:
        return await self.get_job(job_uuid).process_command(command, params)

    async def complete_job(self, job_uuid: str) -> dict:
        job = self.get_job(job_uuid)
        await job.complete()
        return job.get_job()

    async def set_percent_complete(self, job_uuid: str, value: float) -> dict:
        job = self.get_job(job_uuid)
        await job.set_percent_complete(value)
        return job.get_job()

    async def shutdown(self) -> None:
        """Stop every job's timing tracker."""
        for job in list(self._jobs.values()):
            await job.close()
        logger.info(f"Job engine stopped ({len(self._jobs)} jobs)")

    def _build(self, **kwargs) -> Job:
        return Job(
            devices=self.devices,
            store=self.store,
            broadcaster=self.broadcaster,
            tick_interval=self.tick_interval,
            **kwargs,
        )
