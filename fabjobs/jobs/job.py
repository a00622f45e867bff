"""
Job: the execution of one file on one device.

Each Job owns a JobStateMachine and a TimingTracker. Commands drive the
device handle looked up from the registry, then settle the machine on the
matching Done or Fail row.

Side effects of a transition, in order:
1. settled target state -> durable snapshot through the JobStore
2. every transition -> broadcast of the public projection
Machine initialization produces neither.
"""

import asyncio
import logging
from typing import Any, Optional

from fabjobs.infra.logging_config import job_log_context

from .entities import (
    BROADCAST_TOPIC,
    SETTLED_STATES,
    JobCommand,
    JobEvent,
    JobState,
    generate_uuid,
    now_ms,
)
from .errors import UnsupportedCommandError
from .ports import BroadcastPort, DeviceLookup, JobStore
from .state_machine import JobStateMachine, Transition
from .timing import DEFAULT_TICK_INTERVAL_SECONDS, TimingTracker


logger = logging.getLogger(__name__)


class Job:
    """A job bound to a device, a file and its collaborators."""

    def __init__(
        self,
        device_id: str,
        devices: DeviceLookup,
        store: JobStore,
        broadcaster: BroadcastPort,
        file_id: Optional[str] = None,
        job_uuid: Optional[str] = None,
        initial_state: Optional[JobState | str] = None,
        subscribers: Optional[list[str]] = None,
        started_at: Optional[int] = None,
        elapsed_ms: Optional[int] = None,
        percent_complete: float = 0,
        tick_interval: float = DEFAULT_TICK_INTERVAL_SECONDS,
    ):
        """
        Args:
            device_id: Registry key of the device running the job
            devices: Registry used to look up the live device handle
            store: Durable job record storage
            broadcaster: Event fan-out for live observers
            file_id: File to run, if any
            job_uuid: Forced uuid; generated when omitted
            initial_state: Restored state; defaults to ready
            subscribers: Informational list of broadcast targets
            started_at: Restored first-start timestamp (epoch ms)
            elapsed_ms: Restored elapsed active time
            percent_complete: Restored progress value
            tick_interval: Seconds between progress re-broadcasts while running
        """
        if not device_id:
            raise ValueError('"device_id" is not defined')

        self.device_id = device_id
        self.file_id = file_id
        self.uuid = job_uuid if job_uuid is not None else generate_uuid()
        self.subscribers = list(dict.fromkeys(subscribers or []))
        self.started_at = started_at
        self.percent_complete = percent_complete

        self._devices = devices
        self._store = store
        self._broadcaster = broadcaster

        self.fsm = JobStateMachine(self.uuid, initial_state)
        self.tracker = TimingTracker(
            interval=tick_interval,
            on_tick=self._on_tick,
            elapsed_ms=elapsed_ms or 0,
        )

    @property
    def state(self) -> JobState:
        return self.fsm.current

    # =========================================================================
    # Projections
    # =========================================================================

    def get_job(self) -> dict:
        """Public, serializable view of the job."""
        started = self.started_at is not None
        return {
            "deviceId": self.device_id,
            "uuid": self.uuid,
            "state": self.state.value,
            "fileId": self.file_id if self.file_id is not None else False,
            "startedAt": self.started_at if started else None,
            "elapsedMs": self.tracker.elapsed_ms if started else None,
            "percentComplete": self.percent_complete,
        }

    def to_record(self) -> dict:
        """Durable snapshot written through the JobStore."""
        return {
            "uuid": self.uuid,
            "device_id": self.device_id,
            "file_id": self.file_id,
            "state": self.state.value,
            "started_at": self.started_at,
            "elapsed_ms": self.tracker.elapsed_ms if self.started_at is not None else None,
            "percent_complete": self.percent_complete,
            "subscribers": list(self.subscribers),
        }

    # =========================================================================
    # Commands
    # =========================================================================

    async def process_command(self, command: str, params: Optional[dict] = None) -> dict:
        """
        Run a command and return the projection right after it settles.

        Raises:
            UnsupportedCommandError: Unknown command string
            InvalidTransitionError: Command not valid in the current state
        """
        try:
            cmd = JobCommand(command)
        except ValueError:
            error = UnsupportedCommandError(command)
            logger.error(str(error))
            raise error from None

        with job_log_context(self.device_id, self.uuid):
            if cmd is JobCommand.START:
                await self.start()
            elif cmd is JobCommand.PAUSE:
                await self.pause(params)
            elif cmd is JobCommand.RESUME:
                await self.resume(params)
            else:
                await self.cancel(params)

        return self.get_job()

    async def start(self) -> None:
        await self._transition(JobEvent.START)
        if self._superseded(JobState.STARTING, "start"):
            return

        try:
            device = self._devices.get(self.device_id)
            await device.start(self)
        except Exception as e:
            logger.error(f"Job {self.uuid} start failure: {e}")
            if not self._superseded(JobState.STARTING, "start"):
                await self._transition(JobEvent.START_FAIL)
            return

        if self._superseded(JobState.STARTING, "start"):
            return

        if self.started_at is None:
            self.started_at = now_ms()
        self.tracker.start()
        await self._transition(JobEvent.START_DONE)

    async def pause(self, params: Optional[dict] = None) -> None:
        if self.state is JobState.PAUSED:
            return

        await self._transition(JobEvent.PAUSE)
        if self._superseded(JobState.PAUSING, "pause"):
            return

        try:
            device = self._devices.get(self.device_id)
            await device.pause(self, params)
        except Exception as e:
            logger.error(f"Job {self.uuid} pause failure: {e}")
            if not self._superseded(JobState.PAUSING, "pause"):
                await self._transition(JobEvent.PAUSE_FAIL)
            return

        if self._superseded(JobState.PAUSING, "pause"):
            return

        self.tracker.stop()
        await self._transition(JobEvent.PAUSE_DONE)

    async def resume(self, params: Optional[dict] = None) -> None:
        if self.state is JobState.RUNNING:
            return

        await self._transition(JobEvent.RESUME)
        if self._superseded(JobState.RESUMING, "resume"):
            return

        try:
            device = self._devices.get(self.device_id)
            await device.resume(self, params)
        except Exception as e:
            logger.error(f"Job {self.uuid} resume failure: {e}")
            if not self._superseded(JobState.RESUMING, "resume"):
                await self._transition(JobEvent.RESUME_FAIL)
            return

        if self._superseded(JobState.RESUMING, "resume"):
            return

        self.tracker.start()
        await self._transition(JobEvent.RESUME_DONE)

    async def cancel(self, params: Optional[dict] = None) -> None:
        """
        Cancel the job.

        The device side is best effort: a failed device cancel is logged and
        settles through cancelFail, an acknowledged one through cancelDone.
        Both end in canceled.
        """
        await self._transition(JobEvent.CANCEL)

        event = JobEvent.CANCEL_DONE
        try:
            device = self._devices.get(self.device_id)
            await device.cancel(self, params)
        except Exception as e:
            logger.error(f"Device {self.device_id} can't be canceled for job {self.uuid}: {e}")
            event = JobEvent.CANCEL_FAIL

        self.tracker.stop()
        await self._transition(event)

    async def complete(self) -> None:
        """Mark a running job as finished (end of file reached on the device)."""
        transition = self.fsm.fire(JobEvent.RUNNING_DONE)
        self.tracker.stop()
        self.percent_complete = 100
        await self._on_enter_state(transition)

    async def set_percent_complete(self, value: Any) -> None:
        """Update the externally reported progress and re-broadcast."""
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"percent complete must be a number, got {value!r}")
        self.percent_complete = min(100, max(0, value))
        await self._broadcast()

    async def close(self) -> None:
        """Stop the timing tracker. Used at engine shutdown."""
        await self.tracker.aclose()

    # =========================================================================
    # Transition side effects
    # =========================================================================

    def _superseded(self, expected: JobState, command: str) -> bool:
        # A cancel can take over while the transient broadcast or the device
        # call is in flight.
        if self.state is expected:
            return False
        logger.warning(
            f"Job {self.uuid} {command} superseded: state is now {self.state.value}"
        )
        return True

    async def _transition(self, event: JobEvent) -> Transition:
        transition = self.fsm.fire(event)
        await self._on_enter_state(transition)
        return transition

    async def _on_enter_state(self, transition: Transition) -> None:
        logger.info(
            f"Device {self.device_id} Job {self.uuid} event {transition.event.value}: "
            f"Transitioning from {transition.from_state.value} to {transition.to_state.value}."
        )
        if transition.to_state in SETTLED_STATES:
            await self._persist(transition)
        await self._broadcast()

    async def _persist(self, transition: Transition) -> None:
        record = self.to_record()
        try:
            await asyncio.to_thread(self._store.upsert_job_record, record)
            logger.info(
                f"Job event {transition.event.value} for job {self.uuid} "
                f"persisted as {record['state']}"
            )
        except Exception as e:
            logger.error(
                f"Job event {transition.event.value} for job {self.uuid} failed to persist: {e}"
            )

    async def _broadcast(self) -> None:
        message = {"uuid": self.uuid, "event": "update", "data": self.get_job()}
        try:
            await self._broadcaster.publish(BROADCAST_TOPIC, message)
        except Exception as e:
            logger.error(f"Broadcast for job {self.uuid} failed: {e}")

    async def _on_tick(self) -> None:
        await self._broadcast()
