"""
Job domain values.

State, command and event names are the wire values used in persisted records
and broadcast projections, so they stay lower camel case.
"""

import time
import uuid
from enum import Enum


class JobState(str, Enum):
    """Job states. See SETTLED_STATES / TRANSIENT_STATES for grouping."""

    READY = "ready"
    STARTING = "starting"
    RUNNING = "running"
    PAUSING = "pausing"
    PAUSED = "paused"
    RESUMING = "resuming"
    CANCELING = "canceling"
    CANCELED = "canceled"
    COMPLETE = "complete"


class JobCommand(str, Enum):
    """Commands accepted by Job.process_command()."""

    START = "start"
    PAUSE = "pause"
    RESUME = "resume"
    CANCEL = "cancel"


class JobEvent(str, Enum):
    """State machine events."""

    START = "start"
    START_FAIL = "startFail"
    START_DONE = "startDone"
    PAUSE = "pause"
    PAUSE_FAIL = "pauseFail"
    PAUSE_DONE = "pauseDone"
    RESUME = "resume"
    RESUME_FAIL = "resumeFail"
    RESUME_DONE = "resumeDone"
    RUNNING_DONE = "runningDone"
    CANCEL = "cancel"
    CANCEL_FAIL = "cancelFail"
    CANCEL_DONE = "cancelDone"


SETTLED_STATES = frozenset({
    JobState.READY,
    JobState.RUNNING,
    JobState.PAUSED,
    JobState.CANCELED,
    JobState.COMPLETE,
})

TRANSIENT_STATES = frozenset({
    JobState.STARTING,
    JobState.PAUSING,
    JobState.RESUMING,
    JobState.CANCELING,
})

TERMINAL_STATES = frozenset({JobState.CANCELED, JobState.COMPLETE})

CANCELABLE_STATES = frozenset({
    JobState.RUNNING,
    JobState.PAUSED,
    JobState.STARTING,
    JobState.PAUSING,
    JobState.RESUMING,
})

BROADCAST_TOPIC = "jobEvent"


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def now_ms() -> int:
    """Current wall clock time in epoch milliseconds."""
    return int(time.time() * 1000)
