"""
Job Execution Engine.

- JobStateMachine: transition table + validator
- TimingTracker: elapsed active time and periodic ticks
- Job: one state machine per job, command handling
- JobEngine: live jobs, creation, restore, command routing
"""

from .entities import (
    JobState,
    JobCommand,
    JobEvent,
    SETTLED_STATES,
    TRANSIENT_STATES,
    TERMINAL_STATES,
    CANCELABLE_STATES,
    BROADCAST_TOPIC,
)
from .errors import (
    FabJobsError,
    InvalidTransitionError,
    UnsupportedCommandError,
    JobNotFoundError,
    DeviceNotFoundError,
    DeviceCommandError,
)
from .state_machine import JobStateMachine, Transition, TRANSITIONS
from .timing import TimingTracker
from .job import Job
from .engine import JobEngine

__all__ = [
    # Entities
    "JobState",
    "JobCommand",
    "JobEvent",
    "SETTLED_STATES",
    "TRANSIENT_STATES",
    "TERMINAL_STATES",
    "CANCELABLE_STATES",
    "BROADCAST_TOPIC",
    # Errors
    "FabJobsError",
    "InvalidTransitionError",
    "UnsupportedCommandError",
    "JobNotFoundError",
    "DeviceNotFoundError",
    "DeviceCommandError",
    # State machine
    "JobStateMachine",
    "Transition",
    "TRANSITIONS",
    # Timing
    "TimingTracker",
    # Job / engine
    "Job",
    "JobEngine",
]
