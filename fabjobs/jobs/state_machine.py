"""
Job state machine.

The transition table is plain data keyed by (event, from_state). Every fired
event is validated against the current state; a missing row raises
InvalidTransitionError and leaves the machine untouched.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .entities import CANCELABLE_STATES, JobEvent, JobState
from .errors import InvalidTransitionError


logger = logging.getLogger(__name__)


def _build_table() -> dict[tuple[JobEvent, JobState], JobState]:
    table = {
        (JobEvent.START, JobState.READY): JobState.STARTING,
        (JobEvent.START_FAIL, JobState.STARTING): JobState.READY,
        (JobEvent.START_DONE, JobState.STARTING): JobState.RUNNING,
        (JobEvent.PAUSE, JobState.RUNNING): JobState.PAUSING,
        (JobEvent.PAUSE, JobState.PAUSED): JobState.PAUSED,
        (JobEvent.PAUSE_FAIL, JobState.PAUSING): JobState.RUNNING,
        (JobEvent.PAUSE_DONE, JobState.PAUSING): JobState.PAUSED,
        (JobEvent.RESUME, JobState.PAUSED): JobState.RESUMING,
        (JobEvent.RESUME, JobState.RUNNING): JobState.RUNNING,
        (JobEvent.RESUME_FAIL, JobState.RESUMING): JobState.PAUSED,
        (JobEvent.RESUME_DONE, JobState.RESUMING): JobState.RUNNING,
        (JobEvent.RUNNING_DONE, JobState.RUNNING): JobState.COMPLETE,
        (JobEvent.CANCEL_FAIL, JobState.CANCELING): JobState.CANCELED,
        (JobEvent.CANCEL_DONE, JobState.CANCELING): JobState.CANCELED,
    }
    for state in CANCELABLE_STATES:
        table[(JobEvent.CANCEL, state)] = JobState.CANCELING
    return table


TRANSITIONS: dict[tuple[JobEvent, JobState], JobState] = _build_table()


@dataclass(frozen=True)
class Transition:
    """A validated, applied state change."""

    event: JobEvent
    from_state: JobState
    to_state: JobState


class JobStateMachine:
    """
    Finite state machine for a single job.

    fire() is synchronous: validation and mutation happen without a
    suspension point, so two command sequences for the same job can never
    interleave at the moment the state changes.
    """

    def __init__(
        self,
        job_uuid: str,
        initial: Optional[JobState | str] = None,
    ):
        self.job_uuid = job_uuid
        self._current = JobState(initial) if initial is not None else JobState.READY

    @property
    def current(self) -> JobState:
        return self._current

    def can(self, event: JobEvent | str) -> bool:
        """Check whether an event has a row for the current state."""
        try:
            event = JobEvent(event)
        except ValueError:
            return False
        return (event, self._current) in TRANSITIONS

    def fire(self, event: JobEvent | str) -> Transition:
        """
        Apply an event to the machine.

        Args:
            event: Event name or JobEvent

        Returns:
            The applied Transition

        Raises:
            InvalidTransitionError: No row for (event, current state)
        """
        event_name = event.value if isinstance(event, JobEvent) else str(event)
        try:
            target = TRANSITIONS[(JobEvent(event), self._current)]
        except (KeyError, ValueError):
            error = InvalidTransitionError(
                self.job_uuid, event_name, self._current.value
            )
            logger.error(str(error))
            raise error from None

        transition = Transition(JobEvent(event), self._current, target)
        self._current = target
        return transition
