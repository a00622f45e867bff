"""
State machine tests.

Every row of the transition table is applied; every pair without a row must
raise InvalidTransitionError and leave the state untouched.
"""

import itertools

import pytest

from fabjobs.jobs import (
    CANCELABLE_STATES,
    InvalidTransitionError,
    JobEvent,
    JobState,
    JobStateMachine,
    TRANSITIONS,
)


MISSING_ROWS = [
    (event, state)
    for event, state in itertools.product(JobEvent, JobState)
    if (event, state) not in TRANSITIONS
]


class TestTransitionTable:
    """The table as data."""

    @pytest.mark.parametrize(
        "event,from_state,to_state",
        [(event, state, target) for (event, state), target in TRANSITIONS.items()],
    )
    def test_row_applies(self, event, from_state, to_state):
        fsm = JobStateMachine("J1", initial=from_state)

        transition = fsm.fire(event)

        assert fsm.current is to_state
        assert transition.from_state is from_state
        assert transition.to_state is to_state

    @pytest.mark.parametrize("event,from_state", MISSING_ROWS)
    def test_missing_row_is_fatal_and_state_unchanged(self, event, from_state):
        fsm = JobStateMachine("J1", initial=from_state)

        with pytest.raises(InvalidTransitionError) as exc_info:
            fsm.fire(event)

        assert fsm.current is from_state
        assert exc_info.value.event == event.value
        assert exc_info.value.from_state == from_state.value

    def test_cancel_reaches_canceling_from_every_cancelable_state(self):
        for state in CANCELABLE_STATES:
            assert TRANSITIONS[(JobEvent.CANCEL, state)] is JobState.CANCELING

    def test_cancel_done_and_cancel_fail_both_settle_canceled(self):
        assert TRANSITIONS[(JobEvent.CANCEL_DONE, JobState.CANCELING)] is JobState.CANCELED
        assert TRANSITIONS[(JobEvent.CANCEL_FAIL, JobState.CANCELING)] is JobState.CANCELED

    def test_terminal_states_have_no_outbound_rows(self):
        for (event, state) in TRANSITIONS:
            assert state not in (JobState.CANCELED, JobState.COMPLETE)


class TestJobStateMachine:
    """Machine behavior around the table."""

    def test_default_initial_state_is_ready(self):
        assert JobStateMachine("J1").current is JobState.READY

    def test_restored_initial_state_from_string(self):
        assert JobStateMachine("J1", initial="paused").current is JobState.PAUSED

    def test_unknown_event_name_raises_invalid_transition(self):
        fsm = JobStateMachine("J1")

        with pytest.raises(InvalidTransitionError):
            fsm.fire("explode")

        assert fsm.current is JobState.READY

    def test_can_reports_rows(self):
        fsm = JobStateMachine("J1")

        assert fsm.can(JobEvent.START) is True
        assert fsm.can("startDone") is False
        assert fsm.can("explode") is False

    def test_second_start_while_starting_is_rejected(self):
        fsm = JobStateMachine("J1")
        fsm.fire(JobEvent.START)

        with pytest.raises(InvalidTransitionError):
            fsm.fire(JobEvent.START)

        assert fsm.current is JobState.STARTING

    def test_error_message_names_job_and_event(self):
        fsm = JobStateMachine("job-42", initial=JobState.COMPLETE)

        with pytest.raises(InvalidTransitionError) as exc_info:
            fsm.fire(JobEvent.CANCEL)

        assert "job-42" in str(exc_info.value)
        assert "cancel" in str(exc_info.value)
        assert "complete" in str(exc_info.value)
