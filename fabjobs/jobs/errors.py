"""
Job engine exceptions.

Only InvalidTransitionError and UnsupportedCommandError are meant to reach
callers of a job command; the rest are recovered inside the engine where a
recovery transition exists.
"""


class FabJobsError(Exception):
    """Base exception for all fabjobs errors."""
    pass


class InvalidTransitionError(FabJobsError):
    """
    Raised when an event is fired from a state with no matching row.

    The state machine is left unchanged.
    """

    def __init__(self, job_uuid: str, event: str, from_state: str):
        self.job_uuid = job_uuid
        self.event = event
        self.from_state = from_state
        super().__init__(
            f"Invalid job {job_uuid} state change on event '{event}' "
            f"from '{from_state}'"
        )


class UnsupportedCommandError(FabJobsError):
    """Raised when a job receives a command string it does not know."""

    def __init__(self, command: str):
        self.command = command
        super().__init__(f"Command {command} is not supported")


class JobNotFoundError(FabJobsError):
    """Raised when a requested job does not exist."""

    def __init__(self, job_uuid: str):
        self.job_uuid = job_uuid
        super().__init__(f"Job not found: {job_uuid}")


class DeviceNotFoundError(FabJobsError):
    """Raised when a device id has no live handle in the registry."""

    def __init__(self, device_id: str):
        self.device_id = device_id
        super().__init__(f"Device not found: {device_id}")


class DeviceCommandError(FabJobsError):
    """Raised by a device handle when an operation fails."""

    def __init__(self, device_id: str, operation: str, reason: str):
        self.device_id = device_id
        self.operation = operation
        self.reason = reason
        super().__init__(f"Device {device_id} failed to {operation}: {reason}")
