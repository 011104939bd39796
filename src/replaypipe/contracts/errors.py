"""Exceptions raised across the replay pipeline boundary.

Only RecorderSetupError is allowed to escape the pipeline (from start()).
MalformedEventError is raised by boundary validation and handled inside the
recorder callback. Limit exhaustion is not an error and has no exception.
"""


class ReplayError(Exception):
    """Base class for session replay errors."""


class RecorderSetupError(ReplayError):
    """Raised when the external recorder cannot be started.

    The controller rolls back to IDLE and disables itself before raising.
    The original recorder failure is chained as __cause__.

    Attributes:
        session_id: Session that failed to start
    """

    def __init__(self, session_id: str, message: str) -> None:
        self.session_id = session_id
        super().__init__(f"Recorder failed to start for session '{session_id}': {message}")


class MalformedEventError(ReplayError):
    """Raised when a raw recorder payload fails shape validation.

    Attributes:
        reason: Which check failed
        payload: The offending payload, kept for diagnostics
    """

    def __init__(self, reason: str, payload: object) -> None:
        self.reason = reason
        self.payload = payload
        super().__init__(f"Malformed recorder event: {reason}")
