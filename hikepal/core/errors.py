"""
Error taxonomy for the companion core.

None of these are fatal: callers degrade to a no-op and report the condition.
"""


class CompanionError(Exception):
    """Base class for all companion core errors"""


class LoadError(CompanionError):
    """Annotation refresh failed; the previous snapshot is kept"""

    kind = "load_error"


class SourceUnreachable(LoadError):
    """Network or configuration unavailable"""

    kind = "source_unreachable"


class SourceRejected(LoadError):
    """The source answered with something we could not use"""

    kind = "source_rejected"


class SessionError(CompanionError):
    pass


class InvalidTransition(SessionError):
    def __init__(self, action: str, state: str):
        self.action = action
        self.state = state
        super().__init__(f"Cannot {action} while session is {state}")


class RecorderError(CompanionError):
    pass


class NotRecording(RecorderError):
    def __init__(self, action: str):
        self.action = action
        super().__init__(f"Cannot {action}: no active recording")


class TelemetryUnavailable(CompanionError):
    """Telemetry device is disconnected or returned no reading"""
