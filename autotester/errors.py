"""Exception hierarchy for the autotester core."""
from typing import Optional


class AutotesterError(Exception):
    """Base class for every error raised by the core."""


class CommandExecutionError(AutotesterError):
    """A command handler failed; retried up to the command's retry limit."""

    def __init__(self, message: str, command_id: Optional[str] = None):
        super().__init__(message)
        self.command_id = command_id


class CommandRejectedError(AutotesterError):
    """A handler refused a command (missing target or value). Never retried."""

    def __init__(self, message: str, command_id: Optional[str] = None):
        super().__init__(message)
        self.command_id = command_id


class UnknownCommandError(AutotesterError):
    """No handler exists for a (category, action) pair. Never retried."""

    def __init__(self, category: str, action: str, reason: str = ""):
        super().__init__(reason or f"Unsupported command {category}/{action}")
        self.category = category
        self.action = action


class IterationError(AutotesterError):
    """An exception escaped a single website attempt."""

    def __init__(self, attempt_index: int, cause: BaseException):
        super().__init__(f"Attempt {attempt_index} failed: {cause}")
        self.attempt_index = attempt_index
        self.cause = cause


class SessionAlreadyRunningError(AutotesterError):
    """A session was requested while another one is running."""


class SessionFatalError(AutotesterError):
    """An exception escaped the whole session loop."""

    def __init__(self, session_id: str, cause: BaseException):
        super().__init__(f"Session {session_id} failed: {cause}")
        self.session_id = session_id
        self.cause = cause


class PersistenceError(AutotesterError):
    """Checkpoint, learnings or state I/O failed."""

    def __init__(self, path: str, cause: BaseException):
        super().__init__(f"Could not persist {path}: {cause}")
        self.path = path
        self.cause = cause


class DaemonCircuitOpen(AutotesterError):
    """Consecutive session failures reached the configured maximum."""

    def __init__(self, consecutive_errors: int):
        super().__init__(f"Max consecutive errors reached ({consecutive_errors})")
        self.consecutive_errors = consecutive_errors
