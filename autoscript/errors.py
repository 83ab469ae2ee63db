"""Exception hierarchy for autoscript.

Every failure the CLI reports to the user derives from ``AutoscriptError``.
Contention signals (a held lock, a nested session) are refusals rather than
crashes, and carry messages that tell "in use" apart from "does not exist".
"""


class AutoscriptError(Exception):
    """Base class for all autoscript errors."""


class ConfigurationError(AutoscriptError):
    """Storage root or configuration file is unusable."""


class PermissionMismatch(ConfigurationError):
    """Storage root exists with a mode other than the expected one."""

    def __init__(self, path, actual: int, expected: int):
        self.path = path
        self.actual = actual
        self.expected = expected
        super().__init__(
            f"Storage directory {path} has mode {actual:o}, expected {expected:o}; "
            f"fix it manually with: chmod {expected:o} {path}"
        )


class SessionNotFound(AutoscriptError):
    """Operation targets a session ID with no transcript."""

    def __init__(self, session_id: int, detail: str = ""):
        self.session_id = session_id
        super().__init__(detail or f"Session {session_id} does not exist")


class MissingTimings(SessionNotFound):
    """Timed replay requested for a session recorded without timings."""

    def __init__(self, session_id: int):
        super().__init__(
            session_id,
            f"Session {session_id} has no timing data; replay it without --timing",
        )


class AlreadyExists(AutoscriptError):
    """An artifact for a freshly allocated session is already on disk."""

    def __init__(self, path):
        self.path = path
        super().__init__(f"Refusing to overwrite existing file: {path}")


class SessionRefused(AutoscriptError):
    """Expected contention signal; not a crash."""


class AlreadyLocked(SessionRefused):
    def __init__(self, session_id: int):
        self.session_id = session_id
        super().__init__(f"Session {session_id} is in use by another process")


class NestedSessionError(SessionRefused):
    def __init__(self, current_session: int, action: str = "record"):
        self.current_session = current_session
        super().__init__(
            f"Cannot {action}: already inside session {current_session}"
        )


class UnsupportedCombination(AutoscriptError):
    """Requested options cannot be honoured together."""


class TimingsResumeUnsupported(UnsupportedCombination):
    def __init__(self, session_id: int):
        self.session_id = session_id
        super().__init__(
            f"Session {session_id} was recorded with timing data and cannot be resumed"
        )


class LockError(AutoscriptError):
    """Internal locking failure; fatal, never retried."""


class LockNotHeld(LockError):
    def __init__(self, session_id: int):
        self.session_id = session_id
        super().__init__(f"Lock for session {session_id} is not held")
