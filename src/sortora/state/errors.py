"""Operation log errors."""


class StateError(Exception):
    """Base exception for operation log failures."""


class MissingOperationError(StateError):
    """Raised when an operation id is not present in the log."""
