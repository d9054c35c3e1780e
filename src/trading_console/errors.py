"""Error taxonomy shared by every console workflow."""

from __future__ import annotations


class ConsoleError(Exception):
    """Base class for errors surfaced to the operator."""


class ConsoleApiError(ConsoleError):
    """Normalized failure of a request to the trading service."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class InvalidTransitionError(ConsoleError):
    """Operation is not allowed in the current lifecycle state."""


# Rejected locally, before any request is made.


class ConfigError(ConsoleError, ValueError):
    pass


class ParseError(ConsoleError, ValueError):
    pass


class ValidationError(ConsoleError, ValueError):
    pass


class AlreadyExecutedError(ConsoleError):
    pass


class PositionAlreadyClosedError(ConsoleError):
    pass


# Remote failures, normalized at the workflow boundary.


class SignalGenerationError(ConsoleError):
    pass


class ExecutionError(ConsoleError):
    pass


class CloseExecutionError(ConsoleError):
    pass


class PositionOpenError(ConsoleError):
    pass


class SyncError(ConsoleError):
    pass


class PriceFeedError(ConsoleError):
    pass
