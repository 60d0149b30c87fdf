"""
Apphash Monitor Exceptions

Custom exceptions for the apphash_monitor package.
"""

from enum import Enum
from typing import List, Tuple


class ApphashMonitorException(Exception):
    """Base exception for apphash_monitor package."""
    pass


class ConfigurationError(ApphashMonitorException):
    """Raised when a required setting is missing or an optional one is invalid."""
    pass


class ParseFailure(Enum):
    """Why a log line could not be turned into a commit event."""
    NO_MATCH = "no_match"
    INVALID_INTEGER = "invalid_integer"


class CommitParseError(ApphashMonitorException):
    """Raised when a log line is not a well-formed commit line."""

    def __init__(self, reason: ParseFailure, detail: str = ""):
        self.reason = reason
        self.detail = detail
        message = reason.value if not detail else f"{reason.value}: {detail}"
        super().__init__(message)


class MissingSourceIdError(ApphashMonitorException):
    """Raised when a log record carries no identifying label."""
    pass


class TransportError(ApphashMonitorException):
    """Raised when the log stream cannot be opened."""
    pass


class RootDivergenceError(ApphashMonitorException):
    """
    Raised when two sources report different roots for the same height.

    Fatal: the engine is halted once this has been raised.
    """

    def __init__(self, height: int, reports: List[Tuple[str, str]]):
        self.height = height
        self.reports = list(reports)
        super().__init__(f"ROOT MISMATCH DETECTED AT BLOCK {height}")


class EngineHaltedError(ApphashMonitorException):
    """Raised when an event is offered to an engine that has already halted."""
    pass
