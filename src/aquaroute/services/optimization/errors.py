"""Optimization error taxonomy and failure classification."""

from __future__ import annotations

import logging
import re
import socket
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence

import httpx

logger = logging.getLogger(__name__)


class ValidationError(Exception):
    """A request could not be built; raised before any network call."""

    condition = "ValidationError"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class EmptySelection(ValidationError):
    condition = "EmptySelection"

    def __init__(self) -> None:
        super().__init__("Select at least one water point before optimizing.")


class MissingOrigin(ValidationError):
    condition = "MissingOrigin"

    def __init__(self) -> None:
        super().__init__("A start location is required for route optimization.")


class MissingOwner(ValidationError):
    condition = "MissingOwner"

    def __init__(self) -> None:
        super().__init__("An owner id is required for route optimization.")


class UnknownPreset(ValidationError):
    condition = "UnknownPreset"

    def __init__(self, name: str, known: Sequence[str]) -> None:
        super().__init__(f"Unknown preset '{name}'. Expected one of: {', '.join(known)}.")
        self.name = name


@dataclass(frozen=True, slots=True)
class ConstraintViolation:
    field: str
    value: Any
    constraint: str

    def __str__(self) -> str:
        return f"{self.field}={self.value!r} ({self.constraint})"


class HyperparameterOutOfRange(ValidationError):
    condition = "HyperparameterOutOfRange"

    def __init__(self, violations: Sequence[ConstraintViolation]) -> None:
        self.violations = tuple(violations)
        joined = "; ".join(str(violation) for violation in self.violations)
        super().__init__(f"Hyperparameters out of range: {joined}")


NO_ROUTES_MESSAGE = "No water supplies found for the selected locations."


class OptimizerRejected(Exception):
    """The optimizer answered, but explicitly reported that it found no route."""


class ErrorCategory(str, Enum):
    VALIDATION_ERROR = "validation_error"
    SERVICE_UNAVAILABLE = "service_unavailable"
    NETWORK_ERROR = "network_error"
    TIMEOUT = "timeout"
    SERVER_ERROR = "server_error"
    NO_CANDIDATES_FOUND = "no_candidates_found"
    UNKNOWN = "unknown"

    @property
    def message(self) -> str:
        return _USER_MESSAGES[self]


_USER_MESSAGES = {
    ErrorCategory.VALIDATION_ERROR: "Please review the selection and optimization settings.",
    ErrorCategory.SERVICE_UNAVAILABLE: "The water supply service is currently unavailable. Please try again later.",
    ErrorCategory.NETWORK_ERROR: "Please check your internet connection and try again.",
    ErrorCategory.TIMEOUT: "The request took too long. Please try again.",
    ErrorCategory.SERVER_ERROR: "The server is experiencing issues. Please try again in a few minutes.",
    ErrorCategory.NO_CANDIDATES_FOUND: "No water supplies found in your area. Try selecting different locations.",
    ErrorCategory.UNKNOWN: "Unable to find water supplies. Please try again or contact support.",
}

_NOT_FOUND = re.compile(r"\b404\b|not found")
_NETWORK = re.compile(r"connection|network|socket|\bdns\b|getaddrinfo|name resolution|unreachable")
_TIMEOUT = re.compile(r"timeout|timed out")
_SERVER = re.compile(r"\b5\d\d\b|server")
_NO_CANDIDATES = re.compile(r"water suppl|no candidates")

_NETWORK_TYPES = (httpx.NetworkError, ConnectionError, socket.gaierror)
_TIMEOUT_TYPES = (httpx.TimeoutException, TimeoutError)


@dataclass(frozen=True, slots=True)
class FailureSignal:
    """Normalized view of a low-level failure."""

    message: str = ""
    status_code: Optional[int] = None
    timed_out: bool = False
    network: bool = False

    @classmethod
    def from_exception(cls, exc: BaseException) -> "FailureSignal":
        status_code = None
        if isinstance(exc, httpx.HTTPStatusError):
            status_code = exc.response.status_code
        return cls(
            message=f"{type(exc).__name__}: {exc}",
            status_code=status_code,
            timed_out=isinstance(exc, _TIMEOUT_TYPES),
            network=isinstance(exc, _NETWORK_TYPES),
        )

    @classmethod
    def coerce(cls, signal: Any) -> "FailureSignal":
        if isinstance(signal, FailureSignal):
            return signal
        if isinstance(signal, BaseException):
            return cls.from_exception(signal)
        if isinstance(signal, int) and not isinstance(signal, bool):
            return cls(status_code=signal)
        if signal is None:
            return cls()
        return cls(message=str(signal))


def _classify(signal: FailureSignal) -> ErrorCategory:
    text = signal.message.lower()
    status = signal.status_code
    if status == 404 or _NOT_FOUND.search(text):
        return ErrorCategory.SERVICE_UNAVAILABLE
    if signal.network or _NETWORK.search(text):
        return ErrorCategory.NETWORK_ERROR
    if signal.timed_out or _TIMEOUT.search(text):
        return ErrorCategory.TIMEOUT
    if (status is not None and 500 <= status <= 599) or _SERVER.search(text):
        return ErrorCategory.SERVER_ERROR
    if _NO_CANDIDATES.search(text):
        return ErrorCategory.NO_CANDIDATES_FOUND
    return ErrorCategory.UNKNOWN


def translate_error(signal: Any) -> ErrorCategory:
    """Map an exception, HTTP status, message or ``FailureSignal`` to one category.

    Categories are tested in a fixed order and the first match wins, so a
    message mentioning both ``404`` and ``timeout`` is ``SERVICE_UNAVAILABLE``.
    Never raises.
    """
    if isinstance(signal, ValidationError):
        return ErrorCategory.VALIDATION_ERROR
    try:
        return _classify(FailureSignal.coerce(signal))
    except Exception as exc:
        logger.warning(f"Failed to classify failure signal of type {type(signal).__name__}: {exc!r}")
        return ErrorCategory.UNKNOWN
