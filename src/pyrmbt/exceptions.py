"""Custom exception hierarchy for pyrmbt.

Every error carries a :class:`ErrorCategory` so callers can decide whether
to retry, prompt the user or discard based on the category alone.
"""

from __future__ import annotations

import enum


class ErrorCategory(enum.Enum):
    """Coarse failure classes surfaced by every client operation."""

    CONFIG = "config"
    TRANSPORT = "transport"
    SERVER = "server"
    DECODE = "decode"
    CANCELLED = "cancelled"
    BOOTSTRAP = "bootstrap"


class RmbtError(Exception):
    """Base exception for all pyrmbt errors."""

    category: ErrorCategory = ErrorCategory.TRANSPORT

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class RmbtConfigError(RmbtError):
    """Invalid or missing configuration."""

    category = ErrorCategory.CONFIG


class RmbtTransportError(RmbtError):
    """Connectivity failure or timeout before a response was received."""

    category = ErrorCategory.TRANSPORT


class RmbtServerError(RmbtError):
    """Server answered with a non-accepted status or a non-empty ``error`` list."""

    category = ErrorCategory.SERVER

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        errors: list[str] | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.errors = list(errors or [])
        super().__init__(message, endpoint=endpoint)


class RmbtDecodeError(RmbtError):
    """Response body could not be decoded into the expected shape."""

    category = ErrorCategory.DECODE


class RmbtCancelledError(RmbtError):
    """Request was aborted by the caller before it completed."""

    category = ErrorCategory.CANCELLED


class RmbtBootstrapError(RmbtError):
    """The settings fetch needed to obtain a client UUID failed.

    The dependent operation is not attempted. ``cause`` holds the
    underlying transport, server or decode error.
    """

    category = ErrorCategory.BOOTSTRAP

    def __init__(self, cause: RmbtError, *, endpoint: str = "") -> None:
        self.cause = cause
        super().__init__(f"Identity bootstrap failed: {cause}", endpoint=endpoint)
