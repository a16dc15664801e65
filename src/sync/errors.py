"""
Exception taxonomy for the sync engine.

Every failure the engine raises is a SyncError subclass. The admin API
maps each class to an HTTP status via `http_status`; adapters raise
UpstreamError only.
"""

from typing import Literal

UpstreamErrorKind = Literal[
    "timeout",
    "network",
    "rate_limited",
    "server_error",
    "auth",
    "client_error",
    "parse",
]


class SyncError(Exception):
    """Base exception for sync engine errors."""

    http_status: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SyncError):
    """Request payload has the wrong shape or out-of-range values."""

    http_status = 400


class NotFoundError(SyncError):
    """Unknown source, keyword, credential or adapter."""

    http_status = 404


class DuplicateError(SyncError):
    """Keyword or source name collision."""

    http_status = 409


class SourceDisabledError(SyncError):
    """Sync requested for a source with enabled=False."""

    http_status = 409


class CredentialError(SyncError):
    """No usable credential is available for a provider that requires one."""

    http_status = 503

    def __init__(self, message: str, provider: str | None = None):
        super().__init__(message)
        self.provider = provider


class RunInProgressError(SyncError):
    """A sync run for the same source is already in progress."""

    http_status = 409

    def __init__(self, message: str, source_name: str | None = None):
        super().__init__(message)
        self.source_name = source_name


class SyncCancelledError(SyncError):
    """The caller cancelled the run before it finished."""

    http_status = 499


class UpstreamError(SyncError):
    """
    A provider call failed.

    Attributes:
        kind: Failure class (timeout, network, rate_limited, server_error,
            auth, client_error, parse)
        retryable: Whether the fetch client may retry the call
        status_code: Upstream HTTP status when one was received
        request_url: URL of the failing request, for the sync log
        attempts: Number of attempts made, set by the fetch client
    """

    def __init__(
        self,
        kind: UpstreamErrorKind,
        message: str,
        retryable: bool = False,
        status_code: int | None = None,
        request_url: str | None = None,
        attempts: int = 1,
    ):
        super().__init__(message)
        self.kind = kind
        self.retryable = retryable
        self.status_code = status_code
        self.request_url = request_url
        self.attempts = attempts
        # The provider is the failing dependency
        self.http_status = 504 if kind == "timeout" else 502

    def __str__(self) -> str:
        return f"[{self.kind}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"UpstreamError(kind={self.kind!r}, retryable={self.retryable}, "
            f"status_code={self.status_code}, attempts={self.attempts})"
        )
