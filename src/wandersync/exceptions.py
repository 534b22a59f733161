"""Custom exception hierarchy for wandersync."""

from __future__ import annotations


class WanderSyncError(Exception):
    """Base exception for all wandersync errors."""


class SyncConfigError(WanderSyncError):
    """Invalid or missing configuration."""


class SyncTransportError(WanderSyncError):
    """Network-level failure talking to a remote (no connectivity, timeout, non-200)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class MalformedRemoteDataError(WanderSyncError):
    """Remote payload could not be parsed into a usable document."""


class RateLimitError(SyncTransportError):
    """A quota-limited dependency rejected the call (HTTP 429 / resource exhausted).

    Seeing this error opens the circuit breaker of the guard wrapping the
    dependency, whether or not a retry follows.
    """


class StorageUnavailableError(WanderSyncError):
    """The local store could not be read or written.

    Offline-first guarantees depend on the local store, so this error is
    never recovered internally: it propagates to the caller.
    """
