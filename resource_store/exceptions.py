"""Common exceptions for the resource store."""

from __future__ import annotations


class ResourceStoreError(RuntimeError):
    """Base error for the resource store."""

    error_name = "Error"


class ResourceTimeoutError(ResourceStoreError):
    """Stored in a slice when a loader did not settle before its deadline."""

    error_name = "TimeoutError"

    def __init__(self, message: str, *, resource_type: str | None = None, stack: str | None = None):
        super().__init__(message)
        self.resource_type = resource_type
        self.stack = stack


class RemoteResourceError(ResourceStoreError):
    """Error rebuilt from a portable record, e.g. after hydration."""

    def __init__(self, message: str, *, name: str = "Error", stack: str | None = None):
        super().__init__(message)
        self.error_name = name
        self.stack = stack


class SchedulingError(ResourceStoreError):
    """Dependency round construction or execution went wrong. Not retryable."""


class RoundInProgressError(SchedulingError):
    """Raised when a second execution round is started while one is active."""

    pass


class RoundIndexMismatchError(SchedulingError):
    """Raised when a round entry no longer matches the planned resource type."""

    pass


class ResourceConfigurationError(ResourceStoreError, ValueError):
    """Raised for invalid route resource declarations."""

    pass
