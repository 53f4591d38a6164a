"""Resource store package exports."""

from resource_store.config import get_settings
from resource_store.container import StateContainer
from resource_store.exceptions import (
    RemoteResourceError,
    ResourceConfigurationError,
    ResourceStoreError,
    ResourceTimeoutError,
    RoundIndexMismatchError,
    RoundInProgressError,
    SchedulingError,
)
from resource_store.models import (
    CacheState,
    GetResourceOptions,
    ResourceDefinition,
    ResourceFetchContext,
    ResourceSlice,
    Route,
    RouterContext,
)
from resource_store.serialization import ResourceSnapshot
from resource_store.store import ResourceStore

__all__ = [
    "CacheState",
    "GetResourceOptions",
    "RemoteResourceError",
    "ResourceConfigurationError",
    "ResourceDefinition",
    "ResourceFetchContext",
    "ResourceSlice",
    "ResourceSnapshot",
    "ResourceStore",
    "ResourceStoreError",
    "ResourceTimeoutError",
    "RoundInProgressError",
    "RoundIndexMismatchError",
    "Route",
    "RouterContext",
    "SchedulingError",
    "StateContainer",
    "get_settings",
]
