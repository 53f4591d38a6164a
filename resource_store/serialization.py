"""Portable snapshots of the resource cache.

Provides:
- An error codec turning exceptions into ``{name, message, stack}`` records
- ``export_snapshot``: a transport-safe deep copy of the cache
- ``hydrate``: seeding an empty cache from such a snapshot

Timestamps and pending values never cross the boundary. Timeout errors keep
their "still outstanding" meaning on export, but are made refetchable again on
hydration since no background fetch survives the boundary.
"""

from __future__ import annotations

import copy
import json
import traceback
from collections.abc import Mapping, Sized
from typing import Any, Dict, Optional, Union

import structlog
from pydantic import BaseModel, Field

from resource_store.container import StateContainer
from resource_store.exceptions import RemoteResourceError, ResourceStoreError, ResourceTimeoutError
from resource_store import freshness
from resource_store.models import CacheState, ResourceSlice
from resource_store.slices import transform_data


logger = structlog.get_logger(__name__)

TIMEOUT_ERROR_NAME = ResourceTimeoutError.error_name


class PortableError(BaseModel):
    name: str = "Error"
    message: str = ""
    stack: Optional[str] = None


class PortableSlice(BaseModel):
    data: Any = None
    key: Optional[str] = None
    error: Optional[PortableError] = None
    loading: bool = False
    expires_at: Optional[int] = None
    accessed_at: Optional[int] = None


class ResourceSnapshot(BaseModel):
    data: Dict[str, Dict[str, PortableSlice]] = Field(default_factory=dict)
    context: Any = Field(default_factory=dict)


def error_name(error: BaseException) -> str:
    if isinstance(error, ResourceStoreError):
        return error.error_name
    return type(error).__name__


def is_timeout_error(error: Any) -> bool:
    if isinstance(error, ResourceTimeoutError):
        return True
    return isinstance(error, RemoteResourceError) and error.error_name == TIMEOUT_ERROR_NAME


def serialize_error(error: BaseException) -> PortableError:
    stack = getattr(error, "stack", None)
    if stack is None:
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    return PortableError(name=error_name(error), message=str(error), stack=stack)


def deserialize_error(record: Union[PortableError, Mapping[str, Any]]) -> ResourceStoreError:
    if not isinstance(record, PortableError):
        record = PortableError.model_validate(record)
    if record.name == TIMEOUT_ERROR_NAME:
        return ResourceTimeoutError(record.message, stack=record.stack)
    return RemoteResourceError(record.message, name=record.name, stack=record.stack)


def _as_exception(error: Any) -> BaseException:
    if isinstance(error, BaseException):
        return error
    return RemoteResourceError(json.dumps(error, default=str))


def export_slice(slice_: ResourceSlice) -> PortableSlice:
    error = slice_.error
    return PortableSlice(
        data=copy.deepcopy(slice_.data),
        key=slice_.key,
        error=None if error is None else serialize_error(_as_exception(error)),
        loading=slice_.loading if is_timeout_error(error) else False,
        expires_at=None,
        accessed_at=None,
    )


def hydrate_slice(record: PortableSlice) -> ResourceSlice:
    error = None if record.error is None else deserialize_error(record.error)
    if is_timeout_error(error):
        return ResourceSlice(
            key=record.key,
            data=record.data,
            error=error,
            loading=False,
            expires_at=freshness.now_ms() - 1,
            accessed_at=record.accessed_at,
        )
    return ResourceSlice(
        key=record.key,
        data=record.data,
        error=error,
        loading=record.loading,
        expires_at=record.expires_at,
        accessed_at=record.accessed_at,
    )


def export_snapshot(state: CacheState) -> ResourceSnapshot:
    return ResourceSnapshot(
        data=transform_data(state.data, export_slice),
        context=copy.deepcopy(state.context),
    )


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, Sized):
        return len(value) == 0
    return False


def hydrate(container: StateContainer, snapshot: Union[ResourceSnapshot, Mapping[str, Any]]) -> None:
    """Merge ``snapshot`` into the cache, filling only fields that are empty."""
    if not isinstance(snapshot, ResourceSnapshot):
        snapshot = ResourceSnapshot.model_validate(snapshot)

    state = container.get_state()
    changes: Dict[str, Any] = {}
    if _is_empty(state.data) and snapshot.data:
        changes["data"] = transform_data(snapshot.data, hydrate_slice)
    if _is_empty(state.context) and not _is_empty(snapshot.context):
        changes["context"] = snapshot.context

    if changes:
        container.set_state(**changes)
    logger.info(
        "resource.hydrate",
        data_hydrated="data" in changes,
        context_hydrated="context" in changes,
        resource_types=sorted(snapshot.data),
    )


__all__ = [
    "PortableError",
    "PortableSlice",
    "ResourceSnapshot",
    "TIMEOUT_ERROR_NAME",
    "deserialize_error",
    "error_name",
    "export_slice",
    "export_snapshot",
    "hydrate",
    "hydrate_slice",
    "is_timeout_error",
    "serialize_error",
]
