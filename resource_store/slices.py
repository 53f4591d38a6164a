"""Slice store: the only path through which cache entries change."""

from __future__ import annotations

from typing import Any, Callable, Mapping, Optional

from resource_store.container import StateContainer
from resource_store.models import CacheState, ResourceKey, ResourceSlice, ResourceType


ResourceData = Mapping[ResourceType, Mapping[ResourceKey, ResourceSlice]]


def get_slice_for_resource(state: CacheState, resource_type: ResourceType, key: ResourceKey) -> ResourceSlice:
    """Return the slice for ``(type, key)`` or an empty default slice."""
    slice_ = state.data.get(resource_type, {}).get(key)
    if slice_ is None:
        return ResourceSlice(key=key)
    return slice_


def get_resource_state(
    container: StateContainer, resource_type: ResourceType, key: ResourceKey
) -> Optional[ResourceSlice]:
    return container.get_state().data.get(resource_type, {}).get(key)


def set_resource_state(
    container: StateContainer,
    resource_type: ResourceType,
    key: ResourceKey,
    slice_: ResourceSlice,
) -> None:
    data = container.get_state().data
    container.set_state(
        data={
            **data,
            resource_type: {**data.get(resource_type, {}), key: slice_},
        }
    )


def delete_resource_state(container: StateContainer, resource_type: ResourceType, key: ResourceKey) -> None:
    data = container.get_state().data
    slices_for_type = data.get(resource_type, {})
    if key not in slices_for_type:
        return
    remaining = {existing: slice_ for existing, slice_ in slices_for_type.items() if existing != key}
    container.set_state(data={**data, resource_type: remaining})


def transform_data(data: Mapping[str, Mapping[str, Any]], transform: Callable[[Any], Any]) -> dict:
    return {
        resource_type: {key: transform(slice_) for key, slice_ in slices_for_type.items()}
        for resource_type, slices_for_type in data.items()
    }


__all__ = [
    "ResourceData",
    "delete_resource_state",
    "get_resource_state",
    "get_slice_for_resource",
    "set_resource_state",
    "transform_data",
]
