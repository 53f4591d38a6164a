"""Least-recently-used bound per resource type."""

from __future__ import annotations

import structlog

from resource_store.container import StateContainer
from resource_store.models import ResourceDefinition, ResourceKey
from resource_store.slices import delete_resource_state


logger = structlog.get_logger(__name__)


def validate_lru_cache(container: StateContainer, resource: ResourceDefinition, key: ResourceKey) -> int:
    """Evict the least recently accessed slices so ``key`` can be admitted.

    Returns the number of evicted slices. Slices without an ``accessed_at``
    stamp count as the oldest; ties keep insertion order.
    """
    max_cache = resource.max_cache
    if max_cache is None or max_cache < 1:
        return 0

    slices_for_type = container.get_state().data.get(resource.type, {})
    if key in slices_for_type:
        return 0

    evicted = 0
    candidates = list(slices_for_type.items())
    while len(candidates) >= max_cache:
        oldest_key, oldest = min(candidates, key=lambda item: item[1].accessed_at or 0)
        delete_resource_state(container, resource.type, oldest_key)
        candidates = [item for item in candidates if item[0] != oldest_key]
        evicted += 1
        logger.debug(
            "resource.lru.evicted",
            resource_type=resource.type,
            key=oldest_key,
            accessed_at=oldest.accessed_at,
            max_cache=max_cache,
        )
    return evicted


__all__ = ["validate_lru_cache"]
