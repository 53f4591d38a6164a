"""Fetching resources into the cache.

Each operation here takes the state container as its first argument, so a
``functools.partial`` over the remaining arguments is an action the container
(and the dependency scheduler) can dispatch.
"""

from __future__ import annotations

from dataclasses import replace
from functools import partial
from typing import Any, Callable

import structlog

from resource_store.config import get_settings
from resource_store.container import StateContainer
from resource_store.dependencies import ResourceAction, execute_for_dependents, get_dependencies
from resource_store.exceptions import ResourceTimeoutError
from resource_store.freshness import (
    get_accessed_at,
    get_expires_at,
    is_from_ssr,
    set_expires_at,
    should_use_cache,
)
from resource_store.lru import validate_lru_cache
from resource_store.models import (
    GetResourceOptions,
    ResourceDefinition,
    ResourceFetchContext,
    ResourceSlice,
    RouterContext,
)
from resource_store.monitoring import timed
from resource_store.slices import get_resource_state, get_slice_for_resource, set_resource_state
from resource_store.time_guard import TimeGuard, as_future, discard_result, failed_future


logger = structlog.get_logger(__name__)


def remote_action_factory(
    router_context: RouterContext, options: GetResourceOptions
) -> Callable[[ResourceDefinition], ResourceAction]:
    def factory(resource: ResourceDefinition) -> ResourceAction:
        return partial(
            get_resource_from_remote,
            resource=resource,
            router_context=router_context,
            options=options,
        )

    return factory


def _resolve_expiry(resource: ResourceDefinition, options: GetResourceOptions) -> int:
    floor = get_settings().prefetch_max_age_ms
    if options.prefetch and resource.max_age < floor:
        return get_expires_at(floor)
    return get_expires_at(resource.max_age)


def _resolve_timeout(options: GetResourceOptions) -> int | None:
    if options.timeout is not None:
        return options.timeout
    return get_settings().default_timeout_ms


@timed("resource.fetch")
async def get_resource_from_remote(
    container: StateContainer,
    resource: ResourceDefinition,
    router_context: RouterContext,
    options: GetResourceOptions,
) -> ResourceSlice:
    """Request a single resource and update the cache.

    Loader failures and timeouts are stored in the returned slice, never
    raised.
    """
    state = container.get_state()
    key = resource.key_for(router_context, state.context)
    existed = get_resource_state(container, resource.type, key) is not None
    prev_slice = get_slice_for_resource(state, resource.type, key)
    log = logger.bind(resource_type=resource.type, key=key)

    if prev_slice.loading:
        log.debug("resource.fetch.deduplicated")
        return prev_slice

    validate_lru_cache(container, resource, key)

    fetch_context = ResourceFetchContext(
        router_context=router_context,
        is_prefetch=options.prefetch,
        dependencies=get_dependencies(container, resource, router_context),
    )
    try:
        result: Any = resource.get_data(fetch_context, state.context)
    except Exception as exc:
        result = failed_future(exc)

    if existed and prev_slice.error is None and result is prev_slice.data:
        log.debug("resource.fetch.unchanged")
        return prev_slice

    pending_value = as_future(result)
    no_cache = resource.max_age == 0
    pending_slice = replace(
        prev_slice,
        data=None if no_cache else prev_slice.data,
        error=None if no_cache else prev_slice.error,
        loading=True,
        pending_value=pending_value,
        accessed_at=get_accessed_at(),
    )
    set_resource_state(container, resource.type, key, pending_slice)
    execute_for_dependents(container, resource, remote_action_factory(router_context, options))
    log.debug("resource.fetch.start", prefetch=options.prefetch)

    data = pending_slice.data
    error = None
    loading = False
    timeout = _resolve_timeout(options)
    try:
        if timeout:
            guard = TimeGuard(timeout)
            await guard.race(pending_value)
            if guard.is_pending:
                data = pending_value.result()
            else:
                pending_value.add_done_callback(discard_result)
                data = None
                error = ResourceTimeoutError(
                    f"Resource {resource.type!r} timed out after {timeout}ms",
                    resource_type=resource.type,
                )
                loading = True
                log.warning("resource.fetch.timeout", timeout_ms=timeout)
        else:
            data = await pending_value
    except Exception as exc:
        error = exc
        loading = False
        log.warning("resource.fetch.failed", error=str(exc), error_type=type(exc).__name__)

    response = replace(
        pending_slice,
        data=data,
        error=error,
        loading=loading,
        pending_value=None,
        expires_at=_resolve_expiry(resource, options),
        accessed_at=get_accessed_at(),
    )

    if get_resource_state(container, resource.type, key) is not None:
        set_resource_state(container, resource.type, key, response)
    else:
        log.debug("resource.fetch.discarded")
    return response


async def get_resource(
    container: StateContainer,
    resource: ResourceDefinition,
    router_context: RouterContext,
    options: GetResourceOptions,
) -> ResourceSlice:
    """Return the cached slice when it is fresh, otherwise fetch from remote."""
    key = resource.key_for(router_context, container.get_state().context)
    cached = get_resource_state(container, resource.type, key)

    if cached is not None and should_use_cache(cached):
        if is_from_ssr(cached):
            cached = set_expires_at(cached, resource.max_age)
        cached = replace(cached, accessed_at=get_accessed_at())
        set_resource_state(container, resource.type, key, cached)
        logger.debug("resource.cache.hit", resource_type=resource.type, key=key)
        return cached

    return await get_resource_from_remote(container, resource, router_context, options)


async def update_resource_state(
    container: StateContainer,
    resource: ResourceDefinition,
    router_context: RouterContext,
    updater: Callable[[Any], Any],
) -> ResourceSlice:
    """Replace a slice's data with ``updater(previous_data)`` and reset its expiry."""
    state = container.get_state()
    key = resource.key_for(router_context, state.context)
    prev_slice = get_slice_for_resource(state, resource.type, key)

    new_slice = replace(
        prev_slice,
        data=updater(prev_slice.data),
        expires_at=get_expires_at(resource.max_age),
        accessed_at=get_accessed_at(),
    )
    set_resource_state(container, resource.type, key, new_slice)

    if new_slice.data is not prev_slice.data:
        execute_for_dependents(container, resource, remote_action_factory(router_context, GetResourceOptions()))
    return new_slice


__all__ = [
    "get_resource",
    "get_resource_from_remote",
    "remote_action_factory",
    "update_resource_state",
]
