"""Public, dependency-aware entry points to the resource cache."""

from __future__ import annotations

from functools import partial
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

import structlog

from resource_store.container import Listener, StateContainer
from resource_store.dependencies import action_with_dependencies, map_action_with_dependencies
from resource_store.models import (
    GetResourceOptions,
    ResourceDefinition,
    ResourceKey,
    ResourceSlice,
    ResourceType,
    RouterContext,
)
from resource_store import freshness, orchestrator, serialization
from resource_store.slices import delete_resource_state, get_resource_state, get_slice_for_resource


logger = structlog.get_logger(__name__)


def _route_resources(router_context: RouterContext) -> Sequence[ResourceDefinition]:
    return router_context.route.resources


def _static_filter(options: GetResourceOptions) -> Callable[[ResourceDefinition], bool]:
    if options.is_static:
        return lambda resource: not resource.is_browser_only
    return lambda resource: True


class ResourceStore:
    """Cache of route resources bound to one state container.

    Every fetch goes through the dependency scheduler, so resources that
    depend on a changed resource are refreshed before the call returns.
    """

    def __init__(self, container: Optional[StateContainer] = None) -> None:
        self.container = container if container is not None else StateContainer()

    @staticmethod
    def _options(options: Optional[GetResourceOptions]) -> GetResourceOptions:
        return options if options is not None else GetResourceOptions()

    async def get_resource(
        self,
        resource: ResourceDefinition,
        router_context: RouterContext,
        options: Optional[GetResourceOptions] = None,
    ) -> ResourceSlice:
        """Get one resource from the cache if fresh, otherwise from its loader."""
        action = partial(
            orchestrator.get_resource,
            resource=resource,
            router_context=router_context,
            options=self._options(options),
        )
        return await action_with_dependencies(self.container, _route_resources(router_context), resource, action)

    async def get_resource_from_remote(
        self,
        resource: ResourceDefinition,
        router_context: RouterContext,
        options: Optional[GetResourceOptions] = None,
    ) -> ResourceSlice:
        """Fetch one resource from its loader regardless of the cache."""
        action = partial(
            orchestrator.get_resource_from_remote,
            resource=resource,
            router_context=router_context,
            options=self._options(options),
        )
        return await action_with_dependencies(self.container, _route_resources(router_context), resource, action)

    async def update_resource_state(
        self,
        resource: ResourceDefinition,
        router_context: RouterContext,
        updater: Callable[[Any], Any],
    ) -> ResourceSlice:
        action = partial(
            orchestrator.update_resource_state,
            resource=resource,
            router_context=router_context,
            updater=updater,
        )
        return await action_with_dependencies(self.container, _route_resources(router_context), resource, action)

    async def request_resources(
        self,
        resources: Sequence[ResourceDefinition],
        router_context: RouterContext,
        options: Optional[GetResourceOptions] = None,
    ) -> List[ResourceSlice]:
        options = self._options(options)
        predicate = _static_filter(options)
        return await map_action_with_dependencies(
            self.container,
            [resource for resource in _route_resources(router_context) if predicate(resource)],
            [resource for resource in resources if predicate(resource)],
            lambda resource: partial(
                orchestrator.get_resource,
                resource=resource,
                router_context=router_context,
                options=options,
            ),
        )

    async def request_all_resources(
        self,
        router_context: Optional[RouterContext],
        options: Optional[GetResourceOptions] = None,
    ) -> List[ResourceSlice]:
        if router_context is None or not router_context.route.resources:
            return []
        return await self.request_resources(router_context.route.resources, router_context, options)

    async def refresh_resources(
        self,
        resources: Sequence[ResourceDefinition],
        router_context: RouterContext,
        options: Optional[GetResourceOptions] = None,
    ) -> List[ResourceSlice]:
        """Fetch ``resources`` from their loaders, bypassing fresh cache entries."""
        options = self._options(options)
        return await map_action_with_dependencies(
            self.container,
            _route_resources(router_context),
            resources,
            orchestrator.remote_action_factory(router_context, options),
        )

    def clean_expired_resources(
        self,
        resources: Sequence[ResourceDefinition],
        router_context: RouterContext,
    ) -> List[ResourceType]:
        """Drop expired slices for ``resources``. Called when entering a route."""
        context = self.container.get_state().context
        now = freshness.now_ms()
        removed = []
        for resource in resources:
            key = resource.key_for(router_context, context)
            slice_ = get_resource_state(self.container, resource.type, key)
            if slice_ is not None and (not slice_.expires_at or slice_.expires_at < now):
                delete_resource_state(self.container, resource.type, key)
                removed.append(resource.type)
        if removed:
            logger.debug("resource.cache.cleaned", resource_types=removed)
        return removed

    def hydrate(self, snapshot: Union[serialization.ResourceSnapshot, Mapping[str, Any]]) -> None:
        """Seed the cache from a snapshot. Never overrides existing state."""
        serialization.hydrate(self.container, snapshot)

    def export_snapshot(self) -> serialization.ResourceSnapshot:
        """Return safe, portable and rehydratable data."""
        return serialization.export_snapshot(self.container.get_state())

    get_safe_data = export_snapshot

    def get_context(self) -> Any:
        return self.container.get_state().context

    def get_slice(self, resource_type: ResourceType, key: ResourceKey) -> ResourceSlice:
        return get_slice_for_resource(self.container.get_state(), resource_type, key)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        return self.container.subscribe(listener)


__all__ = ["ResourceStore"]
