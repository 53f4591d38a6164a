"""Dependency-ordered execution of resource actions.

Resources may declare ``depends`` on resources configured earlier on the same
route. When a batch touches such a dependency, the batch runs as one
*execution round*: the implicated resources execute strictly one after the
other in route order, and a dependency that commits new data swaps a fresh
fetch into every dependent that has not run yet. Only one round may be active
per cache.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, List, Mapping, Sequence

import structlog

from resource_store.container import StateContainer
from resource_store.exceptions import RoundInProgressError, RoundIndexMismatchError
from resource_store.models import (
    ExecutionRound,
    ResourceDefinition,
    ResourceSlice,
    ResourceType,
    RoundEntry,
    RouterContext,
)
from resource_store.monitoring import round_scope, timed
from resource_store.slices import get_slice_for_resource


logger = structlog.get_logger(__name__)

ResourceAction = Callable[[StateContainer], Awaitable[ResourceSlice]]
ActionFactory = Callable[[ResourceDefinition], ResourceAction]


def get_triggers(route_resources: Sequence[ResourceDefinition]) -> set[ResourceType]:
    """Types some other resource on the route depends on."""
    return {dependency for resource in route_resources for dependency in resource.depends}


def get_dependencies(
    container: StateContainer,
    resource: ResourceDefinition,
    router_context: RouterContext,
) -> Dict[ResourceType, ResourceSlice]:
    """Committed slices of ``resource``'s dependencies.

    Only resources positioned at or before ``resource`` are visible: the round
    entries while a round is active, the route's resources otherwise.
    """
    if not resource.depends:
        return {}

    state = container.get_state()
    if state.executing is not None and resource.type in state.executing:
        candidates = [entry.resource for entry in state.executing.entries]
    else:
        candidates = list(router_context.route.resources)

    types = [candidate.type for candidate in candidates]
    if resource.type not in types:
        return {}
    visible = candidates[: types.index(resource.type) + 1]

    return {
        candidate.type: get_slice_for_resource(
            state, candidate.type, candidate.key_for(router_context, state.context)
        )
        for candidate in visible
        if candidate.type in resource.depends
    }


def execute_for_dependents(
    container: StateContainer,
    resource: ResourceDefinition,
    action_factory: ActionFactory,
) -> List[ResourceType]:
    """Give every not-yet-executed dependent of ``resource`` a fresh action.

    No-op outside an active round. Returns the types that were rescheduled.
    """
    round_ = container.get_state().executing
    if round_ is None:
        return []
    index = round_.index_of(resource.type)
    if index < 0:
        return []

    rescheduled = []
    start = max(index, round_.position) + 1
    for entry in round_.entries[start:]:
        if resource.type in entry.resource.depends:
            entry.action = action_factory(entry.resource)
            rescheduled.append(entry.resource.type)

    if rescheduled:
        logger.debug(
            "resource.round.dependents_rescheduled",
            resource_type=resource.type,
            dependents=rescheduled,
        )
    return rescheduled


@timed("resource.round")
async def execute_round(container: StateContainer, round_: ExecutionRound) -> Dict[ResourceType, ResourceSlice]:
    """Install ``round_`` as the active round and run its entries in order."""
    if container.get_state().executing is not None:
        raise RoundInProgressError("An execution round is already active for this cache")

    planned_types = round_.types
    results: Dict[ResourceType, ResourceSlice] = {}
    container.set_state(executing=round_)
    with round_scope():
        logger.debug("resource.round.start", resource_types=planned_types)
        try:
            for index, planned_type in enumerate(planned_types):
                current = container.get_state().executing
                if current is not round_ or current.entries[index].resource.type != planned_type:
                    raise RoundIndexMismatchError(
                        f"Round entry {index} no longer matches resource {planned_type!r}"
                    )
                entry = current.entries[index]
                current.position = index
                if entry.action is None:
                    continue
                action, entry.action = entry.action, None
                results[planned_type] = await container.dispatch(action)
        finally:
            container.set_state(executing=None)
        logger.debug("resource.round.complete", executed=sorted(results))
    return results


async def map_action_with_dependencies(
    container: StateContainer,
    route_resources: Sequence[ResourceDefinition],
    resources: Sequence[ResourceDefinition],
    action_factory: ActionFactory,
) -> List[ResourceSlice]:
    """Run ``action_factory(resource)`` for each of ``resources`` in dependency order.

    Results come back in the order of ``resources``.
    """
    triggers = get_triggers(route_resources)
    if not any(resource.type in triggers for resource in resources):
        return list(
            await asyncio.gather(*(container.dispatch(action_factory(resource)) for resource in resources))
        )

    requested: Mapping[ResourceType, ResourceAction] = {
        resource.type: action_factory(resource) for resource in resources
    }
    round_ = ExecutionRound(
        entries=[
            RoundEntry(resource=resource, action=requested.get(resource.type))
            for resource in route_resources
            if resource.depends or resource.type in triggers
        ]
    )
    outside = {
        resource_type: asyncio.ensure_future(container.dispatch(action))
        for resource_type, action in requested.items()
        if resource_type not in round_
    }

    try:
        round_results = await execute_round(container, round_)
    except BaseException:
        for future in outside.values():
            future.cancel()
        raise

    slices = []
    for resource in resources:
        if resource.type in round_results:
            slices.append(round_results[resource.type])
        else:
            slices.append(await outside[resource.type])
    return slices


async def action_with_dependencies(
    container: StateContainer,
    route_resources: Sequence[ResourceDefinition],
    resource: ResourceDefinition,
    action: ResourceAction,
) -> ResourceSlice:
    results = await map_action_with_dependencies(container, route_resources, [resource], lambda _: action)
    return results[0]


__all__ = [
    "ActionFactory",
    "ResourceAction",
    "action_with_dependencies",
    "execute_for_dependents",
    "execute_round",
    "get_dependencies",
    "get_triggers",
    "map_action_with_dependencies",
]
