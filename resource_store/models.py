"""Data model for route resources, cache slices and execution rounds."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Mapping, Optional, Tuple, TypeVar, Union

from resource_store.exceptions import ResourceConfigurationError


T = TypeVar("T")

ResourceType = str
ResourceKey = str


@dataclass(frozen=True)
class ResourceSlice(Generic[T]):
    """One cached entry for a (resource type, key) pair.

    Slices are never edited in place; every transition commits a replacement
    built with ``dataclasses.replace``.
    """

    key: Optional[ResourceKey] = None
    data: Optional[T] = None
    error: Any = None
    loading: bool = False
    pending_value: Optional[asyncio.Future] = None
    expires_at: Optional[int] = None
    accessed_at: Optional[int] = None


@dataclass(frozen=True)
class ResourceDefinition(Generic[T]):
    type: ResourceType
    get_key: Callable[["RouterContext", Any], ResourceKey]
    get_data: Callable[["ResourceFetchContext", Any], Union[T, Awaitable[T]]]
    max_age: int = 0
    depends: Tuple[ResourceType, ...] = ()
    is_browser_only: bool = False
    max_cache: Optional[int] = None

    def __post_init__(self) -> None:
        # Accept any sequence for ``depends`` but store it as an immutable tuple.
        object.__setattr__(self, "depends", tuple(self.depends))
        if self.max_age < 0:
            raise ResourceConfigurationError(f"max_age must be >= 0 for resource {self.type!r}")

    def key_for(self, router_context: "RouterContext", app_context: Any) -> ResourceKey:
        """Resolve the cache key. Keys must be strings so snapshots stay portable."""
        key = self.get_key(router_context, app_context)
        if not isinstance(key, str):
            raise ResourceConfigurationError(
                f"get_key for resource {self.type!r} returned {type(key).__name__}, expected str"
            )
        return key


@dataclass(frozen=True)
class Route:
    """A navigable target and the resources it needs, in declaration order."""

    name: str
    path: str = ""
    resources: Tuple[ResourceDefinition, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "resources", tuple(self.resources))
        declared: set[ResourceType] = set()
        for resource in self.resources:
            if resource.type in declared:
                raise ResourceConfigurationError(
                    f"Route {self.name!r} declares resource {resource.type!r} more than once"
                )
            for dependency in resource.depends:
                if dependency not in declared:
                    raise ResourceConfigurationError(
                        f"Resource {resource.type!r} on route {self.name!r} depends on "
                        f"{dependency!r}, which must be declared before it"
                    )
            declared.add(resource.type)


@dataclass(frozen=True)
class RouterContext:
    route: Route
    match: Mapping[str, Any] = field(default_factory=dict)
    query: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ResourceFetchContext:
    """What a loader receives: the router context plus fetch-specific extras."""

    router_context: RouterContext
    is_prefetch: bool = False
    dependencies: Mapping[ResourceType, ResourceSlice] = field(default_factory=dict)

    @property
    def route(self) -> Route:
        return self.router_context.route

    @property
    def match(self) -> Mapping[str, Any]:
        return self.router_context.match

    @property
    def query(self) -> Mapping[str, Any]:
        return self.router_context.query


@dataclass(frozen=True)
class GetResourceOptions:
    prefetch: bool = False
    timeout: Optional[int] = None
    is_static: bool = False


@dataclass
class RoundEntry:
    resource: ResourceDefinition
    action: Optional[Callable[[Any], Awaitable[ResourceSlice]]] = None


@dataclass
class ExecutionRound:
    """Resources implicated in one scheduling pass, in route order.

    ``position`` is the index of the entry currently running; entries after it
    have not run yet and may still have their action replaced.
    """

    entries: list[RoundEntry]
    position: int = -1

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, resource_type: object) -> bool:
        return self.index_of(resource_type) >= 0  # type: ignore[arg-type]

    @property
    def types(self) -> list[ResourceType]:
        return [entry.resource.type for entry in self.entries]

    def index_of(self, resource_type: ResourceType) -> int:
        for index, entry in enumerate(self.entries):
            if entry.resource.type == resource_type:
                return index
        return -1


@dataclass(frozen=True)
class CacheState:
    data: Mapping[ResourceType, Mapping[ResourceKey, ResourceSlice]] = field(default_factory=dict)
    context: Any = field(default_factory=dict)
    executing: Optional[ExecutionRound] = None


__all__ = [
    "CacheState",
    "ExecutionRound",
    "GetResourceOptions",
    "ResourceDefinition",
    "ResourceFetchContext",
    "ResourceKey",
    "ResourceSlice",
    "ResourceType",
    "RoundEntry",
    "Route",
    "RouterContext",
]
