"""Tests for the per-type LRU bound."""

from __future__ import annotations

from hypothesis import given
from hypothesis import strategies as st

from resource_store.container import StateContainer
from resource_store.lru import validate_lru_cache
from resource_store.models import ResourceDefinition, ResourceSlice
from resource_store.slices import set_resource_state


def make_resource(max_cache):
    return ResourceDefinition(
        type="detail",
        get_key=lambda router_context, app_context: router_context,
        get_data=lambda fetch_context, app_context: None,
        max_age=60_000,
        max_cache=max_cache,
    )


def fill(container: StateContainer, accessed: dict) -> None:
    for key, accessed_at in accessed.items():
        set_resource_state(container, "detail", key, ResourceSlice(key=key, data=key, accessed_at=accessed_at))


def test_evicts_least_recently_accessed() -> None:
    container = StateContainer()
    fill(container, {"a": 300, "b": 100, "c": 200})

    evicted = validate_lru_cache(container, make_resource(3), "d")

    assert evicted == 1
    assert set(container.get_state().data["detail"]) == {"a", "c"}


def test_existing_key_is_not_evicted_for() -> None:
    container = StateContainer()
    fill(container, {"a": 300, "b": 100, "c": 200})

    assert validate_lru_cache(container, make_resource(3), "b") == 0
    assert set(container.get_state().data["detail"]) == {"a", "b", "c"}


def test_unbounded_types_are_untouched() -> None:
    container = StateContainer()
    fill(container, {"a": 1, "b": 2})

    assert validate_lru_cache(container, make_resource(None), "c") == 0
    assert validate_lru_cache(container, make_resource(0), "c") == 0
    assert len(container.get_state().data["detail"]) == 2


def test_missing_stamp_counts_as_oldest() -> None:
    container = StateContainer()
    fill(container, {"a": 50, "b": None})

    validate_lru_cache(container, make_resource(2), "c")

    assert set(container.get_state().data["detail"]) == {"a"}


def test_ties_evict_in_insertion_order() -> None:
    container = StateContainer()
    fill(container, {"first": 10, "second": 10})

    validate_lru_cache(container, make_resource(2), "third")

    assert set(container.get_state().data["detail"]) == {"second"}


@given(
    stamps=st.lists(st.integers(min_value=0, max_value=10_000), min_size=0, max_size=25, unique=True),
    max_cache=st.integers(min_value=1, max_value=10),
)
def test_admitting_a_key_keeps_the_most_recent_within_bound(stamps, max_cache) -> None:
    container = StateContainer()
    fill(container, {f"k{stamp}": stamp for stamp in stamps})

    validate_lru_cache(container, make_resource(max_cache), "new")

    remaining = container.get_state().data.get("detail", {})
    assert len(remaining) == min(len(stamps), max_cache - 1)
    kept = sorted(stamps, reverse=True)[: len(remaining)]
    assert set(remaining) == {f"k{stamp}" for stamp in kept}
