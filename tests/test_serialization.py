"""Tests for the error codec, snapshot export and hydration."""

from __future__ import annotations

import json

import pytest

from resource_store import freshness
from resource_store.container import StateContainer
from resource_store.exceptions import RemoteResourceError, ResourceTimeoutError
from resource_store.models import CacheState, ResourceSlice
from resource_store.serialization import (
    PortableError,
    ResourceSnapshot,
    deserialize_error,
    export_snapshot,
    hydrate,
    is_timeout_error,
    serialize_error,
)
from resource_store.slices import set_resource_state


NOW = 1_700_000_000_000


@pytest.fixture(autouse=True)
def frozen_clock(monkeypatch):
    monkeypatch.setattr(freshness, "now_ms", lambda: NOW)


class TestErrorCodec:
    def test_raised_error_keeps_name_message_and_stack(self) -> None:
        try:
            raise ValueError("bad payload")
        except ValueError as exc:
            record = serialize_error(exc)

        assert record.name == "ValueError"
        assert record.message == "bad payload"
        assert "bad payload" in record.stack
        assert "Traceback" in record.stack

    def test_timeout_error_uses_portable_name(self) -> None:
        record = serialize_error(ResourceTimeoutError("too slow"))
        assert record.name == "TimeoutError"

    def test_deserialize_timeout(self) -> None:
        error = deserialize_error({"name": "TimeoutError", "message": "too slow", "stack": "s"})
        assert isinstance(error, ResourceTimeoutError)
        assert is_timeout_error(error)
        assert error.stack == "s"

    def test_deserialize_other_error(self) -> None:
        error = deserialize_error(PortableError(name="NotFound", message="gone"))
        assert isinstance(error, RemoteResourceError)
        assert error.error_name == "NotFound"
        assert str(error) == "gone"
        assert not is_timeout_error(error)

    def test_reserialize_keeps_original_stack(self) -> None:
        error = deserialize_error({"name": "NotFound", "message": "gone", "stack": "remote stack"})
        assert serialize_error(error) == PortableError(name="NotFound", message="gone", stack="remote stack")


class TestExportSnapshot:
    def test_strips_transient_fields_and_encodes_errors(self) -> None:
        state = CacheState(
            data={
                "user": {"u1": ResourceSlice(key="u1", data={"name": "Ada"}, expires_at=NOW + 5, accessed_at=NOW)},
                "feed": {"f": ResourceSlice(key="f", error=KeyError("f"), loading=True, expires_at=NOW)},
            },
            context={"tenant": "t1"},
        )

        snapshot = export_snapshot(state)

        user = snapshot.data["user"]["u1"]
        assert user.data == {"name": "Ada"}
        assert user.expires_at is None and user.accessed_at is None
        assert user.error is None and user.loading is False
        feed = snapshot.data["feed"]["f"]
        assert feed.error.name == "KeyError"
        assert feed.loading is False
        assert snapshot.context == {"tenant": "t1"}

    def test_timeout_keeps_loading(self) -> None:
        state = CacheState(data={"slow": {"k": ResourceSlice(key="k", error=ResourceTimeoutError("t"), loading=True)}})

        record = export_snapshot(state).data["slow"]["k"]

        assert record.error.name == "TimeoutError"
        assert record.loading is True

    def test_non_exception_errors_are_wrapped(self) -> None:
        state = CacheState(data={"a": {"k": ResourceSlice(key="k", error={"code": 500})}})

        record = export_snapshot(state).data["a"]["k"]

        assert record.error.name == "Error"
        assert json.loads(record.error.message) == {"code": 500}

    def test_export_is_a_deep_copy(self) -> None:
        payload = {"items": [1, 2]}
        state = CacheState(data={"a": {"k": ResourceSlice(key="k", data=payload)}})

        snapshot = export_snapshot(state)
        payload["items"].append(3)

        assert snapshot.data["a"]["k"].data == {"items": [1, 2]}

    def test_snapshot_is_json_serializable(self) -> None:
        state = CacheState(data={"a": {"k": ResourceSlice(key="k", data=[1], error=ValueError("v"))}})

        decoded = json.loads(export_snapshot(state).model_dump_json())

        assert decoded["data"]["a"]["k"]["error"]["name"] == "ValueError"


class TestHydrate:
    def test_installs_snapshot_into_empty_cache(self) -> None:
        container = StateContainer()

        hydrate(
            container,
            {
                "data": {"user": {"u1": {"data": {"name": "Ada"}, "key": "u1", "error": None, "loading": False}}},
                "context": {"tenant": "t1"},
            },
        )

        state = container.get_state()
        assert state.data["user"]["u1"] == ResourceSlice(key="u1", data={"name": "Ada"})
        assert state.context == {"tenant": "t1"}

    def test_timeout_errors_become_refetchable(self) -> None:
        container = StateContainer()
        snapshot = ResourceSnapshot.model_validate(
            {"data": {"slow": {"k": {"key": "k", "error": {"name": "TimeoutError", "message": "t"}, "loading": True}}}}
        )

        hydrate(container, snapshot)

        slice_ = container.get_state().data["slow"]["k"]
        assert isinstance(slice_.error, ResourceTimeoutError)
        assert slice_.loading is False
        assert slice_.expires_at < NOW

    def test_other_errors_are_decoded_as_terminal(self) -> None:
        container = StateContainer()

        hydrate(container, {"data": {"a": {"k": {"key": "k", "error": {"name": "NotFound", "message": "gone"}}}}})

        slice_ = container.get_state().data["a"]["k"]
        assert isinstance(slice_.error, RemoteResourceError)
        assert slice_.loading is False
        assert slice_.expires_at is None

    def test_existing_entries_are_not_overridden(self) -> None:
        container = StateContainer()
        live = ResourceSlice(key="u1", data={"name": "live"}, expires_at=NOW + 1000, accessed_at=NOW)
        set_resource_state(container, "user", "u1", live)

        hydrate(
            container,
            {"data": {"user": {"u1": {"key": "u1", "data": {"name": "stale"}}, "u2": {"key": "u2", "data": {}}}}},
        )

        assert container.get_state().data == {"user": {"u1": live}}

    def test_context_and_data_are_filled_independently(self) -> None:
        container = StateContainer(CacheState(context={"tenant": "live"}))

        hydrate(container, {"data": {"a": {"k": {"key": "k", "data": 1}}}, "context": {"tenant": "snapshot"}})

        state = container.get_state()
        assert state.context == {"tenant": "live"}
        assert state.data["a"]["k"].data == 1

    def test_empty_snapshot_changes_nothing(self) -> None:
        container = StateContainer()
        commits = []
        container.subscribe(commits.append)

        hydrate(container, {})

        assert commits == []


def test_export_then_hydrate_round_trip() -> None:
    source = CacheState(
        data={
            "user": {"u1": ResourceSlice(key="u1", data={"name": "Ada"}, expires_at=NOW + 10, accessed_at=NOW)},
            "feed": {"f": ResourceSlice(key="f", error=LookupError("missing"), expires_at=NOW)},
            "slow": {"s": ResourceSlice(key="s", error=ResourceTimeoutError("t"), loading=True)},
        },
        context={"tenant": "t1"},
    )
    target = StateContainer()

    hydrate(target, json.loads(export_snapshot(source).model_dump_json()))

    data = target.get_state().data
    assert data["user"]["u1"].data == {"name": "Ada"}
    assert data["feed"]["f"].error.error_name == "LookupError"
    assert isinstance(data["slow"]["s"].error, ResourceTimeoutError)
    assert target.get_state().context == {"tenant": "t1"}
