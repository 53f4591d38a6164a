"""State container holding the resource cache."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Callable, Optional, TypeVar

from resource_store.models import CacheState


R = TypeVar("R")

Listener = Callable[[CacheState], None]


class StateContainer:
    """Holds one ``CacheState`` and fans out every commit to listeners.

    Actions are callables taking the container; ``dispatch`` runs them and
    returns whatever they return, awaitables included.
    """

    def __init__(self, initial_state: Optional[CacheState] = None) -> None:
        self._state = initial_state if initial_state is not None else CacheState()
        self._listeners: list[Listener] = []

    def get_state(self) -> CacheState:
        return self._state

    def set_state(self, **changes: Any) -> None:
        self._state = replace(self._state, **changes)
        for listener in list(self._listeners):
            listener(self._state)

    def dispatch(self, action: Callable[["StateContainer"], R]) -> R:
        return action(self)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe


__all__ = ["Listener", "StateContainer"]
