"""Change notification primitives.

Purpose
-------
Model change propagation as explicit message passing: an event source holds an
ordered set of observer handles and pushes one :class:`ConfigurationEvent` per
phase of a change. Handlers run synchronously on the calling thread.

Contents
--------
* :class:`EventType` – every kind of change a configuration reports.
* :class:`ConfigurationEvent` – immutable event payload.
* :data:`ChangeListener` – callable signature accepted by event sources.
* :class:`EventSource` – mixin managing listeners and firing events.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from .errors import InvalidArgumentError


class EventType(str, Enum):
    """Kinds of configuration events.

    ``COMBINED_INVALIDATE`` is the internal signal a combined view emits when
    its merged tree becomes stale; every other type describes a structural or
    property change listeners may want to react to.
    """

    ADD_PROPERTY = "add_property"
    SET_PROPERTY = "set_property"
    CLEAR_PROPERTY = "clear_property"
    CLEAR = "clear"
    SOURCE_ADDED = "source_added"
    SOURCE_REMOVED = "source_removed"
    COMBINER_CHANGED = "combiner_changed"
    RELOAD = "reload"
    COMBINED_INVALIDATE = "combined_invalidate"


@dataclass(frozen=True)
class ConfigurationEvent:
    """Describe one phase of a configuration change.

    Attributes
    ----------
    type:
        The :class:`EventType` of the change.
    source:
        The configuration that emitted the event.
    name:
        Property key or registration name concerned, if any.
    value:
        New value, added source, or other payload, if any.
    before_update:
        ``True`` for the notification sent before the change is applied.
    """

    type: EventType
    source: Any
    name: str | None = None
    value: Any = None
    before_update: bool = False


ChangeListener = Callable[[ConfigurationEvent], None]


class EventSource:
    """Mixin that keeps observer handles and fires events to them in order."""

    def __init__(self) -> None:
        self._listeners: list[ChangeListener] = []

    def add_change_listener(self, listener: ChangeListener) -> None:
        """Register *listener*; registering the same handle twice has no effect."""

        if listener is None:
            raise InvalidArgumentError("Listener must not be None")
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_change_listener(self, listener: ChangeListener) -> bool:
        """Unregister *listener*; return whether it was registered."""

        try:
            self._listeners.remove(listener)
        except ValueError:
            return False
        return True

    @property
    def change_listeners(self) -> tuple[ChangeListener, ...]:
        return tuple(self._listeners)

    def clear_change_listeners(self) -> None:
        self._listeners.clear()

    def fire_event(
        self,
        event_type: EventType,
        name: str | None = None,
        value: Any = None,
        *,
        before_update: bool = False,
    ) -> None:
        """Push one event to every listener registered at call time."""

        if not self._listeners:
            return
        event = ConfigurationEvent(event_type, self, name, value, before_update)
        for listener in list(self._listeners):
            listener(event)
