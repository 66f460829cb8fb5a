from __future__ import annotations

import pytest

from lib_combined_config.domain.errors import InvalidArgumentError
from lib_combined_config.domain.events import ConfigurationEvent, EventSource, EventType
from tests.support import RecordingListener


def test_listeners_receive_events_in_registration_order() -> None:
    source = EventSource()
    calls: list[str] = []
    source.add_change_listener(lambda event: calls.append("first"))
    source.add_change_listener(lambda event: calls.append("second"))
    source.fire_event(EventType.RELOAD)
    assert calls == ["first", "second"]


def test_duplicate_registration_is_ignored() -> None:
    source = EventSource()
    listener = RecordingListener()
    source.add_change_listener(listener)
    source.add_change_listener(listener)
    source.fire_event(EventType.CLEAR, before_update=True)
    assert len(listener.events) == 1
    assert listener.events[0] == ConfigurationEvent(EventType.CLEAR, source, None, None, True)


def test_remove_change_listener() -> None:
    source = EventSource()
    listener = RecordingListener()
    source.add_change_listener(listener)
    assert source.remove_change_listener(listener) is True
    assert source.remove_change_listener(listener) is False
    source.fire_event(EventType.CLEAR)
    assert listener.events == []


def test_none_listener_is_rejected() -> None:
    with pytest.raises(InvalidArgumentError):
        EventSource().add_change_listener(None)  # type: ignore[arg-type]


def test_listener_removed_during_dispatch_still_sees_current_event() -> None:
    source = EventSource()
    listener = RecordingListener()

    def remover(event: ConfigurationEvent) -> None:
        source.remove_change_listener(listener)

    source.add_change_listener(remover)
    source.add_change_listener(listener)
    source.fire_event(EventType.RELOAD)
    source.fire_event(EventType.RELOAD)
    assert len(listener.events) == 1


def test_clear_change_listeners() -> None:
    source = EventSource()
    source.add_change_listener(RecordingListener())
    source.clear_change_listeners()
    assert source.change_listeners == ()


def test_event_types_are_strings() -> None:
    assert EventType.COMBINED_INVALIDATE == "combined_invalidate"
