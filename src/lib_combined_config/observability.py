"""Structured logging for combined views, declarations, and sources.

Purpose
    Give every diagnostic the same shape: a message naming what happened and a
    ``context`` mapping with the trace identifier, the source label, and the
    details of the registration or rebuild involved.

Contents
    - ``TRACE_ID``: context variable storing the active trace identifier.
    - ``get_logger``: returns the package logger (quiet by default).
    - ``bind_trace_id``: binds or clears the active trace identifier.
    - ``log_debug`` / ``log_info`` / ``log_warning`` / ``log_error``: emit
      structured entries via a single private emitter.
    - ``make_event``: payload for one source (label, path, extra detail).
    - ``registration_event``: payload for a source registered in a view.
    - ``rebuild_event``: payload for a merged-tree rebuild.

System Integration
    Used by the combined view, the declaration resolver, and the source
    adapters. The domain layer stays free from logging concerns.
"""

from __future__ import annotations

import logging
from contextvars import ContextVar
from typing import Any, Final, Mapping

TRACE_ID: ContextVar[str | None] = ContextVar("lib_combined_config_trace_id", default=None)
"""Trace identifier attached to every entry emitted while it is bound."""

_LOGGER: Final[logging.Logger] = logging.getLogger("lib_combined_config")
_LOGGER.addHandler(logging.NullHandler())


def get_logger() -> logging.Logger:
    """Return the ``lib_combined_config`` logger so applications may attach handlers."""

    return _LOGGER


def bind_trace_id(trace_id: str | None) -> None:
    """Bind or clear the active trace identifier.

    Why
        Lets a host correlate the rebuilds and reloads triggered by one
        request or one :func:`~lib_combined_config.core.read_combined` call.

    Examples
    --------
    >>> bind_trace_id('abc123')
    >>> TRACE_ID.get()
    'abc123'
    >>> bind_trace_id(None)
    >>> TRACE_ID.get() is None
    True
    """

    TRACE_ID.set(trace_id)


def log_debug(message: str, **fields: Any) -> None:
    _emit(logging.DEBUG, message, fields)


def log_info(message: str, **fields: Any) -> None:
    _emit(logging.INFO, message, fields)


def log_warning(message: str, **fields: Any) -> None:
    _emit(logging.WARNING, message, fields)


def log_error(message: str, **fields: Any) -> None:
    _emit(logging.ERROR, message, fields)


def make_event(
    source: str,
    path: str | None,
    payload: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the payload describing one source.

    Inputs
        source: Registration name, declaration label, or adapter kind.
        path: File backing the source, if any.
        payload: Extra diagnostic detail merged on top.

    Examples
    --------
    >>> make_event('defaults', None, {'tag': 'toml'})
    {'source': 'defaults', 'path': None, 'tag': 'toml'}
    """

    event: dict[str, Any] = {"source": source, "path": path}
    if payload:
        event |= dict(payload)
    return event


def registration_event(label: str, position: int, at: str | None = None, *, shared: bool = False) -> dict[str, Any]:
    """Build the payload for a source entering or leaving a combined view.

    ``shared`` marks a source that is registered more than once in the same
    view; ``at`` is only reported when the source sits below a prefix.

    Examples
    --------
    >>> registration_event('site', 1)
    {'source': 'site', 'path': None, 'position': 1}
    >>> registration_event('env', 0, 'app..env', shared=True)
    {'source': 'env', 'path': None, 'position': 0, 'at': 'app..env', 'shared': True}
    """

    payload: dict[str, Any] = {"position": position}
    if at:
        payload["at"] = at
    if shared:
        payload["shared"] = True
    return make_event(label, None, payload)


def rebuild_event(sources: int, combiner: object, list_nodes: frozenset[str] = frozenset()) -> dict[str, Any]:
    """Build the payload for one rebuild of a merged tree.

    Examples
    --------
    >>> rebuild_event(2, object(), frozenset({'server'}))
    {'source': 'combined', 'path': None, 'sources': 2, 'combiner': 'object', 'list_nodes': ['server']}
    """

    return make_event(
        "combined",
        None,
        {"sources": sources, "combiner": type(combiner).__name__, "list_nodes": sorted(list_nodes)},
    )


def _emit(level: int, message: str, fields: Mapping[str, Any]) -> None:
    context = {"trace_id": TRACE_ID.get()}
    context.update(fields)
    _LOGGER.log(level, message, extra={"context": context})
