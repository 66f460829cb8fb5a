"""Environment variable source configuration.

Purpose
-------
Expose prefixed process environment variables as a hierarchical
configuration so they can be registered in a combined view like any file.

Key behaviours
--------------
* Only variables starting with the prefix (``DEMO`` matches ``DEMO_*``) are
  captured; the prefix is stripped.
* ``__`` is the nesting delimiter (``DEMO_DB__HOST`` becomes ``db.host``).
* Light scalar coercion (bools, ints, floats, ``null``/``none``).
* :meth:`EnvironmentConfiguration.reload_if_changed` re-reads the mapping and
  reports whether the captured variables changed.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING, Mapping

from ...domain.config import ROOT_NAME, HierarchicalConfiguration
from ...domain.events import EventType
from ...domain.node import Node
from ...observability import log_debug, log_info

if TYPE_CHECKING:
    from ...application.builder import SourceDeclaration


def default_env_prefix(slug: str) -> str:
    """Return the canonical environment prefix for *slug*.

    Examples
    --------
    >>> default_env_prefix('lib-combined-config')
    'LIB_COMBINED_CONFIG'
    """

    return slug.replace("-", "_").upper()


class EnvironmentConfiguration(HierarchicalConfiguration):
    """Snapshot of the environment variables that carry *prefix*.

    Parameters
    ----------
    prefix:
        Upper-case prefix; ``_`` is appended when missing. An empty prefix
        captures every variable.
    environ:
        Mapping to read from. Defaults to :data:`os.environ`.

    Examples
    --------
    >>> env = {'DEMO_SERVICE__ENABLED': 'true', 'DEMO_SERVICE__RETRIES': '3', 'OTHER': 'x'}
    >>> config = EnvironmentConfiguration('DEMO', environ=env)
    >>> config.get('service.retries'), config.get('service.enabled'), 'other' in config
    (3, True, False)
    """

    def __init__(self, prefix: str = "", *, environ: Mapping[str, str] | None = None) -> None:
        super().__init__(list_delimiter=None)
        self.prefix = f"{prefix}_" if prefix and not prefix.endswith("_") else prefix
        self._environ = environ if environ is not None else os.environ
        self._snapshot = self._capture()
        self._replace_root(self._tree(self._snapshot))

    def reload_if_changed(self) -> bool:
        """Re-read the environment; return whether the captured variables changed."""

        snapshot = self._capture()
        if snapshot == self._snapshot:
            return False
        self.fire_event(EventType.RELOAD, None, self.prefix, before_update=True)
        self._snapshot = snapshot
        self._replace_root(self._tree(snapshot))
        self.fire_event(EventType.RELOAD, None, self.prefix)
        log_info("source_reloaded", source="env", path=None, prefix=self.prefix)
        return True

    def _capture(self) -> dict[str, str]:
        return {key: value for key, value in self._environ.items() if self._strip(key)}

    def _strip(self, key: str) -> str:
        if self.prefix and not key.startswith(self.prefix):
            return ""
        return key[len(self.prefix) :] if self.prefix else key

    def _tree(self, snapshot: Mapping[str, str]) -> Node:
        collected: dict[str, object] = {}
        for key, value in sorted(snapshot.items()):
            assign_nested(collected, self._strip(key), _coerce(value))
        log_debug("env_variables_loaded", source="env", path=None, keys=sorted(collected))
        return Node.from_mapping(ROOT_NAME, collected)


class EnvironmentSourceProvider:
    """Create :class:`EnvironmentConfiguration` instances from declarations.

    Declaration parameters: ``prefix`` or ``slug`` (turned into a prefix with
    :func:`default_env_prefix`).
    """

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self.environ = environ

    def __call__(self, declaration: SourceDeclaration) -> EnvironmentConfiguration:
        prefix = declaration.parameter("prefix")
        if prefix is None and declaration.parameter("slug"):
            prefix = default_env_prefix(str(declaration.parameter("slug")))
        return EnvironmentConfiguration(str(prefix or ""), environ=self.environ)


def assign_nested(target: dict[str, object], key: str, value: object) -> None:
    """Assign ``value`` inside ``target`` using ``__`` as a nesting delimiter.

    A variable that addresses both a scalar and a nested mapping keeps the
    mapping and stores the scalar as ``#text``.

    Examples
    --------
    >>> data: dict[str, object] = {}
    >>> assign_nested(data, 'SERVICE__TIMEOUT', 5)
    >>> assign_nested(data, 'SERVICE', 'on')
    >>> data
    {'service': {'timeout': 5, '#text': 'on'}}
    """

    parts = [part for part in key.split("__") if part]
    if not parts:
        return
    cursor = target
    for part in parts[:-1]:
        cursor = _ensure_child_mapping(cursor, part)
    final_key = _resolve_key(cursor, parts[-1])
    existing = cursor.get(final_key)
    if isinstance(existing, dict):
        existing["#text"] = value
    else:
        cursor[final_key] = value


def _resolve_key(mapping: dict[str, object], key: str) -> str:
    """Return an existing key matching ``key`` case-insensitively or a new lowercase key."""

    lower = key.lower()
    for existing in mapping:
        if existing.lower() == lower:
            return existing
    return lower


def _ensure_child_mapping(mapping: dict[str, object], key: str) -> dict[str, object]:
    resolved = _resolve_key(mapping, key)
    child = mapping.get(resolved)
    if isinstance(child, dict):
        return child
    nested: dict[str, object] = {}
    if resolved in mapping:
        nested["#text"] = child
    mapping[resolved] = nested
    return nested


def _coerce(value: str) -> object:
    """Coerce textual environment values to Python primitives where possible.

    Examples
    --------
    >>> _coerce('true'), _coerce('10'), _coerce('3.5'), _coerce('hello'), _coerce('None')
    (True, 10, 3.5, 'hello', None)
    """

    lowered = value.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    if lowered in {"null", "none"}:
        return None
    try:
        if value.isdigit() or (value.startswith("-") and value[1:].isdigit()):
            return int(value)
        return float(value)
    except ValueError:
        return value
