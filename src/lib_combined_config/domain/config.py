"""Domain-level hierarchical configuration.

Purpose
-------
Anchor the mutable in-memory configuration that owns a node tree, answers
hierarchical key queries, and notifies listeners about changes. Every concrete
source (files, environment variables) and the combined view build on this
class. The module belongs to the domain layer and performs no I/O.

Contents
--------
* :data:`ROOT_NAME` – name given to freshly created root nodes.
* :class:`HierarchicalConfiguration` – query surface (``get``, ``get_list``,
  ``contains_key``, ``is_empty``, ``keys``), mutation surface
  (``add_property``, ``set_property``, ``clear_property``, ``clear_tree``,
  ``clear``), change listeners, and deep cloning.
* :func:`split_delimited` – list-delimiter parsing used by ``add_property``.

System Role
-----------
Implements the source configuration boundary consumed by the combined view:
``root_node`` exposes the current tree snapshot, ``add_change_listener`` /
``remove_change_listener`` wire change notifications, and ``clone`` produces an
independent deep copy.
"""

from __future__ import annotations

import copy
import json
from typing import Any, TypeVar, overload

from .events import EventSource, EventType
from .keys import QueryHit, fetch, iter_keys, prepare_add
from .node import Node

ROOT_NAME = "configuration"

T = TypeVar("T")


class HierarchicalConfiguration(EventSource):
    """In-memory configuration backed by a :class:`Node` tree.

    Why
    ----
    The merge engine needs a uniform source contract; keeping the tree, the
    query surface, and the change notifications in one class lets files,
    environment snapshots, and combined views share behaviour.

    What
    ----
    Resolves keys with :mod:`lib_combined_config.domain.keys`, splits string
    values on ``list_delimiter`` when properties are added, and fires each
    mutation twice (``before_update=True`` then ``False``).

    Parameters
    ----------
    root:
        Optional initial tree. A fresh root named :data:`ROOT_NAME` is created
        when omitted.
    list_delimiter:
        Character used to split string values into several properties. ``None``
        disables splitting.

    Examples
    --------
    >>> config = HierarchicalConfiguration()
    >>> config.add_property("db.host", "alpha")
    >>> config.add_property("db.replicas", "r1, r2")
    >>> config.get("db.host")
    'alpha'
    >>> config.get_list("db.replicas")
    ['r1', 'r2']
    >>> config.to_json()
    '{"db":{"host":"alpha","replicas":["r1","r2"]}}'
    """

    def __init__(self, root: Node | None = None, *, list_delimiter: str | None = ",") -> None:
        super().__init__()
        self._root = root if root is not None else Node(ROOT_NAME)
        self.list_delimiter = list_delimiter

    @property
    def root_node(self) -> Node:
        """Return the current tree snapshot."""

        return self._root

    # -- queries ---------------------------------------------------------

    @overload
    def get(self, key: str, *, default: T) -> T: ...

    @overload
    def get(self, key: str, *, default: None = ...) -> Any | None: ...

    def get(self, key: str, *, default: Any = None) -> Any:
        """Resolve *key* and return its value.

        Returns
        -------
        Any
            The single value, a list when several nodes carry values, or
            ``default`` when nothing resolves.

        Examples
        --------
        >>> config = HierarchicalConfiguration(Node.from_mapping(ROOT_NAME, {"port": [1, 2]}))
        >>> config.get("port"), config.get("missing", default=0)
        ([1, 2], 0)
        """

        values = self._values(key)
        if not values:
            return default
        return values[0] if len(values) == 1 else values

    def get_list(self, key: str, default: list[Any] | None = None) -> list[Any]:
        """Return every value stored under *key* (``default`` or ``[]`` when missing)."""

        values = self._values(key)
        if values:
            return values
        return list(default) if default is not None else []

    def contains_key(self, key: str) -> bool:
        """Return ``True`` when *key* resolves to at least one value."""

        return bool(self._values(key))

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.contains_key(key)

    def is_empty(self) -> bool:
        """Return ``True`` when the tree holds neither values nor attributes."""

        return next(iter_keys(self.root_node), None) is None

    def keys(self) -> list[str]:
        """Return the keys of all values and attributes in document order."""

        return list(iter_keys(self.root_node))

    def fetch(self, key: str) -> list[QueryHit]:
        """Return the raw query hits for *key* (nodes and attributes)."""

        return fetch(self.root_node, key)

    def as_dict(self) -> dict[str, Any]:
        """Return a fresh nested ``dict`` rendering of the tree.

        Examples
        --------
        >>> config = HierarchicalConfiguration()
        >>> config.add_property("service.timeout", 5)
        >>> exported = config.as_dict()
        >>> exported["service"]["timeout"] = 10
        >>> config.get("service.timeout")
        5
        """

        data = self.root_node.to_python()
        return data if isinstance(data, dict) else {}

    def to_json(self, *, indent: int | None = None) -> str:
        """Serialise the configuration to JSON using :meth:`as_dict` under the hood."""

        return json.dumps(self.as_dict(), indent=indent, separators=(",", ":"), ensure_ascii=False, default=str)

    # -- mutation --------------------------------------------------------

    def add_property(self, key: str, value: Any) -> None:
        """Append *value* under *key*, creating missing path nodes.

        String values are split on :attr:`list_delimiter` (``\\,`` escapes the
        delimiter); lists and tuples add one node per item.
        """

        self.fire_event(EventType.ADD_PROPERTY, key, value, before_update=True)
        root = self._mutable_root()
        for item in self._split_values(value):
            prepare_add(root, key).apply(item)
        self.fire_event(EventType.ADD_PROPERTY, key, value)

    def set_property(self, key: str, value: Any) -> None:
        """Replace the values stored under *key* with *value*.

        Existing nodes are reused in order, surplus values are appended and
        surplus nodes are cleared. ``None`` clears the key.
        """

        self.fire_event(EventType.SET_PROPERTY, key, value, before_update=True)
        root = self._mutable_root()
        values = [] if value is None else self._split_values(value)
        hits = fetch(root, key)
        for hit, item in zip(hits, values):
            if hit.attribute is None:
                hit.node.value = item
            else:
                hit.node.set_attribute(hit.attribute, item)
        for item in values[len(hits) :]:
            prepare_add(root, key).apply(item)
        for hit in hits[len(values) :]:
            _clear_hit(hit)
        self.fire_event(EventType.SET_PROPERTY, key, value)

    def clear_property(self, key: str) -> None:
        """Remove the values stored under *key*, pruning nodes left empty."""

        self.fire_event(EventType.CLEAR_PROPERTY, key, None, before_update=True)
        for hit in fetch(self._mutable_root(), key):
            _clear_hit(hit)
        self.fire_event(EventType.CLEAR_PROPERTY, key, None)

    def clear_tree(self, key: str) -> None:
        """Remove the complete subtrees addressed by *key*."""

        self.fire_event(EventType.CLEAR_PROPERTY, key, None, before_update=True)
        for hit in fetch(self._mutable_root(), key):
            if hit.attribute is not None:
                hit.node.remove_attribute(hit.attribute)
            elif hit.node.parent is not None:
                hit.node.parent.remove_child(hit.node)
        self.fire_event(EventType.CLEAR_PROPERTY, key, None)

    def clear(self) -> None:
        """Remove every property."""

        self.fire_event(EventType.CLEAR, None, None, before_update=True)
        self._clear_contents()
        self.fire_event(EventType.CLEAR, None, None)

    def clone(self) -> HierarchicalConfiguration:
        """Return an independent deep copy without any change listeners.

        Examples
        --------
        >>> original = HierarchicalConfiguration()
        >>> original.add_property("a", 1)
        >>> duplicate = original.clone()
        >>> duplicate.set_property("a", 2)
        >>> original.get("a"), duplicate.get("a")
        (1, 2)
        """

        duplicate = copy.copy(self)
        EventSource.__init__(duplicate)
        duplicate._root = self._root.copy()
        return duplicate

    # -- hooks -----------------------------------------------------------

    def _mutable_root(self) -> Node:
        """Return the tree that mutations apply to."""

        return self._root

    def _replace_root(self, root: Node) -> None:
        self._root = root

    def _clear_contents(self) -> None:
        self._root = Node(self._root.name)

    def _values(self, key: str) -> list[Any]:
        return [hit.value for hit in fetch(self.root_node, key) if hit.value is not None]

    def _split_values(self, value: Any) -> list[Any]:
        if isinstance(value, str) and self.list_delimiter:
            return split_delimited(value, self.list_delimiter)
        if isinstance(value, (list, tuple)):
            items: list[Any] = []
            for item in value:
                items.extend(self._split_values(item))
            return items
        return [value]


def split_delimited(text: str, delimiter: str = ",") -> list[str]:
    """Split *text* on *delimiter*, honouring backslash escapes.

    Pieces are stripped of surrounding whitespace when a split happened.

    Examples
    --------
    >>> split_delimited("1,2, 3")
    ['1', '2', '3']
    >>> split_delimited("3\\\\,1415")
    ['3,1415']
    """

    pieces: list[str] = []
    buffer: list[str] = []
    escaped = False
    for char in text:
        if escaped:
            if char != delimiter:
                buffer.append("\\")
            buffer.append(char)
            escaped = False
        elif char == "\\":
            escaped = True
        elif char == delimiter:
            pieces.append("".join(buffer))
            buffer = []
        else:
            buffer.append(char)
    if escaped:
        buffer.append("\\")
    pieces.append("".join(buffer))
    if len(pieces) == 1:
        return pieces
    return [piece.strip() for piece in pieces]


def _clear_hit(hit: QueryHit) -> None:
    """Drop the value or attribute behind *hit* and prune emptied ancestors."""

    if hit.attribute is not None:
        hit.node.remove_attribute(hit.attribute)
        return
    hit.node.value = None
    node = hit.node
    while node.parent is not None and not node.is_defined():
        parent = node.parent
        parent.remove_child(node)
        node = parent
