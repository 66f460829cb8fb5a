"""Hierarchical node tree shared by every configuration.

Purpose
-------
Model one element of a hierarchical configuration: a named node with an
optional opaque value, ordered children (same-named siblings are meaningful and
represent repeated elements), a separate attribute namespace, and a parent
back-reference used only for navigation.

Contents
--------
* :class:`Node` – the tree element plus conversion helpers
  (:meth:`Node.from_mapping` / :meth:`Node.to_python`).

System Role
-----------
Source configurations own node trees; combiners read two trees and allocate a
third; the combined view tags nodes with their origin so resolved values can be
attributed back to the source that contributed them. Ownership is strictly
top-down: a subtree is owned by its root and no node is shared by two trees.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Iterable

from .errors import InvalidArgumentError

ATTRIBUTE_PREFIX = "@"
TEXT_KEY = "#text"


class Node:
    """One element of a hierarchical configuration tree.

    Why
    ----
    Parsed formats (TOML, JSON, YAML, environment variables) all reduce to the
    same tree shape so the merge engine can stay format-agnostic.

    What
    ----
    Stores ``name``, ``value``, ordered children, attributes, and a parent
    reference. Every node also carries an ``origin`` tag (``None`` unless a
    combined view stamped the tree) and optional per-attribute origin tags.

    Examples
    --------
    >>> root = Node("root")
    >>> db = root.add_child(Node("db"))
    >>> _ = db.add_child(Node("host", "alpha"))
    >>> [child.value for child in db.children_named("host")]
    ['alpha']
    >>> db.parent is root
    True
    """

    __slots__ = ("name", "value", "parent", "origin", "_children", "_attributes", "_attribute_origins")

    def __init__(self, name: str, value: Any = None, attributes: Mapping[str, Any] | None = None) -> None:
        self.name = name
        self.value = value
        self.parent: Node | None = None
        self.origin: object | None = None
        self._children: list[Node] = []
        self._attributes: dict[str, Any] = dict(attributes or {})
        self._attribute_origins: dict[str, object | None] = {}

    def __repr__(self) -> str:
        return f"Node({self.name!r}, value={self.value!r}, children={len(self._children)})"

    @property
    def children(self) -> tuple[Node, ...]:
        """Return the children in document order."""

        return tuple(self._children)

    @property
    def attributes(self) -> Mapping[str, Any]:
        """Return a read-only view of the attribute namespace."""

        return MappingProxyType(self._attributes)

    def add_child(self, node: Node) -> Node:
        """Attach the detached *node* as the last child and return it.

        Raises
        ------
        InvalidArgumentError
            When *node* already belongs to a tree or is an ancestor of this
            node (which would create a cycle).
        """

        if not isinstance(node, Node):
            raise InvalidArgumentError(f"Only nodes can be attached as children, got {type(node).__name__}")
        if node.parent is not None:
            raise InvalidArgumentError(f"Node {node.name!r} is already attached to {node.parent.name!r}")
        if any(ancestor is node for ancestor in self._lineage()):
            raise InvalidArgumentError(f"Attaching {node.name!r} below {self.name!r} would create a cycle")
        node.parent = self
        self._children.append(node)
        return node

    def remove_child(self, node: Node) -> bool:
        """Detach *node* when it is a direct child; return whether it was found."""

        for position, child in enumerate(self._children):
            if child is node:
                del self._children[position]
                node.parent = None
                return True
        return False

    def clear_children(self) -> None:
        for child in self._children:
            child.parent = None
        self._children.clear()

    def children_named(self, name: str) -> list[Node]:
        """Return all direct children called *name*, preserving order."""

        return [child for child in self._children if child.name == name]

    def child_names(self) -> list[str]:
        """Return distinct child names in order of first appearance.

        Examples
        --------
        >>> root = Node("root")
        >>> for name in ("b", "a", "b"):
        ...     _ = root.add_child(Node(name))
        >>> root.child_names()
        ['b', 'a']
        """

        return list(dict.fromkeys(child.name for child in self._children))

    def set_attribute(self, name: str, value: Any) -> None:
        self._attributes[name] = value
        self._attribute_origins.pop(name, None)

    def remove_attribute(self, name: str) -> bool:
        self._attribute_origins.pop(name, None)
        return self._attributes.pop(name, _MISSING) is not _MISSING

    def copy_attribute(self, other: Node, name: str) -> None:
        """Copy attribute *name* from *other* together with its origin tag."""

        self._attributes[name] = other._attributes[name]
        self._attribute_origins[name] = other.attribute_origin(name)

    def attribute_origin(self, name: str) -> object | None:
        """Return the origin tag of attribute *name* (defaults to the node's tag)."""

        return self._attribute_origins.get(name, self.origin)

    def is_defined(self) -> bool:
        """Return ``True`` when the node carries a value, children, or attributes."""

        return self.value is not None or bool(self._children) or bool(self._attributes)

    def copy(self, *, children: bool = True) -> Node:
        """Return a detached copy keeping values, attributes, and origin tags.

        Why
        ----
        Combiners never mutate their inputs; they allocate fresh nodes so the
        same source tree can feed several combined views safely.

        Parameters
        ----------
        children:
            When ``False`` only the node itself is copied (used when a combiner
            rebuilds the child list).
        """

        clone = Node(self.name, self.value, self._attributes)
        clone.origin = self.origin
        clone._attribute_origins = {name: self.attribute_origin(name) for name in self._attributes}
        if children:
            for child in self._children:
                clone.add_child(child.copy())
        return clone

    def stamp(self, origin: object) -> Node:
        """Return a deep copy whose nodes and attributes are tagged with *origin*."""

        clone = Node(self.name, self.value, self._attributes)
        clone.origin = origin
        for child in self._children:
            clone.add_child(child.stamp(origin))
        return clone

    def to_python(self) -> Any:
        """Convert the subtree into plain Python containers.

        Leaf nodes become their value, repeated siblings become lists,
        attributes render as ``@name`` keys and a value carried by a structural
        node renders as ``#text``.

        Examples
        --------
        >>> root = Node.from_mapping("root", {"db": {"host": "alpha", "ports": [1, 2]}})
        >>> root.to_python()
        {'db': {'host': 'alpha', 'ports': [1, 2]}}
        """

        if not self._children and not self._attributes:
            return self.value
        result: dict[str, Any] = {ATTRIBUTE_PREFIX + name: value for name, value in self._attributes.items()}
        if self.value is not None:
            result[TEXT_KEY] = self.value
        for name in self.child_names():
            items = [child.to_python() for child in self.children_named(name)]
            result[name] = items[0] if len(items) == 1 else items
        return result

    @classmethod
    def from_mapping(cls, name: str, mapping: Mapping[str, Any]) -> Node:
        """Build a tree from a parsed mapping.

        Mappings become child nodes, lists become repeated same-named siblings,
        and everything else becomes a leaf value. Keys written the way
        :meth:`to_python` renders them (``@name`` and ``#text``) become
        attributes and the node value.

        Examples
        --------
        >>> root = Node.from_mapping("root", {"server": [{"port": 1}, {"port": 2}]})
        >>> len(root.children_named("server"))
        2
        >>> tagged = Node.from_mapping("root", {"@version": 2, "#text": "x"})
        >>> dict(tagged.attributes), tagged.value
        ({'version': 2}, 'x')
        """

        root = cls(name)
        for key, value in mapping.items():
            key = str(key)
            if key == TEXT_KEY:
                root.value = value
            elif key.startswith(ATTRIBUTE_PREFIX) and len(key) > 1:
                root.set_attribute(key[1:], value)
            else:
                _append_value(root, key, value)
        return root

    def _lineage(self) -> Iterable[Node]:
        current: Node | None = self
        while current is not None:
            yield current
            current = current.parent


_MISSING = object()


def _append_value(parent: Node, name: str, value: Any) -> None:
    """Append *value* below *parent* following the :meth:`Node.from_mapping` rules."""

    if isinstance(value, Mapping):
        parent.add_child(Node.from_mapping(name, value))
    elif isinstance(value, (list, tuple)):
        for item in value:
            _append_value(parent, name, item)
    else:
        parent.add_child(Node(name, value))
