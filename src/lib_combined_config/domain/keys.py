"""Hierarchical key syntax and path lookup.

Purpose
-------
Translate dot-delimited configuration keys into node lookups. Every
configuration (single sources and combined views alike) resolves keys through
this module so query behaviour stays identical everywhere.

Syntax
------
* Segments are separated by ``.``; a literal dot inside a segment is written
  as ``..`` (``"This..is.a"`` addresses segment ``"This.is"`` then ``"a"``).
* A segment may end with a zero-based index, ``server(1)``, selecting one of
  several same-named siblings.
* A trailing ``[@name]`` selects an attribute of the nodes matched so far.

Contents
--------
* :class:`KeyPart` / :class:`ParsedKey` – parsed representation of a key.
* :class:`QueryHit` – one resolved node or attribute.
* :class:`NodeAddData` – where a new property has to be attached.
* :func:`split_key`, :func:`escape_segment`, :func:`join_key`, :func:`fetch`,
  :func:`prepare_add`, :func:`iter_keys`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterator

from .errors import InvalidArgumentError
from .node import Node

_INDEX_PATTERN = re.compile(r"^(?P<name>.*)\((?P<index>\d+)\)$")
_ATTRIBUTE_OPEN = "[@"


@dataclass(frozen=True)
class KeyPart:
    """One path segment, optionally restricted to a single sibling index."""

    name: str
    index: int | None = None


@dataclass(frozen=True)
class ParsedKey:
    """Parsed key: node path segments plus an optional trailing attribute."""

    parts: tuple[KeyPart, ...]
    attribute: str | None = None


@dataclass(frozen=True)
class QueryHit:
    """A node (or one of its attributes) matched by :func:`fetch`."""

    node: Node
    attribute: str | None = None

    @property
    def value(self) -> Any:
        if self.attribute is None:
            return self.node.value
        return self.node.attributes.get(self.attribute)

    @property
    def origin(self) -> object | None:
        if self.attribute is None:
            return self.node.origin
        return self.node.attribute_origin(self.attribute)


@dataclass
class NodeAddData:
    """Describe how a new property is attached to an existing tree.

    Attributes
    ----------
    parent:
        Deepest existing node on the key's path.
    new_node_name:
        Name of the node (or attribute) to create.
    attribute:
        ``True`` when the key addresses an attribute.
    path_nodes:
        Names of intermediate nodes that do not exist yet, outermost first.
    """

    parent: Node
    new_node_name: str
    attribute: bool = False
    path_nodes: list[str] = field(default_factory=list)

    def add_path_node(self, name: str) -> None:
        self.path_nodes.append(name)

    def apply(self, value: Any) -> Node:
        """Create the missing path nodes and attach *value*; return the owning node."""

        target = self.parent
        for name in self.path_nodes:
            target = target.add_child(Node(name))
        if self.attribute:
            target.set_attribute(self.new_node_name, value)
            return target
        return target.add_child(Node(self.new_node_name, value))


def split_key(key: str) -> ParsedKey:
    """Parse *key* into segments and an optional attribute selector.

    Raises
    ------
    InvalidArgumentError
        When *key* is ``None`` or carries a malformed attribute selector.

    Examples
    --------
    >>> split_key("This..is.a(1)[@flag]")
    ParsedKey(parts=(KeyPart(name='This.is', index=None), KeyPart(name='a', index=1)), attribute='flag')
    """

    if key is None:
        raise InvalidArgumentError("Key must not be None")
    path, attribute = _split_attribute(key)
    parts = tuple(_parse_segment(segment) for segment in _split_segments(path) if segment)
    return ParsedKey(parts, attribute)


def escape_segment(name: str) -> str:
    """Escape literal dots so *name* survives :func:`split_key`.

    Examples
    --------
    >>> escape_segment("www.example.com")
    'www..example..com'
    """

    return name.replace(".", "..")


def join_key(*segments: str) -> str:
    """Join raw segment names into a key, escaping dots and skipping empties.

    Examples
    --------
    >>> join_key("hosts", "www.example.com", "port")
    'hosts.www..example..com.port'
    """

    return ".".join(escape_segment(segment) for segment in segments if segment)


def fetch(root: Node, key: str) -> list[QueryHit]:
    """Return every node or attribute below *root* addressed by *key*.

    Examples
    --------
    >>> root = Node.from_mapping("root", {"db": [{"host": "a"}, {"host": "b"}]})
    >>> [hit.value for hit in fetch(root, "db.host")]
    ['a', 'b']
    >>> [hit.value for hit in fetch(root, "db(1).host")]
    ['b']
    """

    parsed = split_key(key)
    if not parsed.parts and parsed.attribute is None:
        return []
    nodes = [root]
    for part in parsed.parts:
        nodes = list(_match(nodes, part))
        if not nodes:
            return []
    if parsed.attribute is None:
        return [QueryHit(node) for node in nodes]
    return [QueryHit(node, parsed.attribute) for node in nodes if parsed.attribute in node.attributes]


def prepare_add(root: Node, key: str) -> NodeAddData:
    """Work out where a property addressed by *key* has to be attached.

    Existing path segments are followed (the last sibling wins when no index
    is given); segments that do not exist yet are reported as path nodes.

    Examples
    --------
    >>> root = Node.from_mapping("root", {"db": {"host": "a"}})
    >>> data = prepare_add(root, "db.pool.size")
    >>> data.parent.name, data.path_nodes, data.new_node_name
    ('db', ['pool'], 'size')
    """

    parsed = split_key(key)
    segments = list(parsed.parts)
    if parsed.attribute is not None:
        new_name = parsed.attribute
    elif segments:
        new_name = segments.pop().name
    else:
        raise InvalidArgumentError("Cannot add a property for an empty key")

    current = root
    consumed = 0
    for part in segments:
        candidates = current.children_named(part.name)
        if part.index is not None:
            if part.index >= len(candidates):
                break
            current = candidates[part.index]
        elif candidates:
            current = candidates[-1]
        else:
            break
        consumed += 1

    data = NodeAddData(current, new_name, attribute=parsed.attribute is not None)
    for part in segments[consumed:]:
        data.add_path_node(part.name)
    return data


def iter_keys(root: Node) -> Iterator[str]:
    """Yield the key of every valued node and every attribute below *root*.

    Keys appear in document order and without duplicates.

    Examples
    --------
    >>> root = Node.from_mapping("root", {"db": {"host": "a", "port": 1}, "debug": True})
    >>> list(iter_keys(root))
    ['db.host', 'db.port', 'debug']
    """

    seen: dict[str, None] = {}
    _collect_keys(root, "", seen)
    return iter(seen)


def _collect_keys(node: Node, prefix: str, seen: dict[str, None]) -> None:
    for name in node.attributes:
        seen.setdefault(f"{prefix}[@{name}]")
    for child in node.children:
        key = f"{prefix}.{escape_segment(child.name)}" if prefix else escape_segment(child.name)
        if child.value is not None:
            seen.setdefault(key)
        _collect_keys(child, key, seen)


def _match(nodes: list[Node], part: KeyPart) -> Iterator[Node]:
    for node in nodes:
        candidates = node.children_named(part.name)
        if part.index is None:
            yield from candidates
        elif part.index < len(candidates):
            yield candidates[part.index]


def _split_attribute(key: str) -> tuple[str, str | None]:
    """Separate a trailing ``[@name]`` selector from the node path."""

    start = key.rfind(_ATTRIBUTE_OPEN)
    if start < 0:
        return key, None
    if not key.endswith("]"):
        raise InvalidArgumentError(f"Attribute selector must terminate key {key!r}")
    name = key[start + len(_ATTRIBUTE_OPEN) : -1]
    if not name:
        raise InvalidArgumentError(f"Empty attribute name in key {key!r}")
    if _ATTRIBUTE_OPEN in key[:start]:
        raise InvalidArgumentError(f"Only one attribute selector is allowed in key {key!r}")
    return key[:start], name


def _split_segments(path: str) -> list[str]:
    """Split *path* on single dots while folding ``..`` into a literal dot."""

    segments: list[str] = []
    buffer: list[str] = []
    position = 0
    while position < len(path):
        char = path[position]
        if char == ".":
            if path.startswith("..", position):
                buffer.append(".")
                position += 2
                continue
            segments.append("".join(buffer))
            buffer = []
        else:
            buffer.append(char)
        position += 1
    segments.append("".join(buffer))
    return segments


def _parse_segment(segment: str) -> KeyPart:
    match = _INDEX_PATTERN.match(segment)
    if match is None or not match.group("name"):
        return KeyPart(segment)
    return KeyPart(match.group("name"), int(match.group("index")))
