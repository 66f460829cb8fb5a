"""Node combiners: pure merge strategies over two node trees.

Purpose
-------
Combine two hierarchical trees into a third according to one precedence
policy. Combiners are free of I/O, never mutate their inputs, and allocate
every node of the result so the same source tree can feed several combined
views (or clones) without aliasing.

Contents
--------
* :class:`NodeCombiner` – base class owning the list-node set and the change
  subscription used by combined views.
* :class:`OverrideCombiner` – properties of the first tree hide same-path
  properties of the second.
* :class:`UnionCombiner` – every property of both trees survives.

System Role
-----------
:class:`lib_combined_config.application.combined.CombinedConfiguration` folds
its registered trees pairwise through one combiner, in registration order.
"""

from __future__ import annotations

import inspect
import weakref
from collections import Counter
from typing import Callable

from ..domain.errors import MergeFailureError
from ..domain.node import Node

CombinerListener = Callable[["NodeCombiner"], None]
ListenerRef = Callable[[], "CombinerListener | None"]


class NodeCombiner:
    """Base class for merge strategies.

    Why
    ----
    Both strategies share the list-node registry: node names whose
    occurrences are preserved as distinct siblings instead of being unified
    with same-named nodes of the other tree.

    What
    ----
    Keeps one list-node set per instance and notifies subscribers whenever the
    set actually changes so combined views can invalidate their cache.
    Bound-method listeners are held weakly, so a discarded view that shared
    this combiner is dropped from the subscribers. Subclasses implement
    :meth:`_combine`.
    """

    def __init__(self) -> None:
        self._list_nodes: set[str] = set()
        self._listeners: list[ListenerRef] = []

    @property
    def list_nodes(self) -> frozenset[str]:
        """Return the names currently treated as list nodes."""

        return frozenset(self._list_nodes)

    def add_list_node(self, name: str) -> None:
        """Treat nodes called *name* as list nodes (idempotent).

        Examples
        --------
        >>> combiner = UnionCombiner()
        >>> combiner.add_list_node("server")
        >>> combiner.add_list_node("server")
        >>> sorted(combiner.list_nodes)
        ['server']
        """

        if name in self._list_nodes:
            return
        self._list_nodes.add(name)
        self._notify()

    def remove_list_node(self, name: str) -> bool:
        """Stop treating *name* as a list node; return whether it was registered."""

        if name not in self._list_nodes:
            return False
        self._list_nodes.discard(name)
        self._notify()
        return True

    def is_list_node(self, node: Node | str) -> bool:
        name = node.name if isinstance(node, Node) else node
        return name in self._list_nodes

    @property
    def listeners(self) -> list[CombinerListener]:
        """Return the live subscribers in subscription order."""

        return [listener for listener in (ref() for ref in self._listeners) if listener is not None]

    def add_listener(self, listener: CombinerListener) -> None:
        self._prune()
        if listener not in self.listeners:
            self._listeners.append(_reference(listener))

    def remove_listener(self, listener: CombinerListener) -> bool:
        for ref in self._listeners:
            if ref() == listener:
                self._listeners.remove(ref)
                return True
        return False

    def combine(self, tree_a: Node, tree_b: Node) -> Node:
        """Return a new tree combining *tree_a* and *tree_b*.

        Raises
        ------
        MergeFailureError
            When either argument is not a :class:`Node`.
        """

        _ensure_node(tree_a, "first")
        _ensure_node(tree_b, "second")
        return self._combine(tree_a, tree_b)

    def _combine(self, tree_a: Node, tree_b: Node) -> Node:
        raise NotImplementedError

    def _notify(self) -> None:
        self._prune()
        for listener in self.listeners:
            listener(self)

    def _prune(self) -> None:
        self._listeners = [ref for ref in self._listeners if ref() is not None]


class OverrideCombiner(NodeCombiner):
    """Combiner in which the first tree takes precedence.

    Why
    ----
    Models "override" sources: a property defined by an earlier source hides
    the same property of every later source, while later sources still fill
    gaps.

    What
    ----
    Walks the children of *tree_a* in order. A child is recursively combined
    with its counterpart only when it is not a list node and the name occurs
    exactly once on each side; otherwise *tree_a*'s children are copied as-is
    and shadow *tree_b*'s. Children whose name does not occur in *tree_a* are
    appended from *tree_b*. Attributes and the node value of *tree_a* win;
    *tree_b* fills what is missing.

    Examples
    --------
    >>> first = Node.from_mapping("root", {"db": {"host": "alpha"}})
    >>> second = Node.from_mapping("root", {"db": {"host": "beta", "port": 5432}})
    >>> OverrideCombiner().combine(first, second).to_python()
    {'db': {'host': 'alpha', 'port': 5432}}
    """

    def _combine(self, tree_a: Node, tree_b: Node) -> Node:
        result = _combined_shell(tree_a, tree_b)
        counts_a = Counter(child.name for child in tree_a.children)
        counts_b = Counter(child.name for child in tree_b.children)

        for child in tree_a.children:
            if not self.is_list_node(child) and counts_a[child.name] == 1 and counts_b[child.name] == 1:
                result.add_child(self._combine(child, tree_b.children_named(child.name)[0]))
            else:
                result.add_child(child.copy())

        for child in tree_b.children:
            if child.name not in counts_a:
                result.add_child(child.copy())
        return result


class UnionCombiner(NodeCombiner):
    """Combiner that keeps every property of both trees.

    Why
    ----
    Models "additional" sources whose content is concatenated rather than
    shadowed.

    What
    ----
    Starts from a copy of *tree_a*. A child name occurring exactly once on
    each side is combined recursively in place, unless it is a list node or
    both occurrences carry a value (merging them would drop one value).
    Every other child of *tree_b* is appended as an additional sibling.
    Attributes of *tree_b* fill gaps; conflicting attribute names keep
    *tree_a*'s value.

    Examples
    --------
    >>> combiner = UnionCombiner()
    >>> combiner.add_list_node("server")
    >>> first = Node.from_mapping("root", {"server": [1, 2]})
    >>> second = Node.from_mapping("root", {"server": 3})
    >>> combiner.combine(first, second).to_python()
    {'server': [1, 2, 3]}
    """

    def _combine(self, tree_a: Node, tree_b: Node) -> Node:
        result = _combined_shell(tree_a, tree_b)
        counts_a = Counter(child.name for child in tree_a.children)
        counts_b = Counter(child.name for child in tree_b.children)

        merged: set[str] = set()
        for child in tree_a.children:
            partner = self._partner(child, tree_b, counts_a, counts_b)
            if partner is None:
                result.add_child(child.copy())
            else:
                result.add_child(self._combine(child, partner))
                merged.add(child.name)

        for child in tree_b.children:
            if child.name not in merged:
                result.add_child(child.copy())
        return result

    def _partner(self, child: Node, tree_b: Node, counts_a: Counter[str], counts_b: Counter[str]) -> Node | None:
        """Return the node of *tree_b* that *child* merges with, if any."""

        if self.is_list_node(child) or counts_a[child.name] != 1 or counts_b[child.name] != 1:
            return None
        partner = tree_b.children_named(child.name)[0]
        if child.value is not None and partner.value is not None:
            return None
        return partner


def _combined_shell(tree_a: Node, tree_b: Node) -> Node:
    """Copy *tree_a* without children, completing value and attributes from *tree_b*."""

    result = tree_a.copy(children=False)
    if result.value is None and tree_b.value is not None:
        result.value = tree_b.value
        result.origin = tree_b.origin
    for name in tree_b.attributes:
        if name not in result.attributes:
            result.copy_attribute(tree_b, name)
    return result


def _ensure_node(tree: object, position: str) -> None:
    if not isinstance(tree, Node):
        raise MergeFailureError(f"The {position} tree passed to a combiner is not a node: {tree!r}")


def _reference(listener: CombinerListener) -> ListenerRef:
    if inspect.ismethod(listener):
        return weakref.WeakMethod(listener)
    return lambda: listener
