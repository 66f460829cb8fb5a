"""Combined view over an ordered collection of source configurations.

Purpose
-------
Expose one hierarchical read surface over N registered sources. The view owns
the registrations (source, optional unique name, optional ``at`` prefix) and a
:class:`~lib_combined_config.application.combiners.NodeCombiner`; it lazily
folds the source trees into one merged tree, caches it, and discards the cache
whenever anything it depends on changes.

Contents
--------
* :class:`Registration` – one registered source plus its name and prefix.
* :class:`CombinedConfiguration` – the combined view.

System Role
-----------
Sits in the application layer between the source adapters and consumers. The
composition root and the declaration builder create instances; callers query
them like any other :class:`~lib_combined_config.domain.config.HierarchicalConfiguration`.

State Machine
-------------
*Valid* (merged tree reflects registrations, combiner, and list nodes) and
*Invalidated* (stale). Mutations only flip the invalidation flag; the rebuild
happens inside the next read. A rebuild that raises leaves the view
Invalidated and publishes nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..domain.config import ROOT_NAME, HierarchicalConfiguration
from ..domain.errors import AmbiguousSourceError, DuplicateNameError, InvalidArgumentError, MergeFailureError
from ..domain.events import ConfigurationEvent, EventType
from ..domain.keys import fetch, split_key
from ..domain.node import Node
from ..observability import log_debug, log_error, log_info, make_event, rebuild_event, registration_event
from .combiners import NodeCombiner, UnionCombiner
from .ports import ReloadableSource, SourceConfiguration


@dataclass(eq=False)
class Registration:
    """Associate a source with an optional unique name and ``at`` prefix.

    Attributes
    ----------
    source:
        The registered configuration.
    name:
        Optional name, unique within one combined view.
    at:
        Optional dot-delimited prefix (``..`` escapes a literal dot) under which
        the source's properties appear.
    """

    source: SourceConfiguration
    name: str | None = None
    at: str | None = None

    def at_path(self) -> list[str]:
        """Return the unescaped segments of :attr:`at`."""

        if not self.at:
            return []
        parsed = split_key(self.at)
        if parsed.attribute is not None or any(part.index is not None for part in parsed.parts):
            raise InvalidArgumentError(f"The at prefix {self.at!r} must not contain indices or attributes")
        return [part.name for part in parsed.parts]

    def tree(self) -> Node:
        """Return a copy of the source tree tagged with the source and moved below :attr:`at`."""

        root = self.source.root_node
        if not isinstance(root, Node):
            raise MergeFailureError(f"Source {self.label()} did not provide a node tree: {root!r}")
        stamped = root.stamp(self.source)
        path = self.at_path()
        if not path:
            return stamped

        stamped.name = path[-1]
        current = stamped
        for segment in reversed(path[:-1]):
            wrapper = Node(segment)
            wrapper.origin = self.source
            wrapper.add_child(current)
            current = wrapper
        top = Node(ROOT_NAME)
        top.origin = self.source
        top.add_child(current)
        return top

    def label(self) -> str:
        return self.name if self.name is not None else type(self.source).__name__


class CombinedConfiguration(HierarchicalConfiguration):
    """Hierarchical configuration merging the trees of its registered sources.

    Why
    ----
    Applications want one query surface with deterministic precedence over
    many independently loaded sources, plus the ability to ask which source a
    value came from.

    What
    ----
    Keeps registrations in insertion order, listens to every source for
    changes, and rebuilds the merged tree on the first read after an
    invalidation by folding the combiner over (own properties, source 1,
    source 2, ...). Properties added directly to the view live in a private
    tree that takes part in the fold first.

    Parameters
    ----------
    combiner:
        Merge strategy; defaults to a fresh :class:`UnionCombiner`.

    Examples
    --------
    >>> from lib_combined_config.application.combiners import OverrideCombiner
    >>> first = HierarchicalConfiguration()
    >>> first.add_property("db.host", "alpha")
    >>> second = HierarchicalConfiguration()
    >>> second.add_property("db.host", "beta")
    >>> second.add_property("db.port", 5432)
    >>> view = CombinedConfiguration(OverrideCombiner())
    >>> view.add_source(first, "first")
    >>> view.add_source(second, "second")
    >>> view.get("db.host"), view.get("db.port")
    ('alpha', 5432)
    >>> view.get_source("db.port") is second
    True
    """

    def __init__(self, combiner: NodeCombiner | None = None) -> None:
        super().__init__()
        self._combiner = combiner if combiner is not None else UnionCombiner()
        self._combiner.add_listener(self._on_combiner_changed)
        self._registrations: list[Registration] = []
        self._merged: Node | None = None
        self._invalid = True
        self._force_reload_check = False

    # -- registrations ---------------------------------------------------

    def add_source(self, config: SourceConfiguration, name: str | None = None, at: str | None = None) -> None:
        """Register *config* after all existing sources.

        Raises
        ------
        InvalidArgumentError
            When *config* is ``None``, is this view itself, or *at* is malformed.
        DuplicateNameError
            When *name* is already registered; the view is left unchanged.
        """

        if config is None:
            raise InvalidArgumentError("Added configuration must not be None")
        if config is self:
            raise InvalidArgumentError("A combined configuration cannot contain itself")
        if name is not None and name in self.configuration_names:
            raise DuplicateNameError(f"A configuration with the name {name!r} already exists in this combined configuration")
        registration = Registration(config, name, at)
        registration.at_path()

        self._registrations.append(registration)
        config.add_change_listener(self._on_source_changed)
        log_debug(
            "source_added",
            **registration_event(
                registration.label(), len(self._registrations) - 1, at, shared=self._holds(config, registration)
            ),
        )
        self.fire_event(EventType.SOURCE_ADDED, name, config)
        self.invalidate()

    def remove_source(self, target: str | int | SourceConfiguration) -> SourceConfiguration | None:
        """Unregister a source by name, index, or reference.

        Returns
        -------
        SourceConfiguration | None
            The removed source, or ``None`` when nothing matched (no events are
            fired in that case).
        """

        registration = self._find(target)
        if registration is None:
            return None
        self._detach(registration)
        self.invalidate()
        return registration.source

    def get_configuration(self, target: str | int) -> SourceConfiguration | None:
        """Return the source registered under a name or at an index."""

        registration = self._find(target)
        return registration.source if registration is not None else None

    @property
    def configuration_names(self) -> list[str]:
        """Return the names of all named registrations in order."""

        return [registration.name for registration in self._registrations if registration.name is not None]

    @property
    def number_of_configurations(self) -> int:
        return len(self._registrations)

    @property
    def configurations(self) -> list[SourceConfiguration]:
        return [registration.source for registration in self._registrations]

    @property
    def registrations(self) -> tuple[Registration, ...]:
        return tuple(self._registrations)

    # -- combiner --------------------------------------------------------

    @property
    def combiner(self) -> NodeCombiner:
        return self._combiner

    @combiner.setter
    def combiner(self, combiner: NodeCombiner) -> None:
        if combiner is None:
            raise InvalidArgumentError("Node combiner must not be None")
        self._combiner.remove_listener(self._on_combiner_changed)
        self._combiner = combiner
        combiner.add_listener(self._on_combiner_changed)
        self.fire_event(EventType.COMBINER_CHANGED, None, combiner)
        self.invalidate()

    # -- cache -----------------------------------------------------------

    @property
    def force_reload_check(self) -> bool:
        """Whether every read polls reloadable sources first."""

        return self._force_reload_check

    @force_reload_check.setter
    def force_reload_check(self, flag: bool) -> None:
        self._force_reload_check = bool(flag)

    @property
    def is_valid(self) -> bool:
        return not self._invalid and self._merged is not None

    def invalidate(self) -> None:
        """Mark the merged tree as stale and emit ``COMBINED_INVALIDATE``."""

        self._invalid = True
        self.fire_event(EventType.COMBINED_INVALIDATE)

    def reload_if_changed(self) -> bool:
        """Poll every reloadable source; return whether any of them changed."""

        changed = False
        for registration in list(self._registrations):
            source = registration.source
            if isinstance(source, ReloadableSource) and source.reload_if_changed():
                changed = True
        if changed:
            self._invalid = True
        return changed

    @property
    def root_node(self) -> Node:
        """Return the merged tree, rebuilding it first when stale."""

        if self._force_reload_check:
            self.reload_if_changed()
        if self._invalid or self._merged is None:
            try:
                merged = self._build()
            except Exception as exc:
                log_error("combined_rebuild_failed", **make_event("combined", None, {"error": str(exc)}))
                raise
            self._merged = merged
            self._invalid = False
        return self._merged

    # -- attribution -----------------------------------------------------

    def get_source(self, key: str) -> SourceConfiguration | None:
        """Return the single source that contributed the values of *key*.

        Why
        ----
        Operators need to know which source to edit to change a value.

        What
        ----
        Resolves *key* on the merged tree. Every node of the merged tree
        remembers the source (or this view, for properties added directly)
        whose tree it was copied from, so the resolved values are attributed
        to the registrations whose own, ``at``-adjusted trees produced them.
        Values that resolve to structural nodes only are attributed through
        those nodes. When any resolved value was added directly to this view,
        the view itself is the answer, whatever the combiner kept beside it.

        Returns
        -------
        SourceConfiguration | None
            The contributing source, this view for its own properties, or
            ``None`` when *key* does not resolve.

        Raises
        ------
        InvalidArgumentError
            When *key* is ``None``.
        AmbiguousSourceError
            When the values of *key* come from more than one registered source.
        """

        if key is None:
            raise InvalidArgumentError("Key must not be None")
        hits = fetch(self.root_node, key)
        candidates = [hit for hit in hits if hit.value is not None] or hits
        if any(hit.origin is self for hit in candidates):
            return self
        origins: list[Any] = []
        for hit in candidates:
            if not any(origin is hit.origin for origin in origins):
                origins.append(hit.origin)
        if not origins:
            return None
        if len(origins) > 1:
            raise AmbiguousSourceError(f"The key {key!r} is defined by multiple sources")
        return origins[0]

    # -- overrides -------------------------------------------------------

    def clear(self) -> None:
        """Remove every registration and every own property."""

        self.fire_event(EventType.CLEAR, None, None, before_update=True)
        for registration in list(self._registrations):
            self._detach(registration)
            self.invalidate()
        self._root = Node(ROOT_NAME)
        self.invalidate()
        self.fire_event(EventType.CLEAR, None, None)

    def clone(self) -> CombinedConfiguration:
        """Return a view sharing the combiner and holding deep clones of every source.

        Event listeners are not copied; the clone starts with none.
        """

        duplicate = type(self)(self._combiner)
        duplicate.list_delimiter = self.list_delimiter
        duplicate._root = self._root.copy()
        duplicate._force_reload_check = self._force_reload_check
        for registration in self._registrations:
            duplicate.add_source(registration.source.clone(), registration.name, registration.at)
        return duplicate

    def _mutable_root(self) -> Node:
        self._invalid = True
        return self._root

    # -- internals -------------------------------------------------------

    def _build(self) -> Node:
        trees: list[Node] = []
        if self._root.is_defined():
            trees.append(self._root.stamp(self))
        for registration in self._registrations:
            trees.append(registration.tree())
        if not trees:
            return Node(ROOT_NAME)

        merged = trees[0]
        for tree in trees[1:]:
            merged = self._combiner.combine(merged, tree)
        log_debug("combined_rebuilt", **rebuild_event(len(self._registrations), self._combiner, self._combiner.list_nodes))
        return merged

    def _find(self, target: Any) -> Registration | None:
        if isinstance(target, str):
            return next((reg for reg in self._registrations if reg.name == target), None)
        if isinstance(target, int) and not isinstance(target, bool):
            return self._registrations[target] if 0 <= target < len(self._registrations) else None
        return next((reg for reg in self._registrations if reg.source is target), None)

    def _detach(self, registration: Registration) -> None:
        position = self._registrations.index(registration)
        self._registrations.remove(registration)
        shared = self._holds(registration.source)
        if not shared:
            registration.source.remove_change_listener(self._on_source_changed)
        log_info(
            "source_removed", **registration_event(registration.label(), position, registration.at, shared=shared)
        )
        self.fire_event(EventType.SOURCE_REMOVED, registration.name, registration.source)

    def _holds(self, source: SourceConfiguration, exclude: Registration | None = None) -> bool:
        return any(reg.source is source for reg in self._registrations if reg is not exclude)

    def _on_source_changed(self, event: ConfigurationEvent) -> None:
        if not event.before_update:
            self.invalidate()

    def _on_combiner_changed(self, combiner: NodeCombiner) -> None:
        self.invalidate()
