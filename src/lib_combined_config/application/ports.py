"""Application-layer ports describing collaborator responsibilities.

Purpose
-------
Define the structural contracts the combined view and the declaration resolver
rely on, so concrete sources and loaders can be swapped without touching the
merge engine.

Contents
--------
* :class:`SourceConfiguration` – a configuration the combined view can register.
* :class:`ReloadableSource` – a source that can poll its backing data.
* :class:`ReloadingStrategy` – decides when a file-backed source reloads.
* :class:`FileLoader` – parses structured configuration artifacts.
* :class:`SourceProvider` – creates a source from a declaration.

System Role
-----------
These protocols enforce Dependency Inversion (DIP). Each adapter implements one
protocol so the application layer can request behaviour via abstraction.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Callable, Mapping, Protocol, runtime_checkable

from ..domain.node import Node

if TYPE_CHECKING:
    from ..domain.events import ConfigurationEvent
    from .builder import SourceDeclaration


@runtime_checkable
class SourceConfiguration(Protocol):
    """A configuration whose tree can be merged into a combined view.

    Why
    ----
    The merge engine only needs a tree snapshot, change notifications, and the
    ability to deep-clone the source when the view itself is cloned.
    """

    @property
    def root_node(self) -> Node:
        """Return the current tree snapshot."""

    def add_change_listener(self, listener: Callable[[ConfigurationEvent], None]) -> None:
        """Register *listener* for change notifications."""

    def remove_change_listener(self, listener: Callable[[ConfigurationEvent], None]) -> bool:
        """Unregister *listener*; return whether it was registered."""

    def clone(self) -> SourceConfiguration:
        """Return an independent deep copy without listeners."""


@runtime_checkable
class ReloadableSource(Protocol):
    """A source that can check whether its backing data changed.

    Why
    ----
    Combined views with ``force_reload_check`` enabled poll their sources
    before every read instead of waiting for push notifications.
    """

    def reload_if_changed(self) -> bool:
        """Reload when the backing data changed; return whether it did."""


class ReloadingStrategy(Protocol):
    """Decide whether a file-backed source must be reloaded."""

    def reloading_required(self, path: str) -> bool:
        """Return ``True`` when *path* should be read again."""

    def reloading_performed(self, path: str) -> None:
        """Record that *path* was just (re)loaded."""


class FileLoader(Protocol):
    """Parse a structured configuration file into a mapping.

    Why
    ----
    Segregate parsing concerns (TOML/JSON/YAML) from tree construction.
    """

    def load(self, path: str) -> Mapping[str, object]:
        """Read *path* and return a mapping representation or raise ``InvalidFormat``."""


class SourceProvider(Protocol):
    """Create a source configuration for one declaration."""

    def __call__(self, declaration: SourceDeclaration) -> SourceConfiguration:
        """Return the configured source or raise."""
