"""File-backed source configurations and their reloading strategies.

Purpose
-------
Load one structured document into a :class:`HierarchicalConfiguration` and
optionally re-read it when the file changes so combined views can pick up the
new content.

Contents
--------
* :class:`FileChangedReloadingStrategy` – reload when mtime or size changes.
* :class:`FileAlwaysReloadingStrategy` – reload on every check.
* :class:`FileConfiguration` – the source itself.
* :class:`FileSourceProvider` – declaration provider for ``file`` and the
  format-specific tags.
"""

from __future__ import annotations

import copy
from pathlib import Path
from typing import TYPE_CHECKING

from ...application.ports import FileLoader, ReloadingStrategy
from ...domain.config import ROOT_NAME, HierarchicalConfiguration
from ...domain.errors import InvalidArgumentError
from ...domain.events import EventType
from ...domain.node import Node
from ...observability import log_debug, log_info
from ..file_loaders.structured import loader_for_path

if TYPE_CHECKING:
    from ...application.builder import SourceDeclaration


class FileChangedReloadingStrategy:
    """Request a reload whenever the file's modification time or size changes.

    Examples
    --------
    >>> from tempfile import NamedTemporaryFile
    >>> tmp = NamedTemporaryFile('w', delete=False)
    >>> tmp.close()
    >>> strategy = FileChangedReloadingStrategy()
    >>> strategy.reloading_required(tmp.name)
    True
    >>> strategy.reloading_performed(tmp.name)
    >>> strategy.reloading_required(tmp.name)
    False
    >>> Path(tmp.name).unlink()
    """

    def __init__(self) -> None:
        self._stamp: tuple[int, int] | None = None

    def reloading_required(self, path: str) -> bool:
        return _file_stamp(path) != self._stamp

    def reloading_performed(self, path: str) -> None:
        self._stamp = _file_stamp(path)


class FileAlwaysReloadingStrategy:
    """Request a reload on every check; useful for tests and tiny files."""

    def reloading_required(self, path: str) -> bool:
        return True

    def reloading_performed(self, path: str) -> None:
        return None


_STRATEGIES = {
    "changed": FileChangedReloadingStrategy,
    "always": FileAlwaysReloadingStrategy,
}


def strategy_named(name: str | None) -> ReloadingStrategy | None:
    """Return a fresh strategy for ``"changed"``/``"always"`` or ``None`` for ``"never"``."""

    if name is None or str(name).lower() == "never":
        return None
    factory = _STRATEGIES.get(str(name).lower())
    if factory is None:
        raise InvalidArgumentError(f"Unknown reloading strategy {name!r}; expected one of never, {', '.join(_STRATEGIES)}")
    return factory()


class FileConfiguration(HierarchicalConfiguration):
    """Hierarchical configuration read from one TOML, JSON, or YAML file.

    Why
    ----
    Files are the most common override and additional sources. Combined views
    only see the tree snapshot, so the file source owns parsing and change
    detection.

    What
    ----
    :meth:`load` parses the file and replaces the tree (listeners see a
    ``RELOAD`` event pair when it happens through :meth:`reload_if_changed`).
    In-memory modifications are allowed and are lost on the next reload.

    Parameters
    ----------
    path:
        File to read. The loader is chosen from its suffix unless *loader* is
        given.
    loader:
        Explicit parser implementing :class:`FileLoader`.
    reloading:
        Optional strategy consulted by :meth:`reload_if_changed`.
    """

    def __init__(
        self,
        path: str | Path,
        *,
        loader: FileLoader | None = None,
        reloading: ReloadingStrategy | None = None,
        list_delimiter: str | None = ",",
    ) -> None:
        super().__init__(list_delimiter=list_delimiter)
        self.path = str(path)
        self.loader = loader if loader is not None else loader_for_path(self.path)
        self.reloading = reloading

    def load(self) -> None:
        """Parse the file and replace the current tree.

        Raises
        ------
        NotFound
            When the file does not exist.
        InvalidFormat
            When the document cannot be parsed into a mapping.
        """

        data = self.loader.load(self.path)
        self._replace_root(Node.from_mapping(ROOT_NAME, data))
        if self.reloading is not None:
            self.reloading.reloading_performed(self.path)
        log_debug("source_loaded", source="file", path=self.path, keys=len(data))

    def reload_if_changed(self) -> bool:
        """Reload when the strategy says so; return whether a reload happened."""

        if self.reloading is None or not self.reloading.reloading_required(self.path):
            return False
        self.fire_event(EventType.RELOAD, None, self.path, before_update=True)
        self.load()
        self.fire_event(EventType.RELOAD, None, self.path)
        log_info("source_reloaded", source="file", path=self.path)
        return True

    def clone(self) -> FileConfiguration:
        duplicate = super().clone()
        duplicate.reloading = copy.deepcopy(self.reloading)
        return duplicate  # type: ignore[return-value]


class FileSourceProvider:
    """Create and load :class:`FileConfiguration` instances from declarations.

    Declaration parameters: ``path`` (required; relative paths are resolved
    against *base_path*), ``reload`` (``never``/``changed``/``always``) and
    ``list-delimiter``.
    """

    def __init__(self, base_path: str | Path | None = None, *, loader: FileLoader | None = None) -> None:
        self.base_path = Path(base_path) if base_path is not None else None
        self.loader = loader

    def __call__(self, declaration: SourceDeclaration) -> FileConfiguration:
        raw = declaration.parameter("path")
        if not raw:
            raise InvalidArgumentError(f"Declaration {declaration.label()!r} has no 'path' parameter")
        path = Path(str(raw)).expanduser()
        if not path.is_absolute() and self.base_path is not None:
            path = self.base_path / path
        source = FileConfiguration(
            path,
            loader=self.loader,
            reloading=strategy_named(declaration.parameter("reload")),
            list_delimiter=declaration.parameter("list-delimiter", ","),
        )
        source.load()
        return source


def _file_stamp(path: str) -> tuple[int, int] | None:
    try:
        stat = Path(path).stat()
    except OSError:
        return None
    return stat.st_mtime_ns, stat.st_size
