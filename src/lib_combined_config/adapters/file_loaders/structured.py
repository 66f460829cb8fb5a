"""Structured configuration file loaders.

Purpose
-------
Parse on-disk TOML, JSON, and YAML documents into mappings that
:meth:`lib_combined_config.domain.node.Node.from_mapping` turns into trees.
Each loader is a small wrapper around ``tomllib``/``json``/``yaml.safe_load``
so error translation and logging live in one place.

Contents
--------
* :class:`BaseFileLoader` – shared reading and mapping validation.
* :class:`TOMLFileLoader` / :class:`JSONFileLoader` / :class:`YAMLFileLoader`.
* :func:`loader_for_path` – pick a loader from a file suffix.

System Role
-----------
Used by :class:`lib_combined_config.adapters.sources.file.FileConfiguration`
and by :func:`lib_combined_config.core.read_definition`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Mapping

try:  # Python >= 3.11
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as tomllib  # type: ignore[assignment]

from ...application.ports import FileLoader
from ...domain.errors import InvalidFormat, NotFound
from ...observability import log_debug, log_error

try:
    import yaml  # type: ignore[import-not-found]
except ModuleNotFoundError:  # pragma: no cover - optional dependency
    yaml = None  # type: ignore[assignment]


class BaseFileLoader:
    """Common utilities shared by the structured file loaders."""

    format_name = "file"

    def _read(self, path: str) -> bytes:
        """Read *path* as bytes, raising :class:`NotFound` when the file is missing.

        Examples
        --------
        >>> from tempfile import NamedTemporaryFile
        >>> tmp = NamedTemporaryFile(delete=False)
        >>> _ = tmp.write(b"key = 'value'")
        >>> tmp.close()
        >>> BaseFileLoader()._read(tmp.name)[:3]
        b'key'
        >>> Path(tmp.name).unlink()
        """

        file_path = Path(path)
        if not file_path.is_file():
            raise NotFound(f"Configuration file not found: {path}")
        payload = file_path.read_bytes()
        log_debug("config_file_read", source="file", path=path, size=len(payload))
        return payload

    def _invalid(self, path: str, exc: Exception) -> InvalidFormat:
        log_error("config_file_invalid", source="file", path=path, format=self.format_name, error=str(exc))
        return InvalidFormat(f"Invalid {self.format_name.upper()} in {path}: {exc}")

    def _loaded(self, data: object, path: str) -> Mapping[str, object]:
        result = self._ensure_mapping(data, path=path)
        log_debug("config_file_loaded", source="file", path=path, format=self.format_name)
        return result

    @staticmethod
    def _ensure_mapping(data: object, *, path: str) -> Mapping[str, object]:
        """Ensure *data* behaves like a mapping, otherwise raise ``InvalidFormat``.

        Examples
        --------
        >>> BaseFileLoader._ensure_mapping({"key": 1}, path="demo")
        {'key': 1}
        >>> BaseFileLoader._ensure_mapping([1], path="demo")
        Traceback (most recent call last):
        ...
        lib_combined_config.domain.errors.InvalidFormat: File demo did not produce a mapping
        """

        if not isinstance(data, Mapping):
            raise InvalidFormat(f"File {path} did not produce a mapping")
        return data  # type: ignore[return-value]


class TOMLFileLoader(BaseFileLoader):
    """Load TOML documents using the standard library parser.

    Examples
    --------
    >>> from tempfile import NamedTemporaryFile
    >>> tmp = NamedTemporaryFile('w', suffix='.toml', delete=False, encoding='utf-8')
    >>> _ = tmp.write('[db]\\nhost = "alpha"')
    >>> tmp.close()
    >>> TOMLFileLoader().load(tmp.name)["db"]["host"]
    'alpha'
    >>> Path(tmp.name).unlink()
    """

    format_name = "toml"

    def load(self, path: str) -> Mapping[str, object]:
        try:
            data = tomllib.loads(self._read(path).decode("utf-8"))
        except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:  # type: ignore[attr-defined]
            raise self._invalid(path, exc) from exc
        return self._loaded(data, path)


class JSONFileLoader(BaseFileLoader):
    """Load JSON documents."""

    format_name = "json"

    def load(self, path: str) -> Mapping[str, object]:
        try:
            data = json.loads(self._read(path))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise self._invalid(path, exc) from exc
        return self._loaded(data, path)


class YAMLFileLoader(BaseFileLoader):
    """Load YAML documents when PyYAML is available.

    An empty document yields an empty mapping.
    """

    format_name = "yaml"

    def load(self, path: str) -> Mapping[str, object]:
        if yaml is None:
            raise NotFound("PyYAML is required for YAML configuration support")
        try:
            data = yaml.safe_load(self._read(path))  # type: ignore[operator]
        except yaml.YAMLError as exc:  # type: ignore[attr-defined]
            raise self._invalid(path, exc) from exc
        return self._loaded({} if data is None else data, path)


_SUFFIX_LOADERS: dict[str, type[BaseFileLoader]] = {
    ".toml": TOMLFileLoader,
    ".json": JSONFileLoader,
    ".yaml": YAMLFileLoader,
    ".yml": YAMLFileLoader,
}


def supported_suffixes() -> list[str]:
    return sorted(_SUFFIX_LOADERS)


def loader_for_path(path: str | Path) -> FileLoader:
    """Return a loader matching the suffix of *path*.

    Raises
    ------
    InvalidFormat
        When the suffix is not one of :func:`supported_suffixes`.

    Examples
    --------
    >>> type(loader_for_path("settings.YML")).__name__
    'YAMLFileLoader'
    """

    suffix = Path(path).suffix.lower()
    loader_cls = _SUFFIX_LOADERS.get(suffix)
    if loader_cls is None:
        raise InvalidFormat(f"Unsupported configuration file type {suffix or '<none>'!r} for {path}")
    return loader_cls()
