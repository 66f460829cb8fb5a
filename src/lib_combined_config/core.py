"""Composition root for ``lib_combined_config``.

Purpose
-------
Wire the source adapters (files, environment variables) into a
:class:`~lib_combined_config.application.builder.ProviderRegistry` and turn a
definition file into a ready-to-query
:class:`~lib_combined_config.application.combined.CombinedConfiguration`.

Contents
--------
* :func:`default_registry` – registry with the ``file``, ``toml``, ``json``,
  ``yaml``, and ``env`` tags.
* :func:`read_definition` – parse a definition file into a mapping.
* :func:`build_combined` – build a combined view from a definition mapping.
* :func:`read_combined` – high-level API: definition path in, combined view out.

System Role
-----------
The only module that knows both the application layer and the concrete
adapters. The CLI and library consumers call into it.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from .adapters.file_loaders.structured import JSONFileLoader, TOMLFileLoader, YAMLFileLoader, loader_for_path
from .adapters.sources.environment import EnvironmentSourceProvider
from .adapters.sources.file import FileSourceProvider
from .application.builder import ConfigurationBuilder, ProviderRegistry
from .application.combined import CombinedConfiguration
from .domain.errors import InvalidArgumentError
from .observability import bind_trace_id, log_info, make_event


def default_registry(
    base_path: str | Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> ProviderRegistry:
    """Return a registry holding the built-in providers.

    Parameters
    ----------
    base_path:
        Directory that relative ``path`` parameters of file declarations are
        resolved against.
    environ:
        Mapping used by the ``env`` provider instead of :data:`os.environ`.

    Examples
    --------
    >>> default_registry().tags
    ['file', 'toml', 'json', 'yaml', 'env']
    """

    registry = ProviderRegistry()
    registry.register("file", FileSourceProvider(base_path))
    registry.register("toml", FileSourceProvider(base_path, loader=TOMLFileLoader()))
    registry.register("json", FileSourceProvider(base_path, loader=JSONFileLoader()))
    registry.register("yaml", FileSourceProvider(base_path, loader=YAMLFileLoader()))
    registry.register("env", EnvironmentSourceProvider(environ))
    return registry


def read_definition(path: str | Path) -> Mapping[str, Any]:
    """Parse the definition file at *path* with the loader matching its suffix.

    Raises
    ------
    NotFound
        When the file does not exist.
    InvalidFormat
        When the suffix is unsupported or the document is malformed.
    """

    return loader_for_path(path).load(str(path))


def build_combined(
    definition: Mapping[str, Any],
    *,
    base_path: str | Path | None = None,
    registry: ProviderRegistry | None = None,
) -> CombinedConfiguration:
    """Build the combined view described by *definition*.

    Examples
    --------
    >>> env = {"DEMO_DB__HOST": "alpha"}
    >>> definition = {"override": [{"type": "env", "prefix": "DEMO", "config-name": "env"}]}
    >>> view = build_combined(definition, registry=default_registry(environ=env))
    >>> view.get("db.host"), view.configuration_names
    ('alpha', ['env'])
    """

    if registry is None:
        registry = default_registry(base_path)
    return ConfigurationBuilder(definition, registry).build()


def read_combined(
    path: str | Path,
    *,
    registry: ProviderRegistry | None = None,
    trace_id: str | None = None,
) -> CombinedConfiguration:
    """Return the combined view declared by the definition file at *path*.

    Why
    ----
    Consumers want one call that turns a definition file into a queryable
    configuration with deterministic precedence.

    What
    ----
    Parses the definition, resolves relative file paths against the
    definition's directory, and builds the view through
    :class:`~lib_combined_config.application.builder.ConfigurationBuilder`.

    Side Effects
    ------------
    Binds *trace_id* (``None`` clears it) and emits ``definition_loaded``.
    """

    bind_trace_id(trace_id)
    if path is None:
        raise InvalidArgumentError("Definition path must not be None")
    definition_path = Path(path).expanduser().resolve()
    definition = read_definition(definition_path)
    combined = build_combined(definition, base_path=definition_path.parent, registry=registry)
    log_info(
        "definition_loaded",
        **make_event("definition", str(definition_path), {"sources": combined.number_of_configurations}),
    )
    return combined
