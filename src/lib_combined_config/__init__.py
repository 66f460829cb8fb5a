"""Public package surface for the combined configuration engine.

Sources are hierarchical configurations; a :class:`CombinedConfiguration`
merges their trees through a pluggable :class:`NodeCombiner`
(:class:`OverrideCombiner` or :class:`UnionCombiner`), caches the result, and
answers which source a key came from. :func:`read_combined` builds such a view
from a definition file.
"""

from __future__ import annotations

from .adapters.sources.environment import EnvironmentConfiguration, default_env_prefix
from .adapters.sources.file import FileAlwaysReloadingStrategy, FileChangedReloadingStrategy, FileConfiguration
from .application.builder import (
    ADDITIONAL_NAME,
    ConfigurationBuilder,
    DeclarationResolver,
    ProviderRegistry,
    SourceDeclaration,
)
from .application.combined import CombinedConfiguration, Registration
from .application.combiners import NodeCombiner, OverrideCombiner, UnionCombiner
from .core import build_combined, default_registry, read_combined, read_definition
from .domain.config import HierarchicalConfiguration
from .domain.errors import (
    AmbiguousSourceError,
    ConfigError,
    DuplicateNameError,
    InvalidArgumentError,
    InvalidFormat,
    MergeFailureError,
    NotFound,
    SourceConstructionError,
)
from .domain.events import ConfigurationEvent, EventType
from .domain.node import Node
from .observability import bind_trace_id, get_logger

__all__ = [
    "ADDITIONAL_NAME",
    "AmbiguousSourceError",
    "CombinedConfiguration",
    "ConfigError",
    "ConfigurationBuilder",
    "ConfigurationEvent",
    "DeclarationResolver",
    "DuplicateNameError",
    "EnvironmentConfiguration",
    "EventType",
    "FileAlwaysReloadingStrategy",
    "FileChangedReloadingStrategy",
    "FileConfiguration",
    "HierarchicalConfiguration",
    "InvalidArgumentError",
    "InvalidFormat",
    "MergeFailureError",
    "Node",
    "NodeCombiner",
    "NotFound",
    "OverrideCombiner",
    "ProviderRegistry",
    "Registration",
    "SourceConstructionError",
    "SourceDeclaration",
    "UnionCombiner",
    "bind_trace_id",
    "build_combined",
    "default_env_prefix",
    "default_registry",
    "get_logger",
    "read_combined",
    "read_definition",
]
