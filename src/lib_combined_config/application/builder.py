"""Source declaration resolver and definition-driven builder.

Purpose
-------
Turn declarative source descriptions (a tag naming the kind of source plus its
parameters) into concrete source configurations and wire them into combined
views. Dispatch over tag names goes through an explicit
:class:`ProviderRegistry` object owned by the caller; there is no module-level
mutable registry.

Definition format
-----------------
A definition is a mapping, typically parsed from TOML, JSON, or YAML::

    [header.combiner.override]
    list-nodes = ["server"]

    [[override]]
    type = "toml"
    path = "defaults.toml"
    config-name = "defaults"

    [[additional]]
    type = "env"
    prefix = "DEMO"
    config-at = "env"
    config-optional = true

Top-level keys other than ``header``, ``override``, and ``additional`` are
read as override declarations whose tag is the key itself (``[[toml]]``).
Reserved declaration keys: ``type``, ``config-name``, ``config-at`` (or
``at``), ``config-optional`` (or ``optional``).

Contents
--------
* :data:`ADDITIONAL_NAME` – registration name of the nested union view.
* :class:`SourceDeclaration` – parsed declaration.
* :class:`ProviderRegistry` – tag name to provider lookup.
* :class:`DeclarationResolver` – creates sources, honouring ``optional``.
* :class:`ConfigurationBuilder` – builds the combined view for a definition.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Iterator, Sequence

from ..domain.config import HierarchicalConfiguration
from ..domain.errors import InvalidArgumentError, SourceConstructionError
from ..observability import log_debug, log_warning, make_event
from .combined import CombinedConfiguration
from .combiners import NodeCombiner, OverrideCombiner, UnionCombiner
from .ports import SourceConfiguration, SourceProvider

ADDITIONAL_NAME = "lib_combined_config/ADDITIONAL_CONFIG"

SEC_HEADER = "header"
SEC_OVERRIDE = "override"
SEC_ADDITIONAL = "additional"
KEY_LIST_NODES = "list-nodes"

RESERVED_PREFIX = "config-"
ATTR_TYPE = "type"
ATTR_NAME = RESERVED_PREFIX + "name"
ATTR_AT = "at"
ATTR_OPTIONAL = "optional"

_TRUE_VALUES = frozenset({"true", "yes", "on", "1"})
_FALSE_VALUES = frozenset({"false", "no", "off", "0"})


@dataclass(frozen=True)
class SourceDeclaration:
    """Declarative description of one source.

    Attributes
    ----------
    tag:
        Provider identity (``"toml"``, ``"env"``, ...).
    name:
        Optional registration name.
    at:
        Optional ``at`` prefix.
    optional:
        When ``True`` construction failures are swallowed and the source is
        treated as empty.
    parameters:
        Every non-reserved key of the declaration.
    """

    tag: str
    name: str | None = None
    at: str | None = None
    optional: bool = False
    parameters: Mapping[str, Any] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], *, tag: str | None = None) -> SourceDeclaration:
        """Parse a declaration mapping.

        Examples
        --------
        >>> decl = SourceDeclaration.from_mapping(
        ...     {"type": "toml", "path": "a.toml", "config-name": "a", "config-optional": "yes"}
        ... )
        >>> decl.tag, decl.name, decl.optional, dict(decl.parameters)
        ('toml', 'a', True, {'path': 'a.toml'})
        """

        if not isinstance(data, Mapping):
            raise InvalidArgumentError(f"A source declaration must be a mapping, got {type(data).__name__}")
        tag = tag if tag is not None else data.get(ATTR_TYPE)
        if not tag:
            raise InvalidArgumentError(f"Source declaration without {ATTR_TYPE!r}: {dict(data)!r}")
        at = _reserved(data, ATTR_AT)
        optional = _reserved(data, ATTR_OPTIONAL)
        name = data.get(ATTR_NAME)
        reserved = {ATTR_TYPE, ATTR_NAME, RESERVED_PREFIX + ATTR_AT, RESERVED_PREFIX + ATTR_OPTIONAL}
        if RESERVED_PREFIX + ATTR_AT not in data:
            reserved.add(ATTR_AT)
        if RESERVED_PREFIX + ATTR_OPTIONAL not in data:
            reserved.add(ATTR_OPTIONAL)
        parameters = {key: value for key, value in data.items() if key not in reserved}
        return cls(
            tag=str(tag),
            name=str(name) if name is not None else None,
            at=str(at) if at is not None else None,
            optional=_to_bool(optional) if optional is not None else False,
            parameters=parameters,
        )

    def parameter(self, key: str, default: Any = None) -> Any:
        return self.parameters.get(key, default)

    def label(self) -> str:
        return self.name if self.name is not None else self.tag


class ProviderRegistry:
    """Explicit mapping from tag names to source providers.

    Why
    ----
    Keeps dispatch over declaration tags as data (a registry of named
    constructors) instead of inheritance or global state; the composition root
    initialises one registry and hands it to the resolver.

    Examples
    --------
    >>> registry = ProviderRegistry()
    >>> registry.register("memory", lambda declaration: HierarchicalConfiguration())
    >>> registry.tags
    ['memory']
    >>> registry.unregister("memory") is not None, registry.provider_for("memory")
    (True, None)
    """

    def __init__(self, providers: Mapping[str, SourceProvider] | None = None) -> None:
        self._providers: dict[str, SourceProvider] = {}
        for tag, provider in (providers or {}).items():
            self.register(tag, provider)

    def register(self, tag: str, provider: SourceProvider) -> None:
        if not tag:
            raise InvalidArgumentError("Tag name must not be empty")
        if provider is None:
            raise InvalidArgumentError("Provider must not be None")
        self._providers[tag] = provider

    def unregister(self, tag: str) -> SourceProvider | None:
        return self._providers.pop(tag, None)

    def provider_for(self, tag: str) -> SourceProvider | None:
        return self._providers.get(tag)

    @property
    def tags(self) -> list[str]:
        return list(self._providers)


class DeclarationResolver:
    """Create source configurations from declarations.

    Why
    ----
    Callers need one place that looks up providers, converts failures into the
    domain error taxonomy, and applies the ``optional`` policy.
    """

    def __init__(self, registry: ProviderRegistry) -> None:
        if registry is None:
            raise InvalidArgumentError("Provider registry must not be None")
        self._registry = registry

    def create(self, declaration: SourceDeclaration) -> SourceConfiguration:
        """Return the source for *declaration*.

        Raises
        ------
        SourceConstructionError
            When no provider is registered for the tag or the provider fails,
            unless the declaration is optional (an empty configuration is
            returned instead and the failure is logged).
        """

        try:
            return self._construct(declaration)
        except Exception as exc:
            if not declaration.optional:
                if isinstance(exc, SourceConstructionError):
                    raise
                raise SourceConstructionError(f"Cannot create source {declaration.label()!r}: {exc}") from exc
            log_warning(
                "optional_source_skipped",
                **make_event(declaration.label(), None, {"tag": declaration.tag, "error": str(exc)}),
            )
            return HierarchicalConfiguration()

    def _construct(self, declaration: SourceDeclaration) -> SourceConfiguration:
        provider = self._registry.provider_for(declaration.tag)
        if provider is None:
            raise SourceConstructionError(f"No source provider registered for tag {declaration.tag!r}")
        source = provider(declaration)
        log_debug("source_created", **make_event(declaration.label(), None, {"tag": declaration.tag}))
        return source


class ConfigurationBuilder:
    """Build a combined view from a definition mapping.

    Why
    ----
    Declaring sources in a definition file keeps precedence rules out of
    application code.

    What
    ----
    Creates an override-combined view holding every override declaration in
    order. When additional declarations exist they are combined in a nested
    union view registered last under :data:`ADDITIONAL_NAME`. List nodes for
    each combiner come from ``header.combiner.<section>.list-nodes``.
    """

    def __init__(self, definition: Mapping[str, Any], registry: ProviderRegistry) -> None:
        if not isinstance(definition, Mapping):
            raise InvalidArgumentError(f"A definition must be a mapping, got {type(definition).__name__}")
        self._definition = definition
        self._resolver = DeclarationResolver(registry)

    def build(self) -> CombinedConfiguration:
        result = CombinedConfiguration(OverrideCombiner())
        self._init_combined(result, self.override_declarations(), SEC_OVERRIDE)

        additional = self.additional_declarations()
        if additional:
            union = CombinedConfiguration(UnionCombiner())
            self._init_combined(union, additional, SEC_ADDITIONAL)
            result.add_source(union, ADDITIONAL_NAME)
        return result

    def override_declarations(self) -> list[SourceDeclaration]:
        declarations: list[SourceDeclaration] = []
        for key, value in self._definition.items():
            if key in (SEC_HEADER, SEC_OVERRIDE, SEC_ADDITIONAL):
                continue
            declarations.extend(SourceDeclaration.from_mapping(item, tag=key) for item in _as_items(value, key))
        declarations.extend(self._section(SEC_OVERRIDE))
        return declarations

    def additional_declarations(self) -> list[SourceDeclaration]:
        return self._section(SEC_ADDITIONAL)

    def list_nodes(self, section: str) -> list[str]:
        header = self._definition.get(SEC_HEADER) or {}
        combiner = header.get("combiner") or {} if isinstance(header, Mapping) else {}
        entry = combiner.get(section) or {} if isinstance(combiner, Mapping) else {}
        names = entry.get(KEY_LIST_NODES, []) if isinstance(entry, Mapping) else []
        if isinstance(names, str):
            return [names]
        return [str(name) for name in names]

    def _section(self, section: str) -> list[SourceDeclaration]:
        return [SourceDeclaration.from_mapping(item) for item in _as_items(self._definition.get(section), section)]

    def _init_combined(self, config: CombinedConfiguration, declarations: Sequence[SourceDeclaration], section: str) -> None:
        combiner: NodeCombiner = config.combiner
        for name in self.list_nodes(section):
            combiner.add_list_node(name)
        for declaration in declarations:
            config.add_source(self._resolver.create(declaration), declaration.name, declaration.at)


def _as_items(value: Any, section: str) -> Iterator[Mapping[str, Any]]:
    if value is None:
        return iter(())
    if isinstance(value, Mapping):
        return iter((value,))
    if isinstance(value, (list, tuple)):
        return iter(value)
    raise InvalidArgumentError(f"Section {section!r} must hold declarations, got {type(value).__name__}")


def _reserved(data: Mapping[str, Any], attribute: str) -> Any:
    """Return ``config-<attribute>`` when present, else the plain ``<attribute>``."""

    prefixed = RESERVED_PREFIX + attribute
    if prefixed in data:
        return data[prefixed]
    return data.get(attribute)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_VALUES:
        return True
    if text in _FALSE_VALUES:
        return False
    raise InvalidArgumentError(f"optional attribute does not have a valid boolean value: {value!r}")
