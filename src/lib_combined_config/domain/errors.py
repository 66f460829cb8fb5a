"""Domain-level exception hierarchy.

Purpose
-------
Expose the stable error taxonomy shared by the node tree, the combiners, the
combined view, the declaration resolver, and the source adapters. The hierarchy
lives in the domain layer so outer layers may depend on it without the domain
depending on them.

Contents
--------
* :class:`ConfigError` – umbrella base class for all configuration errors.
* :class:`InvalidArgumentError` – illegal argument passed to a public
  operation (also a :class:`ValueError`).
* :class:`DuplicateNameError` – a source name is already registered.
* :class:`AmbiguousSourceError` – a key cannot be attributed to one source.
* :class:`SourceConstructionError` – a declared source could not be created.
* :class:`MergeFailureError` – a combiner received a structurally invalid tree.
* :class:`InvalidFormat` – parsing problems while reading files.
* :class:`NotFound` – an expected configuration resource is missing.

System Role
-----------
Callers catch :class:`ConfigError` to handle all library failures uniformly.
Every error is raised synchronously at the call site; nothing is retried.
"""

from __future__ import annotations


class ConfigError(Exception):
    """Base type for all exceptions emitted by ``lib_combined_config``.

    Why
    ----
    Provide a single catch-all type for consumers that do not need fine-grained
    handling.
    """


class InvalidArgumentError(ConfigError, ValueError):
    """Raised when a public operation receives a ``None`` or illegal argument.

    Typical Sources
    ---------------
    ``None`` combiner, ``None`` key passed to ``get_source``, ``None`` source
    or provider passed to a registration, malformed keys.
    """


class DuplicateNameError(ConfigError):
    """Raised when a source is registered under a name that is already in use.

    The failed registration leaves the combined view untouched.
    """


class AmbiguousSourceError(ConfigError):
    """Raised when the values of a key were contributed by several sources.

    A value can only be attributed to one source when it is not split across
    sources.
    """


class SourceConstructionError(ConfigError):
    """Raised when a declared source cannot be constructed or loaded.

    Why
    ----
    The declaration resolver wraps provider failures so callers see one error
    family. Optional declarations never surface this error.
    """


class MergeFailureError(ConfigError):
    """Signifies that a combiner received something that is not a node tree.

    Not expected in normal operation; it marks a programming-contract
    violation and is never retried.
    """


class InvalidFormat(ConfigError):
    """Raised when an input artifact cannot be parsed into structured data.

    Typical Sources
    ---------------
    Structured file loaders (:mod:`tomllib`, :mod:`json`, :mod:`yaml`).
    """


class NotFound(ConfigError):
    """Represents missing resources (files, optional parsers).

    Why
    ----
    Allow adapters to signal absence distinctly from malformed content.
    """
