"""CLI adapter for ``lib_combined_config`` built on ``lib_cli_exit_tools``.

Purpose
-------
Let operators inspect the outcome of a definition file (the merged
configuration and the source behind any key) without writing Python code.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command wiring traceback handling into ``lib_cli_exit_tools``.
* :func:`cli_info` – prints distribution metadata.
* :func:`cli_read` – prints the merged configuration (or one key) as JSON.
* :func:`cli_source` – prints which source contributed a key.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
Outermost layer: it only talks to :mod:`lib_combined_config.core`.
``lib_cli_exit_tools`` turns domain errors (ambiguous keys, missing files)
into consistent exit codes.
"""

from __future__ import annotations

import json
import sys
from importlib import metadata
from pathlib import Path
from typing import Any, Final, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from .adapters.sources.file import FileConfiguration
from .application.combined import CombinedConfiguration
from .core import read_combined

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000
_DISTRIBUTION: Final[str] = "lib_combined_config"

_DEFINITION_ARGUMENT = click.argument(
    "definition",
    type=click.Path(path_type=Path, exists=True, file_okay=True, dir_okay=False, readable=True),
)


def _resolve_version() -> str:
    """Return the installed package version, ``"0.0.0"`` when metadata is missing."""

    try:
        return metadata.version(_DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return "0.0.0"


@click.group(
    help="Combine hierarchical configuration sources declared in a definition file",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name=_DISTRIBUTION,
    message="lib_combined_config version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool) -> None:
    """Root command storing the traceback preference for ``lib_cli_exit_tools``."""

    ctx.ensure_object(dict)
    ctx.obj["traceback"] = traceback
    lib_cli_exit_tools.config.traceback = traceback
    lib_cli_exit_tools.config.traceback_force_color = traceback


@cli.command("info", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_info() -> None:
    """Print basic distribution metadata so users can confirm installation."""

    try:
        meta = metadata.metadata(_DISTRIBUTION)
    except metadata.PackageNotFoundError:
        click.echo(f"{_DISTRIBUTION} (metadata unavailable)")
        return
    click.echo(f"Info for {meta.get('Name', _DISTRIBUTION)}:")
    click.echo(f"  Version         : {meta.get('Version', _resolve_version())}")
    click.echo(f"  Requires-Python : {meta.get('Requires-Python', '>=3.10')}")
    summary = meta.get("Summary")
    if summary:
        click.echo(f"  Summary         : {summary}")


@cli.command("read", context_settings=CLICK_CONTEXT_SETTINGS)
@_DEFINITION_ARGUMENT
@click.option("--key", default=None, help="Print only the value(s) stored under this key")
@click.option(
    "--indent",
    type=int,
    default=None,
    help="Pretty-print JSON output with the provided indent size",
)
def cli_read(definition: Path, key: Optional[str], indent: Optional[int]) -> None:
    """Build the combined configuration declared by DEFINITION and print it as JSON.

    With ``--key`` only the matching value is printed (``null`` when the key
    does not resolve).
    """

    combined = read_combined(definition)
    if key is None:
        click.echo(combined.to_json(indent=indent))
        return
    click.echo(json.dumps(combined.get(key), indent=indent, ensure_ascii=False, default=str))


@cli.command("source", context_settings=CLICK_CONTEXT_SETTINGS)
@_DEFINITION_ARGUMENT
@click.argument("key")
@click.option(
    "--indent",
    type=int,
    default=None,
    help="Pretty-print JSON output with the provided indent size",
)
def cli_source(definition: Path, key: str, indent: Optional[int]) -> None:
    """Print which registered source contributed KEY.

    The output lists the registration labels from the outermost view down to
    the source that defines the key, plus the file path for file sources.
    Keys defined by several sources fail with an ambiguity error.
    """

    combined = read_combined(definition)
    click.echo(json.dumps(describe_source(combined, key), indent=indent, ensure_ascii=False))


def describe_source(view: CombinedConfiguration, key: str) -> dict[str, Any]:
    """Follow :meth:`CombinedConfiguration.get_source` through nested views.

    Examples
    --------
    >>> from lib_combined_config.domain.config import HierarchicalConfiguration
    >>> inner = HierarchicalConfiguration()
    >>> inner.add_property("db.host", "alpha")
    >>> view = CombinedConfiguration()
    >>> view.add_source(inner, "defaults")
    >>> describe_source(view, "db.host")
    {'key': 'db.host', 'sources': ['defaults'], 'path': None}
    """

    chain: list[str] = []
    path: str | None = None
    current, lookup = view, key
    while True:
        source = current.get_source(lookup)
        if source is None:
            break
        if source is current:
            chain.append("<combined>")
            break
        registration = next(reg for reg in current.registrations if reg.source is source)
        chain.append(registration.label())
        if isinstance(source, FileConfiguration):
            path = source.path
        if not isinstance(source, CombinedConfiguration):
            break
        if registration.at:
            prefix = registration.at + "."
            if not lookup.startswith(prefix):
                break
            lookup = lookup[len(prefix) :]
        current = source
    return {"key": key, "sources": chain, "path": path}


def main(argv: Optional[Sequence[str]] = None, *, restore_traceback: bool = True) -> int:
    """Execute the CLI with shared exit handling and return the exit code."""

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        try:
            return lib_cli_exit_tools.run_cli(
                cli,
                argv=list(argv) if argv is not None else None,
                prog_name=_DISTRIBUTION,
            )
        except BaseException as exc:  # noqa: BLE001 - funnel through shared printers
            lib_cli_exit_tools.print_exception_message(
                trace_back=lib_cli_exit_tools.config.traceback,
                length_limit=(
                    _TRACEBACK_VERBOSE_LIMIT if lib_cli_exit_tools.config.traceback else _TRACEBACK_SUMMARY_LIMIT
                ),
            )
            return lib_cli_exit_tools.get_system_exit_code(exc)
    finally:
        if restore_traceback:
            lib_cli_exit_tools.config.traceback = previous_traceback
            lib_cli_exit_tools.config.traceback_force_color = previous_force_color


if __name__ == "__main__":  # pragma: no cover - exercised via console entry point
    raise SystemExit(main(sys.argv[1:]))
