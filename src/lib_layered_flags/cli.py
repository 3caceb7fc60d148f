"""CLI adapter for ``lib_layered_flags`` built on ``lib_cli_exit_tools``.

Purpose
-------
Let operators inspect how a settings dataclass is bound and resolved without
writing Python: list the generated options, resolve a command line against
environment and config file, or scaffold a config file from the defaults.

Contents
--------
* :data:`CLICK_CONTEXT_SETTINGS` – shared Click settings ensuring ``-h`` works.
* :func:`cli` – root command that wires global traceback handling into
  ``lib_cli_exit_tools``.
* :func:`cli_info` – prints distribution metadata for quick diagnostics.
* :func:`cli_schema` – prints the binding table of a settings dataclass.
* :func:`cli_resolve` – binds a settings dataclass to a throw-away command,
  parses the trailing flags, and prints the resolved values as JSON.
* :func:`cli_generate_examples` – writes config files holding the defaults.
* :func:`main` – entry point used by ``console_scripts`` registration.

System Role
-----------
The CLI lives in the outermost layer of the Clean Architecture stack. It
invokes the composition root (:class:`~lib_layered_flags.core.FlagBinder`) and
never reaches into adapter internals. ``lib_cli_exit_tools`` centralises the
exit code strategy so all commands behave consistently across shells and CI.
"""

from __future__ import annotations

import dataclasses
import importlib
import json
import sys
from importlib import metadata
from pathlib import Path
from typing import Any, Final, Optional, Sequence

import lib_cli_exit_tools
import rich_click as click

from .application.walker import TagNames, build_schema
from .core import FlagBinder
from .domain.formats import SUPPORTED_FORMATS
from .domain.schema import Schema
from .examples import GENERATED_FORMATS, generate_examples

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_TRACEBACK_SUMMARY_LIMIT: Final[int] = 500
_TRACEBACK_VERBOSE_LIMIT: Final[int] = 10_000
_DISTRIBUTION: Final[str] = "lib_layered_flags"


def _resolve_version() -> str:
    """Return the installed package version, ``"0.0.0"`` when not installed."""

    try:
        return metadata.version(_DISTRIBUTION)
    except metadata.PackageNotFoundError:
        return "0.0.0"


@click.group(
    help="Bind settings dataclasses to command-line options, env vars, and config files",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=False,
)
@click.version_option(
    version=_resolve_version(),
    prog_name=_DISTRIBUTION,
    message="lib_layered_flags version %(version)s",
)
@click.option(
    "--traceback/--no-traceback",
    is_flag=True,
    default=False,
    help="Show full Python traceback on errors",
)
@click.pass_context
def cli(ctx: click.Context, traceback: bool) -> None:
    """Root command configuring traceback handling for all subcommands.

    Why
        ``lib_cli_exit_tools`` formats uncaught exceptions in :func:`main`; it
        needs the traceback preference before any subcommand fails.

    Side Effects
        Mutates ``lib_cli_exit_tools.config.traceback`` and
        ``lib_cli_exit_tools.config.traceback_force_color``.
    """

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
    click.echo(f"  Config formats  : {', '.join(SUPPORTED_FORMATS)}")


def _tag_options(command: Any) -> Any:
    """Attach the tag-name options shared by ``schema``, ``resolve`` and ``generate-examples``."""

    decorators = [
        click.option("--field-tag", default="mapstructure", show_default=True, help="Metadata key holding the settings key"),
        click.option("--env-tag", default="env", show_default=True, help="Metadata key holding the env variable"),
        click.option("--help-tag", default="usage", show_default=True, help="Metadata key holding the help text"),
        click.option(
            "--ignore-untagged/--no-ignore-untagged",
            default=False,
            show_default=True,
            help="Skip fields without a field tag instead of failing",
        ),
    ]
    for decorator in reversed(decorators):
        command = decorator(command)
    return command


@cli.command("schema", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("target")
@_tag_options
@click.option("--indent", type=int, default=2, show_default=True, help="JSON indent size")
def cli_schema(
    target: str,
    field_tag: str,
    env_tag: str,
    help_tag: str,
    ignore_untagged: bool,
    indent: Optional[int],
) -> None:
    """Print the options generated for TARGET (``module:attribute``) as JSON.

    Examples
    --------
    >>> from click.testing import CliRunner
    >>> result = CliRunner().invoke(cli, ["schema", "lib_layered_flags.examples:ServerSettings", "--indent", "0"])
    >>> json.loads(result.output)[0]["key"]
    'workers'
    """

    schema = _schema_for(load_target(target), field_tag, env_tag, help_tag, ignore_untagged)
    click.echo(json.dumps([spec.describe() for spec in schema], indent=indent))


@cli.command(
    "resolve",
    context_settings={**CLICK_CONTEXT_SETTINGS, "ignore_unknown_options": True},
)
@click.argument("target")
@click.option("--config-path", default="", help="Config file or directory; empty disables the config file")
@click.option(
    "--config-type",
    default="yaml",
    show_default=True,
    type=click.Choice(SUPPORTED_FORMATS, case_sensitive=False),
    help="Format used when the config file has no or an unknown extension",
)
@click.option("--config-name", default="config", show_default=True, help="Base name searched in a config directory")
@_tag_options
@click.option("--indent", type=int, default=None, help="Pretty-print JSON output with the provided indent size")
@click.option(
    "--provenance/--no-provenance",
    default=False,
    help="Include the winning layer (option/env/config/default) of each key",
)
@click.argument("flags", nargs=-1, type=click.UNPROCESSED)
def cli_resolve(
    target: str,
    config_path: str,
    config_type: str,
    config_name: str,
    field_tag: str,
    env_tag: str,
    help_tag: str,
    ignore_untagged: bool,
    indent: Optional[int],
    provenance: bool,
    flags: Sequence[str],
) -> None:
    """Resolve TARGET against FLAGS, the environment, and the config file.

    Pass the generated options after ``--``; ``-- --help`` lists them::

        lib_layered_flags resolve lib_layered_flags.examples:ServerSettings -- --workers=4
    """

    result = load_target(target)
    command = click.Command(type(result).__name__.lower(), context_settings=CLICK_CONTEXT_SETTINGS)
    binder = FlagBinder(
        result=result,
        command=command,
        field_tag=field_tag,
        env_tag=env_tag,
        help_tag=help_tag,
        config_type=config_type,
        config_path=config_path,
        config_name=config_name,
        ignore_untagged_fields=ignore_untagged,
    )
    binder.add_flags()
    with command.make_context(command.name, list(flags)) as ctx:
        binder.unmarshal_exact(ctx)
    settings = dataclasses.asdict(binder.result)
    if not provenance:
        click.echo(json.dumps(settings, indent=indent))
        return
    schema = binder.schema if binder.schema is not None else Schema()
    payload = {
        "settings": settings,
        "provenance": {key: binder.origin(key) for key in schema.keys()},
        "config_file": binder.config_file_used(),
    }
    click.echo(json.dumps(payload, indent=indent))


@cli.command("generate-examples", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("target")
@click.option(
    "--destination",
    type=click.Path(path_type=Path, file_okay=False, dir_okay=True, resolve_path=True),
    required=True,
    help="Directory that will receive the config files",
)
@click.option(
    "--format",
    "formats",
    multiple=True,
    default=("yaml",),
    show_default=True,
    type=click.Choice(GENERATED_FORMATS, case_sensitive=False),
    help="Config file format to write (repeatable)",
)
@click.option("--config-name", default="config", show_default=True, help="Base name of the written files")
@_tag_options
@click.option(
    "--force/--no-force",
    default=False,
    help="Overwrite existing files if set",
    show_default=True,
)
def cli_generate_examples(
    target: str,
    destination: Path,
    formats: Sequence[str],
    config_name: str,
    field_tag: str,
    env_tag: str,
    help_tag: str,
    ignore_untagged: bool,
    force: bool,
) -> None:
    """Write ``<config-name>.<format>`` files holding the defaults of TARGET."""

    schema = _schema_for(load_target(target), field_tag, env_tag, help_tag, ignore_untagged)
    created = generate_examples(destination, schema, formats=formats, config_name=config_name, force=force)
    click.echo(json.dumps([str(path) for path in created], indent=2))


def load_target(reference: str) -> Any:
    """Return a settings dataclass instance for ``module:attribute``.

    The attribute may be a dataclass instance, a dataclass type (instantiated
    without arguments), or a zero-argument factory.

    Examples
    --------
    >>> type(load_target("lib_layered_flags.examples:ServerSettings")).__name__
    'ServerSettings'
    >>> load_target("lib_layered_flags.examples")
    Traceback (most recent call last):
    ...
    click.exceptions.BadParameter: expected 'module:attribute', got 'lib_layered_flags.examples'
    """

    module_name, sep, attribute = reference.partition(":")
    if not sep or not module_name or not attribute:
        raise click.BadParameter(f"expected 'module:attribute', got {reference!r}", param_hint="TARGET")
    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise click.BadParameter(f"cannot import {module_name!r}: {exc}", param_hint="TARGET") from exc
    for part in attribute.split("."):
        try:
            obj = getattr(obj, part)
        except AttributeError as exc:
            raise click.BadParameter(f"{module_name!r} has no attribute {attribute!r}", param_hint="TARGET") from exc
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return obj
    if callable(obj):
        return obj()
    raise click.BadParameter(f"{reference!r} is neither a dataclass nor a factory", param_hint="TARGET")


def _schema_for(result: Any, field_tag: str, env_tag: str, help_tag: str, ignore_untagged: bool) -> Schema:
    tags = TagNames(field=field_tag, env=env_tag, help=help_tag)
    return build_schema(result, tags=tags, ignore_untagged_fields=ignore_untagged)


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
