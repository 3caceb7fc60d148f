"""Example configuration file generation.

Purpose
-------
Render the defaults of a settings schema as a ready-to-edit configuration
file, so the file format always matches the dotted keys the binder expects.
This module belongs to the outer ring of the architecture and only reads a
:class:`~lib_layered_flags.domain.schema.Schema`.

Contents
    - ``GENERATED_FORMATS``: formats that can be written (TOML is read-only).
    - ``ExampleSpec``: dataclass capturing a relative path and text content.
    - ``generate_examples``: public orchestration expressed through helper
      verbs.
    - ``render_defaults``: schema defaults → file text for one format.
    - ``_write_examples`` / ``_should_write``: tiny filesystem helpers.

System Role
-----------
Called by the ``generate-examples`` CLI command and by tests that need a
configuration directory populated with valid files.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final, Iterable, Iterator

import yaml

from ..adapters.settings.layered import nest
from ..domain.formats import normalise_format
from ..domain.schema import FieldKind, Schema
from ..observability import log_info

GENERATED_FORMATS: Final[tuple[str, ...]] = ("yaml", "yml", "json", "env", "dotenv")


@dataclass(slots=True)
class ExampleSpec:
    """Describe a single example file to be written to disk.

    Attributes
    ----------
    relative_path:
        Path relative to the destination directory.
    content:
        File contents (UTF-8 text).
    """

    relative_path: Path
    content: str


def generate_examples(
    destination: str | Path,
    schema: Schema,
    *,
    formats: Iterable[str] = ("yaml",),
    config_name: str = "config",
    force: bool = False,
) -> list[Path]:
    """Write ``<config_name>.<format>`` files holding the defaults of *schema*.

    Why
    ----
    Operators start from a complete file instead of guessing key names.

    Parameters
    ----------
    destination:
        Directory that will receive the files; created when missing.
    formats:
        Any of :data:`GENERATED_FORMATS`.
    force:
        When ``True`` existing files are overwritten; otherwise they are
        skipped.

    Returns
    -------
    list[Path]
        File paths written during this invocation.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> from lib_layered_flags.application.walker import build_schema
    >>> from lib_layered_flags.examples.server import ServerSettings
    >>> tmp = TemporaryDirectory()
    >>> written = generate_examples(tmp.name, build_schema(ServerSettings()), formats=["json"])
    >>> [path.name for path in written]
    ['config.json']
    >>> tmp.cleanup()
    """

    dest = Path(destination)
    specs = _build_specs(schema, formats=formats, config_name=config_name)
    written = _write_examples(dest, specs, force)
    log_info("examples_generated", layer="config", key=str(dest), files=len(written))
    return written


def render_defaults(schema: Schema, config_format: str) -> str:
    """Return the defaults of *schema* serialised as *config_format*.

    Examples
    --------
    >>> from lib_layered_flags.domain.schema import FieldSpec
    >>> schema = Schema((FieldSpec("log.level", FieldKind.STRING, "info", "Log level", None, ("log", "level")),))
    >>> print(render_defaults(schema, "yaml"), end="")
    log:
      level: info
    >>> print(render_defaults(schema, "env"), end="")
    LOG__LEVEL=info
    """

    fmt = normalise_format(config_format)
    if fmt not in GENERATED_FORMATS:
        raise ValueError(f"cannot generate {config_format!r} files; choose one of {', '.join(GENERATED_FORMATS)}")
    if fmt in ("env", "dotenv"):
        return "".join(f"{spec.key.replace('.', '__').upper()}={_env_text(spec.kind, spec.default)}\n" for spec in schema)
    data = nest({spec.key: _plain(spec.default) for spec in schema})
    if fmt == "json":
        return json.dumps(data, indent=2) + "\n"
    return yaml.safe_dump(data, sort_keys=False, default_flow_style=False)


def _build_specs(schema: Schema, *, formats: Iterable[str], config_name: str) -> Iterator[ExampleSpec]:
    for config_format in formats:
        fmt = normalise_format(config_format)
        yield ExampleSpec(Path(f"{config_name}.{fmt}"), render_defaults(schema, fmt))


def _write_examples(destination: Path, specs: Iterator[ExampleSpec], force: bool) -> list[Path]:
    """Write all ``specs`` under *destination* honouring the *force* flag."""

    written: list[Path] = []
    for spec in specs:
        path = destination / spec.relative_path
        if not _should_write(path, force):
            continue
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(spec.content, encoding="utf-8")
        written.append(path)
    return written


def _should_write(path: Path, force: bool) -> bool:
    return force or not path.exists()


def _plain(value: Any) -> Any:
    # yaml.safe_dump refuses int subclasses such as uint
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return int(value)
    if isinstance(value, list):
        return [str(item) for item in value]
    if isinstance(value, dict):
        return {str(key): str(item) for key, item in value.items()}
    return value


def _env_text(kind: FieldKind, value: Any) -> str:
    if kind is FieldKind.BOOL:
        return "true" if value else "false"
    if kind is FieldKind.STRING_SEQ:
        return ",".join(value)
    if kind is FieldKind.STRING_MAP:
        return ",".join(f"{key}={item}" for key, item in value.items())
    return str(value)
