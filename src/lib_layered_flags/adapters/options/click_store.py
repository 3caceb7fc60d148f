"""Click-backed option store.

Purpose
-------
Implement :class:`lib_layered_flags.application.ports.OptionStore` on top of a
``click.Command``. Each bound field becomes one ``click.Option`` appended to
``command.params``; after parsing, :meth:`ClickOptionStore.capture` records the
parsed value and whether the user passed it explicitly, which is what the
settings store needs to decide precedence.

Contents
--------
* :class:`StringSliceType` – ``--hosts=a,b --hosts=c`` → ``["a", "b", "c"]``.
* :class:`StringMapType` – ``--labels=a=1,b=2`` → ``{"a": "1", "b": "2"}``.
* :class:`OptionEntry` – the :class:`~lib_layered_flags.application.ports.BoundOption`
  implementation.
* :class:`ClickOptionStore` – define, look up, and capture options.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import click
from click.core import ParameterSource

from ...domain.schema import FieldKind, uint
from ...observability import log_debug, make_event


class StringSliceType(click.ParamType):
    """Comma-separated list of strings; repeated options are concatenated."""

    name = "strings"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> list[str]:
        if isinstance(value, (list, tuple)):
            return [str(item) for item in value]
        text = str(value).strip()
        return [part.strip() for part in text.split(",")] if text else []


class StringMapType(click.ParamType):
    """Comma-separated ``key=value`` pairs; repeated options are merged."""

    name = "key=value"

    def convert(self, value: Any, param: click.Parameter | None, ctx: click.Context | None) -> dict[str, str]:
        if isinstance(value, dict):
            return {str(key): str(item) for key, item in value.items()}
        result: dict[str, str] = {}
        for pair in filter(None, (part.strip() for part in str(value).split(","))):
            key, sep, item = pair.partition("=")
            if not sep or not key.strip():
                self.fail(f"{pair!r} must be formatted as key=value", param, ctx)
            result[key.strip()] = item.strip()
        return result


STRING_SLICE = StringSliceType()
STRING_MAP = StringMapType()


@dataclass
class OptionEntry:
    """One defined option plus its parsed state."""

    key: str
    kind: FieldKind
    option: click.Option
    default: Any
    changed: bool = False
    parsed: Any = field(default=None, repr=False)

    @property
    def value(self) -> Any:
        return self.parsed if self.changed else self.default

    def absorb(self, raw: Any, source: ParameterSource | None) -> None:
        """Record the value click parsed for this option."""

        self.changed = source is ParameterSource.COMMANDLINE
        self.parsed = _normalise(self.kind, raw)


class ClickOptionStore:
    """Define typed options on a ``click.Command`` keyed by dotted settings key.

    Examples
    --------
    >>> command = click.Command("demo")
    >>> store = ClickOptionStore(command)
    >>> _ = store.define(FieldKind.INT, "workers", 128, "Number of workers")
    >>> [param.name for param in command.params]
    ['workers']
    >>> ctx = command.make_context("demo", ["--workers=999"])
    >>> store.capture(ctx)
    >>> store.lookup("workers").changed, store.lookup("workers").value
    (True, 999)
    """

    def __init__(self, command: click.Command) -> None:
        self.command = command
        self._entries: dict[str, OptionEntry] = {}

    def define(self, kind: FieldKind, key: str, default: Any, help: str) -> click.Option:
        """Append a ``click.Option`` for *key* to the command and return it."""

        option = _build_option(kind, key, default, help)
        self.command.params.append(option)
        self._entries[key] = OptionEntry(key=key, kind=kind, option=option, default=default)
        log_debug("option_defined", **make_event("option", key, {"kind": kind.value}))
        return option

    def lookup(self, key: str) -> OptionEntry | None:
        return self._entries.get(key)

    def keys(self) -> list[str]:
        return list(self._entries)

    def capture(self, ctx: click.Context) -> None:
        """Record parsed values from the context that owns :attr:`command`.

        Parent contexts are searched so options defined on a group are seen
        from a subcommand callback.
        """

        owner: click.Context | None = ctx
        while owner is not None and owner.command is not self.command:
            owner = owner.parent
        if owner is None:
            log_debug("options_not_captured", **make_event("option", None, {"command": self.command.name}))
            return
        for entry in self._entries.values():
            name = entry.option.name
            if name is None or name not in owner.params:
                continue
            entry.absorb(owner.params[name], owner.get_parameter_source(name))


def _build_option(kind: FieldKind, key: str, default: Any, help: str) -> click.Option:
    name = key.replace(".", "__").replace("-", "_")
    flag = f"--{key}"
    if kind is FieldKind.BOOL:
        return click.Option([f"{flag}/--no-{key}", name], default=bool(default), help=help, show_default=True)
    if kind is FieldKind.STRING_SEQ:
        shown = ",".join(default)
        return click.Option(
            [flag, name], type=STRING_SLICE, multiple=True, default=[shown], help=help, show_default=shown
        )
    if kind is FieldKind.STRING_MAP:
        shown = ",".join(f"{k}={v}" for k, v in default.items())
        return click.Option(
            [flag, name], type=STRING_MAP, multiple=True, default=[shown], help=help, show_default=shown
        )
    types = {
        FieldKind.UINT: click.IntRange(min=0),
        FieldKind.INT: click.INT,
        FieldKind.FLOAT: click.FLOAT,
        FieldKind.STRING: click.STRING,
    }
    if kind not in types:
        raise TypeError(f"cannot define an option of kind {kind.value!r} for {key!r}")
    return click.Option([flag, name], type=types[kind], default=default, help=help, show_default=True)


def _normalise(kind: FieldKind, raw: Any) -> Any:
    """Collapse repeated container options and restore :class:`uint`."""

    if kind is FieldKind.STRING_SEQ:
        return [item for chunk in raw or () for item in chunk]
    if kind is FieldKind.STRING_MAP:
        merged: dict[str, str] = {}
        for chunk in raw or ():
            merged.update(chunk)
        return merged
    if kind is FieldKind.UINT and raw is not None:
        return uint(raw)
    return raw
