"""Shared helpers for the test-suite.

Purpose
-------
Build a :class:`FlagBinder` around a fresh ``click.Command`` with an isolated
environment mapping, and run the bind → parse → resolve sequence the way an
application does, so each test only states what differs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

import click

from lib_layered_flags import FlagBinder, LayeredSettings
from lib_layered_flags.examples import ServerSettings

SERVER_DEFAULTS_YAML = """\
workers: 256
max-burst: 1.5
bind-addr: 127.0.0.255
upstreams:
  - http://www.example1.com/
  - http://www.example2.com/
  - http://www.example3.com/
log:
  level: warn
  json: true
  limit:
    warn: 20
    error: 10
"""


@dataclass
class BinderSandbox:
    """A bound :class:`FlagBinder` plus the environment mapping it reads."""

    binder: FlagBinder
    command: click.Command
    environ: dict[str, str] = field(default_factory=dict)

    def resolve(self, args: Sequence[str] = ()) -> Any:
        """Parse *args* against the bound command and resolve the settings."""

        ctx = self.command.make_context(self.command.name or "app", list(args))
        return self.binder.unmarshal_exact(ctx)

    @property
    def result(self) -> Any:
        return self.binder.result


def make_sandbox(
    result: Any | None = None,
    *,
    environ: dict[str, str] | None = None,
    bind: bool = True,
    **options: Any,
) -> BinderSandbox:
    """Return a sandbox around *result* (a fresh :class:`ServerSettings` by default)."""

    env = dict(environ or {})
    command = click.Command("app")
    binder = FlagBinder(
        result=ServerSettings() if result is None else result,
        command=command,
        settings=LayeredSettings(environ=env),
        **options,
    )
    if bind:
        binder.add_flags()
    return BinderSandbox(binder=binder, command=command, environ=env)


def write_config(directory: Path, name: str, body: str) -> Path:
    """Write *body* to ``directory / name`` and return the path."""

    directory.mkdir(parents=True, exist_ok=True)
    target = directory / name
    target.write_text(body, encoding="utf-8")
    return target


def option_names(command: click.Command) -> list[str]:
    """Return the long option names registered on *command*, without ``--``."""

    names: list[str] = []
    for param in command.params:
        if isinstance(param, click.Option):
            names.append(param.opts[0][2:])
    return names
