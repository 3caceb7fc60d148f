"""Demonstration settings schema for a small network service.

Purpose
-------
Give documentation, the CLI, and the test-suite one realistic schema covering
every supported leaf kind and two levels of nesting.

Contents
--------
* :class:`LogLimits` / :class:`Logging` / :class:`ServerSettings` – the nested
  dataclasses.
* :data:`EXPECTED_KEYS` – dotted keys produced by binding
  :class:`ServerSettings`, in binding order.

System Role
-----------
Referenced as ``lib_layered_flags.examples:ServerSettings`` from the command
line (``lib_layered_flags resolve lib_layered_flags.examples:ServerSettings``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from ..domain.schema import uint


def _meta(key: str, usage: str | None = None, env: str | None = None) -> dict[str, str]:
    meta = {"mapstructure": key}
    if usage is not None:
        meta["usage"] = usage
    if env is not None:
        meta["env"] = env
    return meta


@dataclass
class LogLimits:
    warn: uint = field(default=uint(100), metadata=_meta("warn,omitempty", "Limit warn messages per sec", "LOG_LIMIT_WARN"))
    error: uint = field(
        default=uint(100), metadata=_meta("error,omitempty", "Limit error messages per sec", "LOG_LIMIT_ERROR")
    )


@dataclass
class Logging:
    level: str = field(default="info", metadata=_meta("level", "Log level", "LOG_LEVEL"))
    json: bool = field(default=False, metadata=_meta("json", "Log in JSON format", "LOG_JSON"))
    limits: LogLimits = field(default_factory=LogLimits, metadata=_meta("limit"))
    destinations: dict[str, str] = field(
        default_factory=lambda: {"error": "/var/log/error.log", "debug": "/var/log/debug.log"},
        metadata=_meta("dst", "Log to multiple destinations"),
    )


@dataclass
class ServerSettings:
    """Settings of a demo service; every current value is the default.

    Examples
    --------
    >>> ServerSettings().log.limits.warn
    uint(100)
    """

    workers: int = field(default=128, metadata=_meta("workers", "Number of workers to run", "WORKERS"))
    max_burst: float = field(default=1.25, metadata=_meta("max-burst", "Max burst allowed, e.g 1.25", "MAX_BURST"))
    bind_addr: str = field(default="0.0.0.0", metadata=_meta("bind-addr", "Addr to bind", "BIND_ADDR"))
    upstreams: list[str] = field(
        default_factory=lambda: ["http://www.foo.com/", "http://www.bar.com/"],
        metadata=_meta("upstreams", "List of upstream urls"),
    )
    log: Logging = field(default_factory=Logging, metadata=_meta("log"))


EXPECTED_KEYS: Final[tuple[str, ...]] = (
    "workers",
    "max-burst",
    "bind-addr",
    "upstreams",
    "log.level",
    "log.json",
    "log.limit.warn",
    "log.limit.error",
    "log.dst",
)
