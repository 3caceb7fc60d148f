"""Application-layer ports describing collaborator responsibilities.

Purpose
-------
Define the structural contracts the binding engine relies on so the
coordinator can orchestrate behaviour without depending on concrete
implementations. The defaults live in :mod:`lib_layered_flags.adapters`.

Contents
--------
* :class:`BoundOption` – a parsed command-line option as seen by the settings
  store.
* :class:`OptionStore` – defines and looks up typed command-line options.
* :class:`SettingsStore` – layered per-key resolution plus config-file
  handling and strict decoding.
* :class:`FileLoader` – parses one structured configuration file.

System Role
-----------
These protocols keep the walk/bind/resolve logic testable with in-memory
fakes and let callers bring their own settings store.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Protocol, runtime_checkable

from ..domain.schema import FieldKind


@runtime_checkable
class BoundOption(Protocol):
    """Snapshot of a command-line option after parsing.

    Attributes
    ----------
    changed:
        ``True`` only when the user passed the option explicitly.
    value:
        Parsed value, or the option default when not changed.
    """

    key: str
    changed: bool
    value: Any


@runtime_checkable
class OptionStore(Protocol):
    """Expose named, typed command-line options.

    Why
    ----
    The engine only needs "define" and "look up"; parsing belongs to the
    command-line framework.
    """

    def define(self, kind: FieldKind, key: str, default: Any, help: str) -> Any:
        """Define an option named *key* of type *kind* with *default* and *help*."""

    def lookup(self, key: str) -> BoundOption | None:
        """Return the option defined under *key* or ``None``."""


@runtime_checkable
class SettingsStore(Protocol):
    """Layered key/value store resolving option > env > config > default per key."""

    def set_default(self, key: str, value: Any) -> None:
        """Register the lowest-precedence value for *key*."""

    def bind_option(self, key: str, option: BoundOption | None) -> None:
        """Let an explicitly passed *option* override every other layer."""

    def bind_env(self, key: str, variable: str) -> None:
        """Let environment *variable* override config and default layers."""

    def add_config_path(self, path: str) -> None:
        """Add a directory searched for ``<config name>.<ext>``."""

    def set_config_name(self, name: str) -> None:
        """Set the base name used for directory searches."""

    def set_config_file(self, path: str) -> None:
        """Use exactly *path* as the configuration file."""

    def set_config_type(self, config_type: str) -> None:
        """Parse the configuration file as *config_type* regardless of extension."""

    def read_in_config(self) -> None:
        """Locate, parse, and merge the configuration file."""

    def config_file_used(self) -> str | None:
        """Return the configuration file merged by :meth:`read_in_config`."""

    def get(self, key: str) -> Any:
        """Return the effective value for *key*."""

    def origin(self, key: str) -> str | None:
        """Return the name of the layer that produced the value of *key*."""

    def all_settings(self) -> dict[str, Any]:
        """Return every effective value as a nested mapping."""

    def unmarshal_exact(
        self,
        target: Any,
        hooks: Iterable[Any] = (),
        *,
        tag_name: str = ...,
        ignore_untagged_fields: bool = ...,
    ) -> Any:
        """Strict-decode all effective values into *target*."""


@runtime_checkable
class FileLoader(Protocol):
    """Parse a structured configuration file into a mapping."""

    def load(self, path: str) -> Mapping[str, object]:
        """Read *path* and return a mapping or raise ``ConfigParseError``."""
