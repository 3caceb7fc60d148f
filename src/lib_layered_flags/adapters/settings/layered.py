"""Layered settings store.

Purpose
-------
Implement :class:`lib_layered_flags.application.ports.SettingsStore`: keep four
independent layers per dotted key and answer "what is the effective value" by
walking them from highest to lowest precedence::

    option (explicitly passed) > environment variable > config file > default

Contents
--------
* :data:`LAYERS` – layer names in precedence order.
* :class:`LayeredSettings` – the store: defaults, bindings, config discovery,
  lookups, provenance, and strict decoding.
* :func:`flatten` / :func:`nest` – conversions between nested mappings and
  dotted keys.

System Role
-----------
Bindings are registered by :mod:`lib_layered_flags.application.binding`, the
config file is selected by :mod:`lib_layered_flags.application.config_source`,
and :class:`lib_layered_flags.core.FlagBinder` triggers the final decode.
Keys are case-insensitive and stored lower-case. Environment variables are read
lazily at lookup time so changes made before resolution are honoured.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final, Iterable

from ...application.ports import BoundOption
from ...domain.errors import BindingError, ConfigFileNotFound, ConfigParseError
from ...domain.formats import SUPPORTED_FORMATS, is_supported_format
from ...domain.tags import DEFAULT_FIELD_TAG
from ...observability import log_debug, log_info, make_event
from ..decoder.strict import DecoderConfig, DecoderHook, StrictDecoder
from ..file_loaders.structured import loader_for

LAYERS: Final[tuple[str, ...]] = ("option", "env", "config", "default")


class LayeredSettings:
    """Resolve settings keys across option, env, config, and default layers.

    Examples
    --------
    >>> store = LayeredSettings(environ={"WORKERS": "512"})
    >>> store.set_default("workers", 128)
    >>> store.get("workers")
    128
    >>> store.bind_env("workers", "WORKERS")
    >>> store.get("workers"), store.origin("workers")
    ('512', 'env')
    """

    def __init__(self, *, environ: Mapping[str, str] | None = None) -> None:
        self._environ: Mapping[str, str] = os.environ if environ is None else environ
        self._defaults: dict[str, Any] = {}
        self._options: dict[str, BoundOption] = {}
        self._env: dict[str, str] = {}
        self._config: dict[str, Any] = {}
        self._config_paths: list[str] = []
        self._config_name = "config"
        self._config_file: str | None = None
        self._config_type = ""
        self._config_file_used: str | None = None

    def set_default(self, key: str, value: Any) -> None:
        self._defaults[key.lower()] = value

    def bind_option(self, key: str, option: BoundOption | None) -> None:
        if option is None:
            raise BindingError(f"cannot bind {key!r}: option is not defined")
        self._options[key.lower()] = option

    def bind_env(self, key: str, variable: str) -> None:
        if not variable:
            raise BindingError(f"cannot bind {key!r}: environment variable name is empty")
        self._env[key.lower()] = variable

    def add_config_path(self, path: str) -> None:
        if path and path not in self._config_paths:
            self._config_paths.append(path)

    def set_config_name(self, name: str) -> None:
        self._config_name = name
        self._config_file = None

    def set_config_file(self, path: str) -> None:
        self._config_file = path

    def set_config_type(self, config_type: str) -> None:
        self._config_type = config_type

    def config_file_used(self) -> str | None:
        return self._config_file_used

    def read_in_config(self) -> None:
        """Locate the configuration file, parse it, and replace the config layer.

        Raises
        ------
        ConfigFileNotFound
            No candidate exists in the registered directories.
        ConfigParseError
            The file format is unsupported or its content is malformed.
        """

        path = self._locate_config_file()
        config_type = self._config_type or Path(path).suffix.lstrip(".")
        if not is_supported_format(config_type):
            raise ConfigParseError(f"Unsupported config type {config_type!r} for {path}")
        data = loader_for(config_type).load(path)
        self._config = _lower_keys(data)
        self._config_file_used = path
        log_info("config_merged", **make_event("config", path, {"format": config_type.lower()}))

    def get(self, key: str) -> Any:
        """Return the effective value of *key* or ``None`` when no layer knows it."""

        return self._resolve(key.lower())[1]

    def origin(self, key: str) -> str | None:
        """Return the layer name that produced the value of *key*.

        >>> store = LayeredSettings(environ={})
        >>> store.set_default("workers", 1)
        >>> store.origin("workers"), store.origin("missing")
        ('default', None)
        """

        return self._resolve(key.lower())[0]

    def is_set(self, key: str) -> bool:
        return self.origin(key) is not None

    def all_keys(self) -> list[str]:
        """Return every known dotted key, defaults first, in registration order."""

        keys: dict[str, None] = dict.fromkeys(self._defaults)
        keys.update(dict.fromkeys(self._options))
        keys.update(dict.fromkeys(self._env))
        keys.update(dict.fromkeys(self._flat_config()))
        return list(keys)

    def all_settings(self) -> dict[str, Any]:
        """Return every effective value nested by dotted key.

        >>> store = LayeredSettings(environ={})
        >>> store.set_default("log.level", "info")
        >>> store.set_default("workers", 4)
        >>> store.all_settings()
        {'log': {'level': 'info'}, 'workers': 4}
        """

        flat = {}
        for key in self.all_keys():
            layer, value = self._resolve(key)
            if layer is not None:
                flat[key] = value
        return nest(flat)

    def unmarshal_exact(
        self,
        target: Any,
        hooks: Iterable[DecoderHook] = (),
        *,
        tag_name: str = DEFAULT_FIELD_TAG,
        ignore_untagged_fields: bool = False,
    ) -> Any:
        """Decode every effective value into *target*, rejecting unknown keys."""

        config = DecoderConfig(tag_name=tag_name, ignore_untagged_fields=ignore_untagged_fields)
        for hook in hooks:
            hook(config)
        config.error_unused = True
        return StrictDecoder(config).decode(self.all_settings(), target)

    def _resolve(self, key: str) -> tuple[str | None, Any]:
        option = self._options.get(key)
        if option is not None and option.changed:
            return "option", option.value
        variable = self._env.get(key)
        if variable is not None:
            raw = self._environ.get(variable)
            if raw:
                return "env", raw
        flat = self._flat_config()
        if key in flat:
            return "config", flat[key]
        if key in self._defaults:
            return "default", self._defaults[key]
        if option is not None:
            return "default", option.value
        return None, None

    def _flat_config(self) -> dict[str, Any]:
        leaves = set(self._defaults) | set(self._options) | set(self._env)
        return flatten(self._config, leaves=leaves)

    def _locate_config_file(self) -> str:
        if self._config_file:
            return self._config_file
        for directory in self._config_paths:
            for extension in SUPPORTED_FORMATS:
                candidate = Path(directory) / f"{self._config_name}.{extension}"
                if candidate.is_file():
                    found = str(candidate.resolve())
                    log_debug("config_path_resolved", **make_event("config", found, {"directory": directory}))
                    return found
        searched = ", ".join(self._config_paths) or "<none>"
        raise ConfigFileNotFound(f"Config file {self._config_name!r} not found in [{searched}]")


def flatten(data: Mapping[str, Any], *, leaves: Iterable[str] = (), prefix: str = "") -> dict[str, Any]:
    """Flatten nested mappings into dotted keys, stopping at known *leaves*.

    A mapping stored under a known leaf key (a string-map setting) stays a
    value instead of being split into child keys. ``None`` values and empty
    sections carry no setting and are dropped, so they never shadow keys
    resolved from other layers.

    Examples
    --------
    >>> flatten({"log": {"level": "debug", "dst": {"error": "/tmp/e"}}}, leaves={"log.dst"})
    {'log.level': 'debug', 'log.dst': {'error': '/tmp/e'}}
    >>> flatten({"log": {}, "workers": None, "dst": {}}, leaves={"dst"})
    {'dst': {}}
    """

    known = leaves if isinstance(leaves, (set, frozenset)) else set(leaves)
    result: dict[str, Any] = {}
    for key, value in data.items():
        dotted = f"{prefix}.{key}" if prefix else str(key)
        if value is None:
            continue
        if isinstance(value, Mapping) and dotted not in known:
            result.update(flatten(value, leaves=known, prefix=dotted))
        else:
            result[dotted] = value
    return result


def nest(flat: Mapping[str, Any]) -> dict[str, Any]:
    """Expand dotted keys into nested dictionaries.

    A leaf that is also the parent of a later key is replaced by a mapping,
    which the decoder then rejects for the leaf field. A section built from
    earlier keys is never replaced by a later scalar.

    >>> nest({"log.limit.warn": 5, "workers": 2})
    {'log': {'limit': {'warn': 5}}, 'workers': 2}
    >>> nest({"log.level": "info", "log": None})
    {'log': {'level': 'info'}}
    """

    result: dict[str, Any] = {}
    for dotted, value in flat.items():
        *parents, leaf = dotted.split(".")
        cursor = result
        for part in parents:
            child = cursor.get(part)
            if not isinstance(child, dict):
                child = {}
                cursor[part] = child
            cursor = child
        if isinstance(cursor.get(leaf), dict) and not isinstance(value, Mapping):
            continue
        cursor[leaf] = value
    return result


def _lower_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    return {
        str(key).lower(): _lower_keys(value) if isinstance(value, Mapping) else value for key, value in data.items()
    }
