"""Structured configuration file loaders.

Purpose
-------
Convert an on-disk configuration file into a Python mapping that the settings
store can flatten into dotted keys. Loaders are small wrappers around
``json``/``tomllib``/``yaml.safe_load`` and a strict dotenv parser so error
handling and observability live in one place.

Contents
--------
* :class:`BaseFileLoader` – shared helpers for reading files and validating
  mapping outputs.
* :class:`JSONFileLoader` / :class:`TOMLFileLoader` / :class:`YAMLFileLoader` /
  :class:`DotEnvFileLoader` – one loader per format family.
* :func:`loader_for` – format name → loader lookup (names from
  :data:`lib_layered_flags.domain.formats.SUPPORTED_FORMATS`).

System Role
-----------
Invoked by :meth:`lib_layered_flags.adapters.settings.layered.LayeredSettings.read_in_config`
once the config source resolver has picked a file and a format.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Final, Mapping

try:  # Python >= 3.11
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as tomllib  # type: ignore[no-redef]

import yaml

from ...domain.errors import ConfigParseError, NotFound
from ...domain.formats import SUPPORTED_FORMATS, normalise_format
from ...observability import log_debug, log_error


class BaseFileLoader:
    """Common utilities shared by the structured file loaders."""

    format_name: str = ""

    def _read(self, path: str) -> bytes:
        """Read *path* as bytes, raising :class:`NotFound` when the file is missing.

        Examples
        --------
        >>> from tempfile import NamedTemporaryFile
        >>> tmp = NamedTemporaryFile(delete=False)
        >>> _ = tmp.write(b"key = 'value'")
        >>> tmp.close()
        >>> BaseFileLoader()._read(tmp.name)[:3]
        b'key'
        >>> Path(tmp.name).unlink()
        """

        file_path = Path(path)
        if not file_path.is_file():
            raise NotFound(f"Configuration file not found: {path}")
        payload = file_path.read_bytes()
        log_debug("config_file_read", layer="config", key=path, size=len(payload))
        return payload

    def _fail(self, path: str, exc: Exception) -> ConfigParseError:
        log_error("config_file_invalid", layer="config", key=path, format=self.format_name, error=str(exc))
        return ConfigParseError(f"Invalid {self.format_name.upper()} in {path}: {exc}")

    def _ensure_mapping(self, data: object, *, path: str) -> Mapping[str, object]:
        """Ensure *data* behaves like a mapping, otherwise raise ``ConfigParseError``.

        Examples
        --------
        >>> BaseFileLoader()._ensure_mapping({"key": 1}, path="demo")
        {'key': 1}
        >>> BaseFileLoader()._ensure_mapping([1, 2], path="demo")
        Traceback (most recent call last):
        ...
        lib_layered_flags.domain.errors.ConfigParseError: File demo did not produce a mapping
        """

        if not isinstance(data, Mapping):
            raise ConfigParseError(f"File {path} did not produce a mapping")
        log_debug("config_file_loaded", layer="config", key=path, format=self.format_name)
        return data


class JSONFileLoader(BaseFileLoader):
    """Load JSON documents."""

    format_name = "json"

    def load(self, path: str) -> Mapping[str, object]:
        """Return mapping extracted from JSON file at *path*.

        Examples
        --------
        >>> from tempfile import NamedTemporaryFile
        >>> tmp = NamedTemporaryFile('w', delete=False, encoding='utf-8')
        >>> _ = tmp.write('{"workers": 8}')
        >>> tmp.close()
        >>> JSONFileLoader().load(tmp.name)["workers"]
        8
        >>> Path(tmp.name).unlink()
        """

        try:
            data = json.loads(self._read(path))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise self._fail(path, exc) from exc
        return self._ensure_mapping(data, path=path)


class TOMLFileLoader(BaseFileLoader):
    """Load TOML documents using the standard library parser."""

    format_name = "toml"

    def load(self, path: str) -> Mapping[str, object]:
        """Return mapping extracted from TOML file at *path*."""

        try:
            data = tomllib.loads(self._read(path).decode("utf-8"))
        except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
            raise self._fail(path, exc) from exc
        return self._ensure_mapping(data, path=path)


class YAMLFileLoader(BaseFileLoader):
    """Load YAML documents with ``yaml.safe_load``; an empty document is ``{}``."""

    format_name = "yaml"

    def load(self, path: str) -> Mapping[str, object]:
        try:
            data = yaml.safe_load(self._read(path))
        except yaml.YAMLError as exc:
            raise self._fail(path, exc) from exc
        return self._ensure_mapping({} if data is None else data, path=path)


class DotEnvFileLoader(BaseFileLoader):
    """Load ``KEY=value`` files; ``__`` in a key introduces nesting."""

    format_name = "dotenv"

    def load(self, path: str) -> Mapping[str, object]:
        """Return the nested mapping parsed from the dotenv file at *path*.

        Examples
        --------
        >>> import os
        >>> from tempfile import TemporaryDirectory
        >>> tmp = TemporaryDirectory()
        >>> target = Path(tmp.name) / 'settings.env'
        >>> body = os.linesep.join(['WORKERS=4', 'LOG__LEVEL="debug" # noisy'])
        >>> _ = target.write_text(body, encoding='utf-8')
        >>> data = DotEnvFileLoader().load(str(target))
        >>> data["workers"], data["log"]["level"]
        ('4', 'debug')
        >>> tmp.cleanup()
        """

        try:
            text = self._read(path).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise self._fail(path, exc) from exc
        result: dict[str, object] = {}
        for line_number, raw_line in enumerate(text.splitlines(), start=1):
            line = raw_line.strip()
            if not line or line.startswith("#"):
                continue
            if line.startswith("export "):
                line = line[len("export ") :].lstrip()
            if "=" not in line:
                raise self._fail(path, ValueError(f"malformed line {line_number}"))
            key, value = line.split("=", 1)
            try:
                _assign_nested(result, key.strip(), _strip_quotes(value.strip()))
            except ValueError as exc:
                raise self._fail(path, exc) from exc
        return self._ensure_mapping(result, path=path)


def _strip_quotes(value: str) -> str:
    """Trim surrounding quotes and inline comments from ``value``.

    Examples
    --------
    >>> _strip_quotes('"token"')
    'token'
    >>> _strip_quotes("value # comment")
    'value'
    """

    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    if value.startswith("#"):
        return ""
    if " #" in value:
        return value.split(" #", 1)[0].strip()
    return value


def _assign_nested(target: dict[str, object], key: str, value: object) -> None:
    """Assign ``value`` in ``target`` splitting *key* on ``__`` (lower-cased).

    >>> data: dict[str, object] = {}
    >>> _assign_nested(data, 'LOG__LIMIT__WARN', '5')
    >>> data
    {'log': {'limit': {'warn': '5'}}}
    """

    parts = [part.lower() for part in key.split("__")]
    cursor = target
    for part in parts[:-1]:
        child = cursor.setdefault(part, {})
        if not isinstance(child, dict):
            raise ValueError(f"Cannot overwrite scalar with mapping for key {key}")
        cursor = child
    cursor[parts[-1]] = value


_JSON = JSONFileLoader()
_YAML = YAMLFileLoader()
_DOTENV = DotEnvFileLoader()

_LOADERS: Final[dict[str, BaseFileLoader]] = {
    "json": _JSON,
    "toml": TOMLFileLoader(),
    "yaml": _YAML,
    "yml": _YAML,
    "env": _DOTENV,
    "dotenv": _DOTENV,
}


def loader_for(name: str) -> BaseFileLoader:
    """Return the loader registered for format *name*.

    >>> loader_for("yml") is loader_for("yaml")
    True
    """

    try:
        return _LOADERS[normalise_format(name)]
    except KeyError as exc:
        raise ConfigParseError(f"Unsupported config type: {name!r}") from exc
