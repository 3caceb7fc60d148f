"""Config source resolver.

Purpose
-------
Decide, from one caller-supplied path, whether and how to load a
configuration file, then let the settings store read and merge it.

Rules
-----
* empty path → nothing is loaded, not an error;
* missing path → :class:`~lib_layered_flags.domain.errors.ConfigPathNotFound`;
* other ``stat`` failures → :class:`~lib_layered_flags.domain.errors.ConfigPathIndeterminate`;
* directory → search ``<dir>/<base name>.<ext>`` over every supported
  extension, the file's own extension picks the format;
* file with a supported extension → format inferred from the extension;
* file without an extension, or with an unknown one → the configured type.

Contents
--------
* :class:`ConfigSource` – classification result.
* :func:`classify_config_path` – ``stat`` + extension analysis.
* :func:`apply_config_source` – configure the settings store.
* :func:`merge_config_file` – the whole flow, returning the file used.
"""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass
from pathlib import Path

from ..domain.errors import ConfigPathIndeterminate, ConfigPathNotFound
from ..domain.formats import is_supported_format
from ..observability import log_debug, make_event
from .ports import SettingsStore


@dataclass(frozen=True, slots=True)
class ConfigSource:
    """Where the configuration comes from and how to parse it.

    Attributes
    ----------
    path:
        The caller-supplied path.
    is_directory:
        ``True`` when *path* is searched for ``<base name>.<ext>``.
    config_type:
        Explicit format to parse with, or ``None`` when the file extension
        decides.
    """

    path: str
    is_directory: bool
    config_type: str | None = None


def classify_config_path(path: str, config_type: str) -> ConfigSource:
    """Classify *path* as a directory or a file and pick the parse format.

    Examples
    --------
    >>> from tempfile import TemporaryDirectory
    >>> tmp = TemporaryDirectory()
    >>> target = Path(tmp.name) / "settings.xyz"
    >>> _ = target.write_text("workers: 2", encoding="utf-8")
    >>> classify_config_path(str(target), "yaml").config_type
    'yaml'
    >>> classify_config_path(tmp.name, "yaml").is_directory
    True
    >>> tmp.cleanup()
    """

    try:
        info = os.stat(path)
    except (FileNotFoundError, NotADirectoryError) as exc:
        raise ConfigPathNotFound(f"no such file or directory: {path!r}") from exc
    except OSError as exc:
        raise ConfigPathIndeterminate(f"{path!r} may or may not exist: {exc}") from exc

    if stat.S_ISDIR(info.st_mode):
        return ConfigSource(path=path, is_directory=True)
    extension = Path(path).suffix.lstrip(".")
    if extension and is_supported_format(extension):
        return ConfigSource(path=path, is_directory=False)
    return ConfigSource(path=path, is_directory=False, config_type=config_type)


def apply_config_source(source: ConfigSource, settings: SettingsStore, config_name: str) -> None:
    """Point *settings* at *source*."""

    settings.set_config_type(source.config_type or "")
    if source.is_directory:
        settings.add_config_path(source.path)
        settings.set_config_name(config_name)
    else:
        settings.set_config_file(source.path)
    log_debug(
        "config_path_resolved",
        **make_event(
            "config",
            source.path,
            {"directory": source.is_directory, "config_type": source.config_type},
        ),
    )


def merge_config_file(settings: SettingsStore, path: str, *, config_type: str, config_name: str) -> str | None:
    """Locate and merge the configuration behind *path*; return the file used.

    Returns ``None`` without touching *settings* when *path* is empty.

    Raises
    ------
    ConfigPathNotFound / ConfigPathIndeterminate
        From :func:`classify_config_path`.
    ConfigFileNotFound / ConfigParseError
        From the settings store while reading the file.
    """

    if not path:
        return None
    source = classify_config_path(path, config_type)
    apply_config_source(source, settings, config_name)
    settings.read_in_config()
    return settings.config_file_used()
