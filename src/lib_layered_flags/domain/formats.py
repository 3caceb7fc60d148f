"""Supported configuration file formats.

The order of :data:`SUPPORTED_FORMATS` is the order in which a configuration
directory is searched for ``<base name>.<ext>``.
"""

from __future__ import annotations

from typing import Final

SUPPORTED_FORMATS: Final[tuple[str, ...]] = ("json", "toml", "yaml", "yml", "env", "dotenv")


def normalise_format(name: str) -> str:
    """Return *name* lower-cased without a leading dot.

    >>> normalise_format(".YAML")
    'yaml'
    """

    return name.strip().lower().lstrip(".")


def is_supported_format(name: str) -> bool:
    """Return ``True`` when *name* (case-insensitive, optional dot) is a known format.

    >>> is_supported_format(".YML"), is_supported_format("xml"), is_supported_format("")
    (True, False, False)
    """

    return normalise_format(name) in SUPPORTED_FORMATS
