"""Field tag parsing.

Purpose
-------
Read the binding metadata attached to dataclass fields. Tags live in
``dataclasses.field(metadata=...)`` under configurable names::

    workers: int = field(
        default=128,
        metadata={"mapstructure": "workers", "env": "WORKERS", "usage": "Number of workers"},
    )

Contents
--------
* :data:`DEFAULT_FIELD_TAG` / :data:`DEFAULT_ENV_TAG` / :data:`DEFAULT_HELP_TAG`.
* :class:`FieldTag` – parsed field-key tag.
* :func:`parse_field_tag` – split ``"key,omitempty"`` style values.
* :func:`read_tag` – fetch a tag value from field metadata as stripped text.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Final

DEFAULT_FIELD_TAG: Final[str] = "mapstructure"
DEFAULT_ENV_TAG: Final[str] = "env"
DEFAULT_HELP_TAG: Final[str] = "usage"

#: Key segment that opts a tagged field out of binding and decoding.
SKIP_MARKER: Final[str] = "-"


@dataclass(frozen=True, slots=True)
class FieldTag:
    """Parsed field-key tag: the leaf key plus trailing options.

    An empty key (``",omitempty"``) means "use the attribute name".
    """

    key: str
    options: tuple[str, ...] = ()

    @property
    def skipped(self) -> bool:
        return self.key == SKIP_MARKER


def parse_field_tag(raw: str) -> FieldTag:
    """Split *raw* on the first comma into the leaf key and its options.

    Examples
    --------
    >>> parse_field_tag("workers,omitempty")
    FieldTag(key='workers', options=('omitempty',))
    >>> parse_field_tag(" bind-addr ")
    FieldTag(key='bind-addr', options=())
    >>> parse_field_tag("-").skipped
    True
    """

    key, _, rest = raw.partition(",")
    options = tuple(part.strip() for part in rest.split(",") if part.strip()) if rest else ()
    return FieldTag(key=key.strip(), options=options)


def read_tag(metadata: Mapping[str, Any], name: str) -> str | None:
    """Return the stripped tag *name* from *metadata* or ``None`` when absent or blank.

    >>> read_tag({"env": " WORKERS "}, "env")
    'WORKERS'
    >>> read_tag({"env": ""}, "env") is None
    True
    """

    value = metadata.get(name)
    if value is None:
        return None
    text = str(value).strip()
    return text or None
