"""Immutable binding schema derived from a result dataclass.

Purpose
-------
Hold the classification of every leaf field in one explicit, read-only
structure so later stages dispatch on :class:`FieldKind` instead of repeating
runtime type checks. The schema also snapshots default values, which keeps the
defaults independent from the decode target that is mutated at resolution.

Contents
--------
* :class:`uint` – ``int`` subclass that marks (and enforces) unsigned fields.
* :class:`FieldKind` – enumerated leaf kinds plus ``NESTED``.
* :func:`classify_value` – maps a runtime default to a :class:`FieldKind`.
* :class:`FieldSpec` – one leaf: dotted key, kind, default, help, env.
* :class:`Schema` – ordered, immutable collection of :class:`FieldSpec`.

System Role
-----------
Built by :mod:`lib_layered_flags.application.walker`, consumed by
:mod:`lib_layered_flags.application.binding` and the CLI ``schema`` command.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator


class uint(int):
    """Unsigned integer marker.

    A field whose default is a :class:`uint` becomes an option that rejects
    negative input, and decoded values keep the :class:`uint` type.

    Examples
    --------
    >>> uint(5) + 1
    6
    >>> isinstance(uint("7"), uint)
    True
    >>> uint(-1)
    Traceback (most recent call last):
    ...
    ValueError: uint cannot be negative: -1
    """

    def __new__(cls, value: Any = 0) -> uint:
        number = int.__new__(cls, value)
        if number < 0:
            raise ValueError(f"uint cannot be negative: {int(number)}")
        return number

    def __repr__(self) -> str:
        return f"uint({int(self)})"


class FieldKind(str, Enum):
    """Kinds of values the engine knows how to bind."""

    BOOL = "bool"
    INT = "int"
    UINT = "uint"
    FLOAT = "float"
    STRING = "string"
    STRING_SEQ = "string-seq"
    STRING_MAP = "string-map"
    NESTED = "nested"

    @property
    def is_container(self) -> bool:
        return self in (FieldKind.STRING_SEQ, FieldKind.STRING_MAP)


def classify_value(value: Any) -> FieldKind | None:
    """Return the :class:`FieldKind` of *value* or ``None`` when unsupported.

    The order of the checks matters: ``bool`` is an ``int`` subclass and
    :class:`uint` is too.

    Examples
    --------
    >>> classify_value(True), classify_value(uint(3)), classify_value(-3)
    (<FieldKind.BOOL: 'bool'>, <FieldKind.UINT: 'uint'>, <FieldKind.INT: 'int'>)
    >>> classify_value(["a", "b"]), classify_value({"k": "v"})
    (<FieldKind.STRING_SEQ: 'string-seq'>, <FieldKind.STRING_MAP: 'string-map'>)
    >>> classify_value([1, 2]) is None, classify_value(b"raw") is None
    (True, True)
    """

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return FieldKind.NESTED
    if isinstance(value, Enum):
        return None
    if isinstance(value, bool):
        return FieldKind.BOOL
    if isinstance(value, uint):
        return FieldKind.UINT
    if isinstance(value, int):
        return FieldKind.INT
    if isinstance(value, float):
        return FieldKind.FLOAT
    if isinstance(value, str):
        return FieldKind.STRING
    if isinstance(value, (list, tuple)):
        return FieldKind.STRING_SEQ if all(isinstance(item, str) for item in value) else None
    if isinstance(value, Mapping):
        pairs = value.items()
        return FieldKind.STRING_MAP if all(isinstance(k, str) and isinstance(v, str) for k, v in pairs) else None
    return None


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """Description of one bindable leaf field.

    Attributes
    ----------
    key:
        Dotted settings key (``log.limit.warn``); also the option name.
    kind:
        Leaf :class:`FieldKind` (never ``NESTED``).
    default:
        Snapshot of the field value at bind time.
    help:
        Help text shown next to the option.
    env:
        Environment variable bound to the key, or ``None``.
    attribute_path:
        Python attribute names leading from the result dataclass to the field.
    tag_options:
        Trailing tag segments (``omitempty`` …), kept for the decoder.
    """

    key: str
    kind: FieldKind
    default: Any
    help: str
    env: str | None
    attribute_path: tuple[str, ...]
    tag_options: tuple[str, ...] = ()

    @property
    def param_name(self) -> str:
        """Python identifier used for the option inside click.

        >>> FieldSpec("log.max-size", FieldKind.INT, 1, "h", None, ("log", "max_size")).param_name
        'log__max_size'
        """

        return self.key.replace(".", "__").replace("-", "_")

    def describe(self) -> dict[str, Any]:
        """Return a JSON-friendly view used by the CLI ``schema`` command."""

        default = dict(self.default) if self.kind is FieldKind.STRING_MAP else self.default
        if self.kind is FieldKind.STRING_SEQ:
            default = list(self.default)
        if self.kind is FieldKind.UINT:
            default = int(self.default)
        return {
            "key": self.key,
            "kind": self.kind.value,
            "default": default,
            "env": self.env,
            "help": self.help,
            "attribute": ".".join(self.attribute_path),
        }


@dataclass(frozen=True, slots=True)
class Schema:
    """Ordered, immutable collection of :class:`FieldSpec` entries.

    Examples
    --------
    >>> spec = FieldSpec("workers", FieldKind.INT, 128, "Workers", "WORKERS", ("workers",))
    >>> schema = Schema((spec,))
    >>> schema.keys()
    ('workers',)
    >>> schema["workers"].env
    'WORKERS'
    >>> "missing" in schema
    False
    """

    fields: tuple[FieldSpec, ...] = ()

    def __iter__(self) -> Iterator[FieldSpec]:
        return iter(self.fields)

    def __len__(self) -> int:
        return len(self.fields)

    def __contains__(self, key: object) -> bool:
        return any(spec.key == key for spec in self.fields)

    def __getitem__(self, key: str) -> FieldSpec:
        for spec in self.fields:
            if spec.key == key:
                return spec
        raise KeyError(key)

    def keys(self) -> tuple[str, ...]:
        return tuple(spec.key for spec in self.fields)


EMPTY_SCHEMA = Schema()
