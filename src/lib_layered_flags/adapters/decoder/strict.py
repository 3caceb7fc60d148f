"""Strict decoder copying resolved settings onto a dataclass instance.

Purpose
-------
Implement the final step of resolution: walk a nested mapping of resolved
settings and assign each value to the matching dataclass field, converting
loosely typed input (environment strings, YAML scalars) to the type of the
field. Keys without a destination field are collected and reported together.

Contents
--------
* :class:`DecoderConfig` – knobs the caller may adjust through decoder hooks.
* :data:`DecoderHook` – callable receiving the mutable :class:`DecoderConfig`.
* :class:`StrictDecoder` – performs the in-place decode.
* :func:`convert_value` – weak/strict conversion for a single leaf.

System Role
-----------
Called by :meth:`lib_layered_flags.adapters.settings.layered.LayeredSettings.unmarshal_exact`.
Field names are matched through the configured tag name, exactly like the
binding walk, so a renamed tag drives binding and decoding identically.
"""

from __future__ import annotations

import dataclasses
import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable

from ...domain.errors import UnmarshalError
from ...domain.schema import FieldKind, classify_value, uint
from ...domain.tags import DEFAULT_FIELD_TAG, parse_field_tag, read_tag
from ...observability import log_debug

_TRUE_STRINGS = frozenset({"1", "t", "true", "y", "yes", "on"})
_FALSE_STRINGS = frozenset({"0", "f", "false", "n", "no", "off", ""})


@dataclass(slots=True)
class DecoderConfig:
    """Decoder behaviour; hooks mutate an instance before each decode.

    Attributes
    ----------
    tag_name:
        Metadata key holding the settings key of each field.
    ignore_untagged_fields:
        Skip fields without ``tag_name`` instead of matching them by attribute
        name.
    weakly_typed_input:
        Convert between strings, numbers and booleans where the meaning is
        unambiguous (``"512"`` → ``512``).
    error_unused:
        Report settings keys that have no destination field.
    """

    tag_name: str = DEFAULT_FIELD_TAG
    ignore_untagged_fields: bool = False
    weakly_typed_input: bool = True
    error_unused: bool = True


DecoderHook = Callable[[DecoderConfig], None]


class StrictDecoder:
    """Decode nested mappings into dataclass instances in place.

    Examples
    --------
    >>> from dataclasses import dataclass, field
    >>> @dataclass
    ... class Demo:
    ...     workers: int = field(default=1, metadata={"mapstructure": "workers"})
    >>> target = Demo()
    >>> StrictDecoder().decode({"workers": "8"}, target).workers
    8
    >>> StrictDecoder().decode({"threads": 2}, target)
    Traceback (most recent call last):
    ...
    lib_layered_flags.domain.errors.UnmarshalError: 1 error(s) decoding:
    * 'threads' has no destination field
    """

    def __init__(self, config: DecoderConfig | None = None) -> None:
        self.config = config or DecoderConfig()

    def decode(self, data: Mapping[str, Any], target: Any) -> Any:
        """Assign *data* onto *target* and return it.

        Raises
        ------
        UnmarshalError
            When a key has no destination field (``error_unused``) or a value
            cannot be converted to the field type. All problems are collected
            before raising.
        """

        if not dataclasses.is_dataclass(target) or isinstance(target, type):
            raise UnmarshalError(f"decode target must be a dataclass instance, got {type(target).__name__}")
        errors: list[str] = []
        unknown: list[str] = []
        self._decode_into(target, data, "", errors, unknown)
        if errors:
            lines = "\n".join(f"* {message}" for message in errors)
            raise UnmarshalError(f"{len(errors)} error(s) decoding:\n{lines}", unknown_keys=unknown)
        log_debug("settings_decoded", layer="decode", key=None, target=type(target).__name__)
        return target

    def _decode_into(
        self,
        target: Any,
        data: Mapping[str, Any],
        prefix: str,
        errors: list[str],
        unknown: list[str],
    ) -> None:
        if target.__dataclass_params__.frozen:
            errors.append(f"{type(target).__name__} is frozen and cannot be decoded into")
            return
        destinations = self._destinations(target)
        for raw_key, value in data.items():
            dotted = f"{prefix}.{raw_key}" if prefix else str(raw_key)
            entry = destinations.get(str(raw_key).lower())
            if entry is None:
                if self.config.error_unused:
                    unknown.append(dotted)
                    errors.append(f"'{dotted}' has no destination field")
                continue
            self._assign(target, entry, value, dotted, errors, unknown)

    def _destinations(self, target: Any) -> dict[str, dataclasses.Field[Any]]:
        """Map lower-cased settings names to the dataclass fields of *target*."""

        result: dict[str, dataclasses.Field[Any]] = {}
        for item in dataclasses.fields(target):
            raw = read_tag(item.metadata, self.config.tag_name)
            if raw is None:
                if self.config.ignore_untagged_fields:
                    continue
                name = item.name
            else:
                tag = parse_field_tag(raw)
                if tag.skipped:
                    continue
                name = tag.key or item.name
            result[name.lower()] = item
        return result

    def _assign(
        self,
        target: Any,
        item: dataclasses.Field[Any],
        value: Any,
        dotted: str,
        errors: list[str],
        unknown: list[str],
    ) -> None:
        current = getattr(target, item.name, None)
        nested_type = _nested_type(target, item, current)
        if nested_type is not None:
            if not isinstance(value, Mapping):
                errors.append(f"'{dotted}' expected a mapping, got {type(value).__name__}")
                return
            if current is None:
                try:
                    current = nested_type()
                except TypeError as exc:
                    errors.append(f"'{dotted}' cannot build {nested_type.__name__}: {exc}")
                    return
                setattr(target, item.name, current)
            self._decode_into(current, value, dotted, errors, unknown)
            return

        kind = classify_value(current) if current is not None else _kind_from_hint(target, item)
        if kind is None:
            setattr(target, item.name, value)
            return
        try:
            converted = convert_value(kind, value, weak=self.config.weakly_typed_input)
        except (TypeError, ValueError) as exc:
            errors.append(f"'{dotted}' {exc}")
            return
        if isinstance(current, tuple) and isinstance(converted, list):
            converted = tuple(converted)
        setattr(target, item.name, converted)


def convert_value(kind: FieldKind, value: Any, *, weak: bool = True) -> Any:
    """Convert *value* to the Python type behind *kind*.

    Examples
    --------
    >>> convert_value(FieldKind.INT, "512")
    512
    >>> convert_value(FieldKind.BOOL, "on"), convert_value(FieldKind.UINT, 3)
    (True, uint(3))
    >>> convert_value(FieldKind.STRING_SEQ, "a,b")
    ['a', 'b']
    >>> convert_value(FieldKind.STRING_MAP, "a=1,b=2")
    {'a': '1', 'b': '2'}
    >>> convert_value(FieldKind.INT, "512", weak=False)
    Traceback (most recent call last):
    ...
    TypeError: expected type 'int', got unconvertible type 'str'
    """

    if kind is FieldKind.BOOL:
        return _to_bool(value, weak)
    if kind is FieldKind.INT:
        return _to_int(value, weak)
    if kind is FieldKind.UINT:
        number = _to_int(value, weak)
        if number < 0:
            raise ValueError(f"cannot store negative value {number} in an unsigned field")
        return uint(number)
    if kind is FieldKind.FLOAT:
        return _to_float(value, weak)
    if kind is FieldKind.STRING:
        return _to_str(value, weak)
    if kind is FieldKind.STRING_SEQ:
        return _to_str_list(value, weak)
    if kind is FieldKind.STRING_MAP:
        return _to_str_map(value, weak)
    raise TypeError(f"cannot convert into {kind.value!r}")


def _mismatch(expected: str, value: Any) -> TypeError:
    return TypeError(f"expected type '{expected}', got unconvertible type '{type(value).__name__}'")


def _to_bool(value: Any, weak: bool) -> bool:
    if isinstance(value, bool):
        return value
    if weak and isinstance(value, (int, float)):
        return value != 0
    if weak and isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
        raise ValueError(f"cannot parse {value!r} as bool")
    raise _mismatch("bool", value)


def _to_int(value: Any, weak: bool) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return int(value)
    if weak and isinstance(value, bool):
        return int(value)
    if weak and isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"cannot store {value!r} in an integer field")
        return int(value)
    if weak and isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            return int(text, 0)
    raise _mismatch("int", value)


def _to_float(value: Any, weak: bool) -> float:
    if isinstance(value, float):
        return value
    if isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if weak and isinstance(value, (bool, str)):
        return float(value.strip() if isinstance(value, str) else value)
    raise _mismatch("float", value)


def _to_str(value: Any, weak: bool) -> str:
    if isinstance(value, str):
        return value
    if weak and isinstance(value, bool):
        return "1" if value else "0"
    if weak and isinstance(value, (int, float)):
        return str(value)
    raise _mismatch("str", value)


def _to_str_list(value: Any, weak: bool) -> list[str]:
    if isinstance(value, str):
        text = value.strip()
        return [part.strip() for part in text.split(",")] if text else []
    if isinstance(value, (list, tuple)):
        return [_to_str(item, weak) for item in value]
    raise _mismatch("list[str]", value)


def _to_str_map(value: Any, weak: bool) -> dict[str, str]:
    if isinstance(value, Mapping):
        return {str(key): _to_str(item, weak) for key, item in value.items()}
    if weak and isinstance(value, str):
        result: dict[str, str] = {}
        for pair in filter(None, (part.strip() for part in value.split(","))):
            key, sep, item = pair.partition("=")
            if not sep:
                raise ValueError(f"{pair!r} must be formatted as key=value")
            result[key.strip()] = item.strip()
        return result
    raise _mismatch("dict[str, str]", value)


def _field_hint(target: Any, item: dataclasses.Field[Any]) -> Any:
    try:
        hints = typing.get_type_hints(type(target))
    except (NameError, TypeError):
        return None
    hint = hints.get(item.name)
    origin = typing.get_origin(hint)
    if origin is typing.Union or origin is types.UnionType:
        members = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        hint = members[0] if len(members) == 1 else None
    return hint


def _nested_type(target: Any, item: dataclasses.Field[Any], current: Any) -> type | None:
    if current is not None:
        return type(current) if dataclasses.is_dataclass(current) and not isinstance(current, type) else None
    hint = _field_hint(target, item)
    if isinstance(hint, type) and dataclasses.is_dataclass(hint):
        return hint
    return None


def _kind_from_hint(target: Any, item: dataclasses.Field[Any]) -> FieldKind | None:
    hint = _field_hint(target, item)
    origin = typing.get_origin(hint) or hint
    simple = {bool: FieldKind.BOOL, uint: FieldKind.UINT, int: FieldKind.INT, float: FieldKind.FLOAT, str: FieldKind.STRING}
    if hint in simple:
        return simple[hint]
    if origin in (list, tuple):
        return FieldKind.STRING_SEQ
    if origin in (dict, Mapping):
        return FieldKind.STRING_MAP
    return None
