"""Strict decoder: in-place assignment, weak typing, and unknown-key rejection."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import pytest

from lib_layered_flags.adapters.decoder.strict import DecoderConfig, StrictDecoder, convert_value
from lib_layered_flags.domain.errors import UnmarshalError
from lib_layered_flags.domain.schema import FieldKind, uint
from lib_layered_flags.examples import ServerSettings


@dataclass
class Limits:
    warn: uint = field(default=uint(1), metadata={"snake": "warn"})


@dataclass
class Service:
    port: int = field(default=80, metadata={"snake": "port"})
    limits: Optional[Limits] = field(default=None, metadata={"snake": "limit"})
    note: str = "untagged"


@dataclass(frozen=True)
class Frozen:
    port: int = 80


def test_decode_updates_nested_instances_in_place() -> None:
    target = ServerSettings()
    log = target.log

    StrictDecoder().decode({"log": {"level": "debug", "limit": {"warn": "20"}}}, target)

    assert target.log is log
    assert log.level == "debug"
    assert log.limits.warn == 20
    assert isinstance(log.limits.warn, uint)


def test_decode_builds_missing_nested_instances_from_hints() -> None:
    target = Service()

    StrictDecoder(DecoderConfig(tag_name="snake")).decode({"limit": {"warn": 5}}, target)

    assert target.limits == Limits(warn=uint(5))


def test_untagged_fields_match_by_name_unless_ignored() -> None:
    target = Service()
    StrictDecoder(DecoderConfig(tag_name="snake")).decode({"note": "tagged by name"}, target)
    assert target.note == "tagged by name"

    with pytest.raises(UnmarshalError) as caught:
        StrictDecoder(DecoderConfig(tag_name="snake", ignore_untagged_fields=True)).decode({"note": "x"}, Service())
    assert caught.value.unknown_keys == ("note",)


def test_all_unknown_keys_are_reported_together() -> None:
    with pytest.raises(UnmarshalError) as caught:
        StrictDecoder().decode({"threads": 1, "log": {"colour": "red", "level": "warn"}}, ServerSettings())

    assert caught.value.unknown_keys == ("threads", "log.colour")
    assert str(caught.value).startswith("2 error(s) decoding:")


def test_unknown_keys_tolerated_when_error_unused_is_off() -> None:
    target = ServerSettings()
    StrictDecoder(DecoderConfig(error_unused=False)).decode({"threads": 1, "workers": 3}, target)

    assert target.workers == 3


def test_conversion_errors_name_the_key() -> None:
    with pytest.raises(UnmarshalError, match="'workers'"):
        StrictDecoder().decode({"workers": "many"}, ServerSettings())


def test_strict_typing_rejects_strings_for_numbers() -> None:
    with pytest.raises(UnmarshalError, match="expected type 'int', got unconvertible type 'str'"):
        StrictDecoder(DecoderConfig(weakly_typed_input=False)).decode({"workers": "512"}, ServerSettings())


def test_scalar_for_nested_field_is_an_error() -> None:
    with pytest.raises(UnmarshalError, match="'log' expected a mapping"):
        StrictDecoder().decode({"log": "debug"}, ServerSettings())


def test_frozen_and_non_instance_targets_are_rejected() -> None:
    with pytest.raises(UnmarshalError, match="frozen"):
        StrictDecoder().decode({"port": 1}, Frozen())
    with pytest.raises(UnmarshalError, match="dataclass instance"):
        StrictDecoder().decode({}, ServerSettings)


@pytest.mark.parametrize(
    ("kind", "raw", "expected"),
    [
        (FieldKind.BOOL, "true", True),
        (FieldKind.BOOL, "0", False),
        (FieldKind.BOOL, 1, True),
        (FieldKind.INT, "0x10", 16),
        (FieldKind.INT, 3.0, 3),
        (FieldKind.UINT, "7", uint(7)),
        (FieldKind.FLOAT, "1.5", 1.5),
        (FieldKind.FLOAT, 2, 2.0),
        (FieldKind.STRING, 42, "42"),
        (FieldKind.STRING, True, "1"),
        (FieldKind.STRING_SEQ, "a, b", ["a", "b"]),
        (FieldKind.STRING_SEQ, "", []),
        (FieldKind.STRING_SEQ, ("a", 1), ["a", "1"]),
        (FieldKind.STRING_MAP, "error=/e, debug=/d", {"error": "/e", "debug": "/d"}),
        (FieldKind.STRING_MAP, {"n": 1}, {"n": "1"}),
    ],
)
def test_weak_conversions(kind: FieldKind, raw: object, expected: object) -> None:
    assert convert_value(kind, raw) == expected


@pytest.mark.parametrize(
    ("kind", "raw"),
    [
        (FieldKind.BOOL, "maybe"),
        (FieldKind.INT, 1.5),
        (FieldKind.UINT, -1),
        (FieldKind.STRING_MAP, "novalue"),
        (FieldKind.STRING_SEQ, 5),
    ],
)
def test_invalid_conversions(kind: FieldKind, raw: object) -> None:
    with pytest.raises((TypeError, ValueError)):
        convert_value(kind, raw)


def test_tuple_sequences_stay_tuples() -> None:
    @dataclass
    class Hosts:
        names: tuple[str, ...] = field(default=("a", "b"), metadata={"mapstructure": "names"})

    target = Hosts()
    StrictDecoder().decode({"names": "c, d"}, target)

    assert target.names == ("c", "d")
    assert isinstance(target.names, tuple)
