"""Schema walker behaviour: dotted keys, classification, and aggregated issues."""

from __future__ import annotations

from dataclasses import dataclass, field, make_dataclass
from typing import Any

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from lib_layered_flags.application.walker import TagNames, build_schema
from lib_layered_flags.domain.errors import SchemaError
from lib_layered_flags.domain.schema import FieldKind, uint
from lib_layered_flags.examples import EXPECTED_KEYS, ServerSettings


def tagged(key: str, default: Any = None, usage: str | None = "help", env: str | None = None, **kwargs: Any) -> Any:
    metadata = {"mapstructure": key}
    if usage is not None:
        metadata["usage"] = usage
    if env is not None:
        metadata["env"] = env
    if "default_factory" in kwargs:
        return field(metadata=metadata, **kwargs)
    return field(default=default, metadata=metadata)


def test_server_settings_keys_in_declaration_order() -> None:
    schema = build_schema(ServerSettings())

    assert schema.keys() == EXPECTED_KEYS
    assert schema["log.limit.warn"].kind is FieldKind.UINT
    assert schema["log.dst"].kind is FieldKind.STRING_MAP
    assert schema["upstreams"].kind is FieldKind.STRING_SEQ
    assert schema["workers"].env == "WORKERS"
    assert schema["log.dst"].env is None
    assert schema["max-burst"].attribute_path == ("max_burst",)
    assert schema["log.limit.error"].attribute_path == ("log", "limits", "error")


def test_tag_options_are_kept_but_not_part_of_the_key() -> None:
    schema = build_schema(ServerSettings())

    assert schema["log.limit.warn"].tag_options == ("omitempty",)


def test_defaults_are_snapshots_of_the_result() -> None:
    result = ServerSettings()
    schema = build_schema(result)

    result.upstreams.append("http://late.example/")
    result.log.destinations["audit"] = "/var/log/audit.log"

    assert schema["upstreams"].default == ["http://www.foo.com/", "http://www.bar.com/"]
    assert "audit" not in schema["log.dst"].default


def test_custom_tag_names() -> None:
    @dataclass
    class Custom:
        port: int = field(default=80, metadata={"cfg": "port", "doc": "Port", "var": "PORT"})

    schema = build_schema(Custom(), tags=TagNames(field="cfg", env="var", help="doc"))

    assert schema["port"].help == "Port"
    assert schema["port"].env == "PORT"


def test_empty_key_segment_falls_back_to_attribute_name() -> None:
    @dataclass
    class Settings:
        timeout: float = tagged(",omitempty", 1.5)

    assert build_schema(Settings()).keys() == ("timeout",)


def test_dash_skips_the_field() -> None:
    @dataclass
    class Settings:
        workers: int = tagged("workers", 1)
        secret: object = field(default=None, metadata={"mapstructure": "-"})

    assert build_schema(Settings()).keys() == ("workers",)


def test_untagged_field_is_an_issue_unless_ignored() -> None:
    @dataclass
    class Settings:
        workers: int = tagged("workers", 1)
        internal: bool = True

    with pytest.raises(SchemaError) as caught:
        build_schema(Settings())
    assert caught.value.codes == ("MissingTag",)
    assert "Settings.internal" in str(caught.value)

    assert build_schema(Settings(), ignore_untagged_fields=True).keys() == ("workers",)


def test_every_issue_is_reported_in_one_error() -> None:
    @dataclass
    class Limits:
        warn: int = tagged("warn", 1, usage=None)

    @dataclass
    class Settings:
        workers: int = tagged("workers", None)
        hosts: list[str] = tagged("hosts", default_factory=list)
        labels: dict[str, str] = tagged("labels", default_factory=dict)
        ports: list[int] = tagged("ports", default_factory=lambda: [80])
        limits: Limits = tagged("limit", default_factory=Limits, usage=None)
        bad_key: str = tagged("bad key", "x")
        shadow: str = tagged("REAL", "y")
        real: int = tagged("real", 2)

    with pytest.raises(SchemaError) as caught:
        build_schema(Settings())

    assert caught.value.codes == (
        "NilDefault",
        "InvalidDefault",
        "InvalidDefault",
        "UnsupportedFieldType",
        "MissingHelpTag",
        "InvalidKey",
        "DuplicateKey",
    )
    assert "Settings.shadow" in caught.value.issues[-1].detail


def test_duplicate_keys_across_branches() -> None:
    @dataclass
    class Log:
        level: str = tagged("level", "info")

    @dataclass
    class Settings:
        log: Log = tagged("log", default_factory=Log, usage=None)
        flat: str = tagged("log.level", "debug")

    with pytest.raises(SchemaError) as caught:
        build_schema(Settings())
    assert caught.value.codes == ("DuplicateKey",)
    assert "Log.level" in caught.value.issues[0].detail


def test_recursive_schema_is_reported_not_recursed() -> None:
    @dataclass
    class Node:
        name: str = tagged("name", "root")
        child: Any = field(default=None, metadata={"mapstructure": "child"})

    root = Node()
    root.child = Node(name="leaf")

    with pytest.raises(SchemaError) as caught:
        build_schema(root)
    assert caught.value.codes == ("RecursiveSchema",)


def test_nested_field_never_becomes_a_leaf() -> None:
    schema = build_schema(ServerSettings())

    assert "log" not in schema
    assert "log.limit" not in schema


segments = st.from_regex(r"[a-z][a-z0-9_]{0,6}", fullmatch=True)


@settings(max_examples=40, deadline=None)
@given(path=st.lists(segments, min_size=1, max_size=4), leaf=segments, value=st.integers(min_value=0))
def test_nested_keys_join_every_level_with_dots(path: list[str], leaf: str, value: int) -> None:
    """Whatever the depth, a leaf key is the parent keys plus the leaf joined by ``.``."""

    node_type = make_dataclass(
        "Leaf0",
        [("value", uint, field(default=uint(value), metadata={"mapstructure": leaf, "usage": "leaf"}))],
    )
    for depth, segment in enumerate(reversed(path), start=1):
        child_type = node_type
        node_type = make_dataclass(
            f"Level{depth}",
            [("child", child_type, field(default_factory=child_type, metadata={"mapstructure": segment}))],
        )

    schema = build_schema(node_type())

    assert schema.keys() == (".".join([*path, leaf]),)
    assert schema.fields[0].default == value
