"""Schema walker: turn a tagged dataclass instance into an immutable :class:`Schema`.

Purpose
-------
Visit the fields of the result dataclass in declaration order, resolve their
dotted keys through the tag parser, recurse into nested dataclasses, and
classify every leaf once. All schema mistakes are collected so callers see the
complete list in a single :class:`~lib_layered_flags.domain.errors.SchemaError`.

Contents
--------
* :class:`TagNames` – the three configurable metadata keys.
* :func:`build_schema` – public entry point.
* :class:`_Walker` – recursion state (issues, seen keys, ancestor types).
"""

from __future__ import annotations

import copy
import dataclasses
import re
from dataclasses import dataclass
from typing import Any, Final

from ..domain.errors import IssueCode, SchemaError, SchemaIssue
from ..domain.schema import FieldKind, FieldSpec, Schema, classify_value
from ..domain.tags import DEFAULT_ENV_TAG, DEFAULT_FIELD_TAG, DEFAULT_HELP_TAG, parse_field_tag, read_tag
from ..observability import log_debug, log_error

_KEY_SEGMENT: Final[re.Pattern[str]] = re.compile(r"^[A-Za-z_][A-Za-z0-9_-]*$")


@dataclass(frozen=True, slots=True)
class TagNames:
    """Metadata keys read from each dataclass field."""

    field: str = DEFAULT_FIELD_TAG
    env: str = DEFAULT_ENV_TAG
    help: str = DEFAULT_HELP_TAG


def build_schema(
    result: Any,
    *,
    tags: TagNames = TagNames(),
    ignore_untagged_fields: bool = False,
) -> Schema:
    """Walk *result* and return its :class:`Schema`.

    Parameters
    ----------
    result:
        Dataclass instance whose current values are the defaults.
    tags:
        Metadata keys holding the settings key, env variable, and help text.
    ignore_untagged_fields:
        Skip fields without a settings-key tag instead of reporting them.

    Raises
    ------
    SchemaError
        With every issue found, when at least one exists.

    Examples
    --------
    >>> from dataclasses import dataclass, field
    >>> @dataclass
    ... class Log:
    ...     level: str = field(default="info", metadata={"mapstructure": "level", "usage": "Log level"})
    >>> @dataclass
    ... class Settings:
    ...     log: Log = field(default_factory=Log, metadata={"mapstructure": "log"})
    >>> build_schema(Settings()).keys()
    ('log.level',)
    """

    walker = _Walker(tags, ignore_untagged_fields)
    walker.visit(result, prefix="", attributes=(), ancestors=())
    if walker.issues:
        log_error("schema_invalid", layer="bind", key=None, issues=[str(issue) for issue in walker.issues])
        raise SchemaError(walker.issues)
    schema = Schema(tuple(walker.specs))
    log_debug("schema_built", layer="bind", key=None, fields=len(schema))
    return schema


class _Walker:
    def __init__(self, tags: TagNames, ignore_untagged_fields: bool) -> None:
        self.tags = tags
        self.ignore_untagged_fields = ignore_untagged_fields
        self.specs: list[FieldSpec] = []
        self.issues: list[SchemaIssue] = []
        self._seen: dict[str, str] = {}

    def visit(self, node: Any, *, prefix: str, attributes: tuple[str, ...], ancestors: tuple[type, ...]) -> None:
        owner = type(node)
        for item in dataclasses.fields(node):
            location = f"{owner.__name__}.{item.name}"
            raw = read_tag(item.metadata, self.tags.field)
            if raw is None:
                if not self.ignore_untagged_fields:
                    self._issue(IssueCode.MISSING_TAG, location, f"no {self.tags.field!r} tag")
                continue
            tag = parse_field_tag(raw)
            if tag.skipped:
                continue
            segment = tag.key or item.name
            key = f"{prefix}.{segment}" if prefix else segment
            value = getattr(node, item.name)
            if value is None:
                self._issue(IssueCode.NIL_DEFAULT, location, f"{key!r} has no concrete default")
                continue

            kind = classify_value(value)
            if kind is FieldKind.NESTED:
                if type(value) in ancestors or type(value) is owner:
                    self._issue(IssueCode.RECURSIVE_SCHEMA, location, f"{type(value).__name__} contains itself")
                    continue
                self.visit(
                    value,
                    prefix=key,
                    attributes=(*attributes, item.name),
                    ancestors=(*ancestors, owner),
                )
                continue
            self._leaf(item, value, kind, key, tag.options, location, (*attributes, item.name))

    def _leaf(
        self,
        item: dataclasses.Field[Any],
        value: Any,
        kind: FieldKind | None,
        key: str,
        options: tuple[str, ...],
        location: str,
        attributes: tuple[str, ...],
    ) -> None:
        help_text = read_tag(item.metadata, self.tags.help)
        if help_text is None:
            self._issue(IssueCode.MISSING_HELP_TAG, location, f"no {self.tags.help!r} tag for {key!r}")
            return
        if kind is None:
            self._issue(IssueCode.UNSUPPORTED_FIELD_TYPE, location, f"unsupported type {type(value).__name__!r}")
            return
        if kind.is_container and not value:
            self._issue(IssueCode.INVALID_DEFAULT, location, f"{kind.value} default for {key!r} is empty")
            return
        if not all(_KEY_SEGMENT.match(part) for part in key.split(".")):
            self._issue(IssueCode.INVALID_KEY, location, f"{key!r} cannot be used as an option name")
            return
        folded = key.lower()
        if folded in self._seen:
            self._issue(IssueCode.DUPLICATE_KEY, location, f"{key!r} is already bound by {self._seen[folded]}")
            return
        self._seen[folded] = location
        self.specs.append(
            FieldSpec(
                key=key,
                kind=kind,
                default=_snapshot(kind, value),
                help=help_text,
                env=read_tag(item.metadata, self.tags.env),
                attribute_path=attributes,
                tag_options=options,
            )
        )

    def _issue(self, code: IssueCode, location: str, detail: str) -> None:
        self.issues.append(SchemaIssue(code, location, detail))


def _snapshot(kind: FieldKind, value: Any) -> Any:
    if kind is FieldKind.STRING_SEQ:
        return list(value)
    if kind is FieldKind.STRING_MAP:
        return dict(value)
    return copy.copy(value)
