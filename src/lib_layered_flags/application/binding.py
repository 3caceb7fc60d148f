"""Binding synthesizer.

Purpose
-------
Materialise each :class:`~lib_layered_flags.domain.schema.FieldSpec` into the
two collaborating stores: one typed command-line option in the option store,
one default in the settings store, the option bound to the settings key, and,
when the field declares one, the environment variable bound to the same key.
The dotted key is the only join key between both stores.

Contents
--------
* :func:`bind_schema` – bind every leaf of a schema.
* :func:`bind_field` – bind one leaf.
"""

from __future__ import annotations

from ..domain.errors import IssueCode, SchemaError, SchemaIssue
from ..domain.schema import FieldKind, FieldSpec, Schema
from ..observability import log_debug, make_event
from .ports import OptionStore, SettingsStore


def bind_schema(schema: Schema, options: OptionStore, settings: SettingsStore) -> None:
    """Bind every field of *schema*; see :func:`bind_field`."""

    for spec in schema:
        bind_field(spec, options, settings)
    log_debug("schema_bound", layer="bind", key=None, fields=len(schema))


def bind_field(spec: FieldSpec, options: OptionStore, settings: SettingsStore) -> None:
    """Create the option, default, and bindings for *spec*.

    Registration order realises the precedence: the default is stored first,
    the option binding wins only when the user passed the option, and the
    environment binding sits between the option and the config layer.

    Examples
    --------
    >>> import click
    >>> from lib_layered_flags.adapters.options.click_store import ClickOptionStore
    >>> from lib_layered_flags.adapters.settings.layered import LayeredSettings
    >>> spec = FieldSpec("workers", FieldKind.INT, 128, "Number of workers", "WORKERS", ("workers",))
    >>> store = LayeredSettings(environ={"WORKERS": "512"})
    >>> bind_field(spec, ClickOptionStore(click.Command("demo")), store)
    >>> store.get("workers")
    '512'
    """

    if spec.kind is FieldKind.NESTED:
        raise SchemaError(
            [SchemaIssue(IssueCode.UNSUPPORTED_FIELD_TYPE, spec.key, "nested fields are walked, not bound")]
        )
    options.define(spec.kind, spec.key, spec.default, spec.help)
    settings.set_default(spec.key, spec.default)
    settings.bind_option(spec.key, options.lookup(spec.key))
    if spec.env:
        settings.bind_env(spec.key, spec.env)
    log_debug("flag_bound", **make_event("bind", spec.key, {"kind": spec.kind.value, "env": spec.env}))
