"""Composition root for ``lib_layered_flags``.

Purpose
-------
Provide the single entry point that turns a tagged dataclass instance into
command-line options, environment bindings, and an optional configuration
file, then resolves one value per field with the precedence::

    explicit option > environment variable > config file > default

Contents
--------
* :class:`FlagBinder` – engine owning the result instance, the tag names, the
  config-file settings, the decoder hooks, and both collaborating stores.

System Role
-----------
This module wires the application services (:mod:`.application.walker`,
:mod:`.application.binding`, :mod:`.application.config_source`) to the
adapters (:class:`~.adapters.options.click_store.ClickOptionStore`,
:class:`~.adapters.settings.layered.LayeredSettings`) while emitting structured
observability signals. It is the canonical place to adjust the bind/resolve
lifecycle.
"""

from __future__ import annotations

import dataclasses
from typing import Any, Iterable

import click

from .adapters.decoder.strict import DecoderHook
from .adapters.options.click_store import ClickOptionStore
from .adapters.settings.layered import LayeredSettings
from .application.binding import bind_schema
from .application.config_source import merge_config_file
from .application.ports import SettingsStore
from .application.walker import TagNames, build_schema
from .domain.errors import BindingError, OptionError, UnmarshalError
from .domain.formats import is_supported_format, normalise_format
from .domain.schema import Schema
from .domain.tags import DEFAULT_ENV_TAG, DEFAULT_FIELD_TAG, DEFAULT_HELP_TAG
from .observability import bind_trace_id, log_debug, log_error, log_info, make_event

_TAG_OPTIONS = ("field_tag", "env_tag", "help_tag", "ignore_untagged_fields")


class FlagBinder:
    """Bind a tagged dataclass to click options, env vars, and a config file.

    Why
    ----
    Applications describe their settings once, as a dataclass whose current
    values are the defaults, and get a consistent command line, environment
    mapping, and config file format for free.

    What
    ----
    Construction validates every option and raises :class:`OptionError` before
    anything is bound. :meth:`add_flags` walks the schema and registers the
    bindings; :meth:`unmarshal_exact` merges the config file and decodes the
    effective values back into :attr:`result`.

    Parameters
    ----------
    result:
        Dataclass instance populated with defaults; it is also the decode
        target.
    command:
        ``click.Command`` that receives one option per leaf field.
    settings:
        Layered settings store; a fresh :class:`LayeredSettings` by default.
    field_tag / env_tag / help_tag:
        Metadata keys for the settings key, env variable, and help text.
    config_type:
        Format used when the config file has no or an unknown extension.
    config_path:
        Config file or directory; empty disables the config layer.
    config_name:
        Base name searched for when *config_path* is a directory.
    decoder_hooks:
        Callables adjusting the decoder configuration before each decode.
    ignore_untagged_fields:
        Skip fields without a *field_tag* entry instead of rejecting them.

    Examples
    --------
    >>> from dataclasses import dataclass, field
    >>> @dataclass
    ... class Settings:
    ...     workers: int = field(default=128, metadata={"mapstructure": "workers", "env": "WORKERS", "usage": "Workers"})
    >>> @click.command()
    ... def serve():
    ...     pass
    >>> binder = FlagBinder(result=Settings(), command=serve, settings=LayeredSettings(environ={"WORKERS": "512"}))
    >>> binder.add_flags()
    >>> ctx = serve.make_context("serve", [])
    >>> binder.unmarshal_exact(ctx).workers
    512
    >>> ctx = serve.make_context("serve", ["--workers=999"])
    >>> binder.unmarshal_exact(ctx).workers
    999
    """

    def __init__(
        self,
        *,
        result: Any = None,
        command: click.Command | None = None,
        settings: SettingsStore | None = None,
        field_tag: str = DEFAULT_FIELD_TAG,
        env_tag: str = DEFAULT_ENV_TAG,
        help_tag: str = DEFAULT_HELP_TAG,
        config_type: str = "yaml",
        config_path: str = "",
        config_name: str = "config",
        decoder_hooks: Iterable[DecoderHook] = (),
        ignore_untagged_fields: bool = False,
    ) -> None:
        self._result = _validate_result(result)
        if command is None:
            raise OptionError("command <click.Command> is not set")
        self._command = command
        self._settings: SettingsStore = settings if settings is not None else LayeredSettings()
        self._field_tag = DEFAULT_FIELD_TAG
        self._env_tag = DEFAULT_ENV_TAG
        self._help_tag = DEFAULT_HELP_TAG
        self._config_type = "yaml"
        self._config_path = ""
        self._config_name = "config"
        self._decoder_hooks: list[DecoderHook] = []
        self._ignore_untagged_fields = False
        self._options: ClickOptionStore | None = None
        self._schema: Schema | None = None
        self.configure(
            field_tag=field_tag,
            env_tag=env_tag,
            help_tag=help_tag,
            config_type=config_type,
            config_path=config_path,
            config_name=config_name,
            decoder_hooks=decoder_hooks,
            ignore_untagged_fields=ignore_untagged_fields,
        )

    def configure(self, **options: Any) -> None:
        """Re-apply validated options; decoder hooks are appended.

        Raises
        ------
        OptionError
            Unknown option name or invalid value. ``result`` cannot be changed
            after construction.
        BindingError
            A tag option changed after :meth:`add_flags` already ran.

        Examples
        --------
        >>> from dataclasses import dataclass
        >>> @dataclass
        ... class Empty:
        ...     pass
        >>> binder = FlagBinder(result=Empty(), command=click.Command("demo"))
        >>> binder.configure(config_type="json", config_path=" ./etc ")
        >>> binder.config_type, binder.config_path
        ('json', './etc')
        >>> binder.configure(config_type="ini")
        Traceback (most recent call last):
        ...
        lib_layered_flags.domain.errors.OptionError: invalid config file type: 'ini'
        """

        for name, value in options.items():
            setter = getattr(self, f"_set_{name}", None)
            if setter is None:
                raise OptionError(f"unknown option: {name!r}")
            if name in _TAG_OPTIONS and self._schema is not None:
                raise BindingError(f"cannot change {name!r} after flags were added")
            setter(value)

    def _set_field_tag(self, value: str) -> None:
        self._field_tag = _non_blank(value, "invalid field tag name")

    def _set_env_tag(self, value: str) -> None:
        self._env_tag = _non_blank(value, "invalid env tag name")

    def _set_help_tag(self, value: str) -> None:
        self._help_tag = _non_blank(value, "invalid flag help tag name")

    def _set_config_type(self, value: str) -> None:
        config_type = str(value or "").strip()
        if not is_supported_format(config_type):
            raise OptionError(f"invalid config file type: {value!r}")
        self._config_type = normalise_format(config_type)

    def _set_config_path(self, value: str) -> None:
        self._config_path = str(value or "").strip()

    def _set_config_name(self, value: str) -> None:
        self._config_name = _non_blank(value, "invalid config file base name")

    def _set_decoder_hooks(self, hooks: Iterable[DecoderHook]) -> None:
        hooks = list(hooks)
        for hook in hooks:
            if not callable(hook):
                raise OptionError(f"decoder hook must be callable, got {type(hook).__name__}")
        self._decoder_hooks.extend(hooks)

    def _set_ignore_untagged_fields(self, value: bool) -> None:
        self._ignore_untagged_fields = bool(value)

    @property
    def result(self) -> Any:
        return self._result

    @property
    def command(self) -> click.Command:
        return self._command

    @property
    def settings(self) -> SettingsStore:
        return self._settings

    @property
    def field_tag(self) -> str:
        return self._field_tag

    @property
    def env_tag(self) -> str:
        return self._env_tag

    @property
    def help_tag(self) -> str:
        return self._help_tag

    @property
    def config_type(self) -> str:
        return self._config_type

    @property
    def config_path(self) -> str:
        return self._config_path

    @property
    def config_name(self) -> str:
        return self._config_name

    @property
    def decoder_hooks(self) -> tuple[DecoderHook, ...]:
        return tuple(self._decoder_hooks)

    @property
    def ignore_untagged_fields(self) -> bool:
        return self._ignore_untagged_fields

    @property
    def schema(self) -> Schema | None:
        """Schema built by :meth:`add_flags`, ``None`` before binding."""

        return self._schema

    @property
    def options(self) -> ClickOptionStore | None:
        return self._options

    def add_flags(self) -> None:
        """Walk :attr:`result` and bind every leaf field.

        Why
        ----
        Options must exist on :attr:`command` before click parses the
        command line, so binding happens in one explicit step ahead of
        resolution.

        Raises
        ------
        SchemaError
            Every schema mistake found in the walk, aggregated.
        BindingError
            When called a second time.
        """

        if self._schema is not None:
            raise BindingError("flags were already added; FlagBinder is single-shot")
        tags = TagNames(field=self._field_tag, env=self._env_tag, help=self._help_tag)
        schema = build_schema(self._result, tags=tags, ignore_untagged_fields=self._ignore_untagged_fields)
        options = ClickOptionStore(self._command)
        bind_schema(schema, options, self._settings)
        self._options = options
        self._schema = schema
        log_info("flags_added", layer="bind", key=None, command=self._command.name, fields=len(schema))

    def unmarshal_exact(self, ctx: click.Context | None = None) -> Any:
        """Merge the config file and decode the effective values into :attr:`result`.

        Parameters
        ----------
        ctx:
            Click context holding the parsed options; the current context is
            used when omitted. Without any context, options count as unset.

        Returns
        -------
        Any
            :attr:`result`, updated in place.

        Raises
        ------
        BindingError
            :meth:`add_flags` has not run.
        ConfigPathNotFound / ConfigPathIndeterminate / ConfigFileNotFound / ConfigParseError
            The configured config path could not be located or parsed.
        UnmarshalError
            A settings key has no destination field, or a value does not fit
            its field.
        """

        if self._options is None:
            raise BindingError("add_flags() must run before unmarshal_exact()")
        bind_trace_id(None)
        context = ctx if ctx is not None else click.get_current_context(silent=True)
        if context is not None:
            self._options.capture(context)
        merge_config_file(
            self._settings,
            self._config_path,
            config_type=self._config_type,
            config_name=self._config_name,
        )
        try:
            self._settings.unmarshal_exact(
                self._result,
                self._decoder_hooks,
                tag_name=self._field_tag,
                ignore_untagged_fields=self._ignore_untagged_fields,
            )
        except UnmarshalError as exc:
            log_error("settings_decode_failed", layer="decode", key=None, error=str(exc))
            raise UnmarshalError(
                f"while unmarshalling config, flags, and env vars: {exc}",
                unknown_keys=exc.unknown_keys,
            ) from exc
        log_info(
            "settings_resolved",
            **make_event("decode", None, {"target": type(self._result).__name__, "config": self.config_file_used()}),
        )
        return self._result

    def origin(self, key: str) -> str | None:
        """Return the layer (``option``/``env``/``config``/``default``) behind *key*."""

        return self._settings.origin(key)

    def config_file_used(self) -> str | None:
        return self._settings.config_file_used()


def _validate_result(result: Any) -> Any:
    if result is None:
        raise OptionError("result dataclass instance is not set")
    if isinstance(result, type) or not dataclasses.is_dataclass(result):
        raise OptionError(f"result must be a dataclass instance. Got <{_type_name(result)}>")
    log_debug("result_accepted", layer="bind", key=None, target=type(result).__name__)
    return result


def _type_name(value: Any) -> str:
    return value.__name__ if isinstance(value, type) else type(value).__name__


def _non_blank(value: Any, message: str) -> str:
    text = str(value or "").strip()
    if not text:
        raise OptionError(f"{message}: {value!r}")
    return text


__all__ = ["FlagBinder"]
