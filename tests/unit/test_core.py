"""FlagBinder construction, configuration, and lifecycle guards."""

from __future__ import annotations

import datetime
from dataclasses import dataclass

import click
import pytest

from lib_layered_flags import FlagBinder, LayeredSettings
from lib_layered_flags.adapters.decoder.strict import DecoderConfig
from lib_layered_flags.domain.errors import BindingError, OptionError
from lib_layered_flags.examples import EXPECTED_KEYS, ServerSettings
from tests.support import make_sandbox, option_names


def _binder(**options: object) -> FlagBinder:
    return FlagBinder(result=ServerSettings(), command=click.Command("app"), **options)


@pytest.mark.parametrize(
    ("result", "message"),
    [
        (None, "result dataclass instance is not set"),
        ("configuration", "Got <str>"),
        (ServerSettings, "Got <ServerSettings>"),
        (datetime.date(2024, 1, 1), "Got <date>"),
        ({"workers": 1}, "Got <dict>"),
    ],
)
def test_result_must_be_a_dataclass_instance(result: object, message: str) -> None:
    with pytest.raises(OptionError, match=message):
        FlagBinder(result=result, command=click.Command("app"))


def test_command_is_required() -> None:
    with pytest.raises(OptionError, match="command <click.Command> is not set"):
        FlagBinder(result=ServerSettings())


@pytest.mark.parametrize(
    ("options", "message"),
    [
        ({"field_tag": " "}, "invalid field tag name"),
        ({"env_tag": ""}, "invalid env tag name"),
        ({"help_tag": "\t"}, "invalid flag help tag name"),
        ({"config_type": " "}, "invalid config file type"),
        ({"config_type": "jpg"}, "invalid config file type: 'jpg'"),
        ({"config_name": " "}, "invalid config file base name"),
        ({"decoder_hooks": ["not callable"]}, "decoder hook must be callable"),
    ],
)
def test_invalid_options_are_rejected(options: dict[str, object], message: str) -> None:
    with pytest.raises(OptionError, match=message):
        _binder(**options)


def test_defaults() -> None:
    binder = _binder()

    assert binder.field_tag == "mapstructure"
    assert binder.env_tag == "env"
    assert binder.help_tag == "usage"
    assert binder.config_type == "yaml"
    assert binder.config_path == ""
    assert binder.config_name == "config"
    assert binder.decoder_hooks == ()
    assert binder.ignore_untagged_fields is False
    assert binder.schema is None
    assert binder.options is None
    assert isinstance(binder.settings, LayeredSettings)


def test_options_are_trimmed_and_stored() -> None:
    def first(config: DecoderConfig) -> None:
        config.weakly_typed_input = True

    def second(config: DecoderConfig) -> None:
        config.error_unused = True

    command = click.Command("app")
    settings = LayeredSettings(environ={})
    binder = FlagBinder(
        result=ServerSettings(),
        command=command,
        settings=settings,
        field_tag=" snake ",
        env_tag="environment",
        help_tag="description",
        config_type="json",
        config_path=" /etc/app ",
        config_name="settings",
        decoder_hooks=[first, second],
        ignore_untagged_fields=True,
    )

    assert binder.command is command
    assert binder.settings is settings
    assert binder.field_tag == "snake"
    assert binder.env_tag == "environment"
    assert binder.help_tag == "description"
    assert binder.config_type == "json"
    assert binder.config_path == "/etc/app"
    assert binder.config_name == "settings"
    assert binder.decoder_hooks == (first, second)
    assert binder.ignore_untagged_fields is True


def test_configure_appends_hooks_and_rejects_unknown_names() -> None:
    binder = _binder()

    def hook(config: DecoderConfig) -> None:
        return None

    binder.configure(decoder_hooks=[hook])
    binder.configure(decoder_hooks=[hook])
    assert binder.decoder_hooks == (hook, hook)

    with pytest.raises(OptionError, match="unknown option: 'result'"):
        binder.configure(result=ServerSettings())
    with pytest.raises(OptionError, match="unknown option: 'colour'"):
        binder.configure(colour="blue")


def test_failed_configure_keeps_earlier_values() -> None:
    binder = _binder(config_type="toml")

    with pytest.raises(OptionError):
        binder.configure(config_type="ini")

    assert binder.config_type == "toml"


def test_add_flags_is_single_shot() -> None:
    sandbox = make_sandbox()

    assert option_names(sandbox.command) == list(EXPECTED_KEYS)
    assert sandbox.binder.schema is not None and sandbox.binder.schema.keys() == tuple(EXPECTED_KEYS)
    with pytest.raises(BindingError, match="single-shot"):
        sandbox.binder.add_flags()
    assert len(sandbox.command.params) == len(EXPECTED_KEYS)


def test_tag_options_freeze_after_binding() -> None:
    sandbox = make_sandbox()

    with pytest.raises(BindingError, match="'field_tag'"):
        sandbox.binder.configure(field_tag="snake")
    with pytest.raises(BindingError, match="'ignore_untagged_fields'"):
        sandbox.binder.configure(ignore_untagged_fields=True)

    sandbox.binder.configure(config_path="/tmp")
    assert sandbox.binder.config_path == "/tmp"


def test_unmarshal_requires_add_flags() -> None:
    sandbox = make_sandbox(bind=False)

    with pytest.raises(BindingError, match="add_flags"):
        sandbox.binder.unmarshal_exact()


def test_unmarshal_without_context_uses_env_and_defaults() -> None:
    sandbox = make_sandbox(environ={"WORKERS": "9"})

    result = sandbox.binder.unmarshal_exact()

    assert result.workers == 9
    assert result.max_burst == 1.25
    assert sandbox.binder.origin("workers") == "env"
    assert sandbox.binder.origin("max-burst") == "default"
    assert sandbox.binder.config_file_used() is None


def test_empty_dataclass_binds_nothing() -> None:
    @dataclass
    class Empty:
        pass

    sandbox = make_sandbox(Empty())

    assert sandbox.command.params == []
    assert sandbox.resolve() == Empty()
