"""Adapter contract tests for the default ports implementation.

Purpose
-------
Verify the default adapters continue to satisfy the application-layer ports
defined in ``src/lib_layered_flags/application/ports.py`` so dependency
inversion remains enforceable through automated tests.
"""

from __future__ import annotations

from pathlib import Path

import click
import pytest

from lib_layered_flags.adapters.file_loaders.structured import (
    DotEnvFileLoader,
    JSONFileLoader,
    TOMLFileLoader,
    YAMLFileLoader,
)
from lib_layered_flags.adapters.options.click_store import ClickOptionStore
from lib_layered_flags.adapters.settings.layered import LayeredSettings
from lib_layered_flags.application import ports
from lib_layered_flags.domain.schema import FieldKind


def test_click_option_store_contract() -> None:
    """ClickOptionStore must fulfil OptionStore and hand out BoundOption entries."""

    store = ClickOptionStore(click.Command("contract"))
    assert isinstance(store, ports.OptionStore)

    store.define(FieldKind.STRING, "region", "eu", "Region")
    entry = store.lookup("region")

    assert isinstance(entry, ports.BoundOption)
    assert store.lookup("missing") is None


def test_layered_settings_contract() -> None:
    """LayeredSettings must fulfil SettingsStore and accept a bound option."""

    store = LayeredSettings(environ={})
    assert isinstance(store, ports.SettingsStore)

    options = ClickOptionStore(click.Command("contract"))
    options.define(FieldKind.INT, "workers", 1, "")
    store.bind_option("workers", options.lookup("workers"))
    store.set_default("workers", 1)

    assert store.get("workers") == 1


@pytest.mark.parametrize(
    ("loader_cls", "name", "body"),
    [
        (TOMLFileLoader, "config.toml", "[service]\nvalue = 1\n"),
        (JSONFileLoader, "config.json", '{"service": {"value": 1}}'),
        (YAMLFileLoader, "config.yaml", "service:\n  value: 1\n"),
        (DotEnvFileLoader, "config.env", "SERVICE__VALUE=1\n"),
    ],
)
def test_structured_loader_contract(tmp_path: Path, loader_cls: type, name: str, body: str) -> None:
    """Each structured loader should satisfy FileLoader and decode its target format."""

    loader = loader_cls()
    assert isinstance(loader, ports.FileLoader)

    path = tmp_path / name
    path.write_text(body, encoding="utf-8")

    data = loader.load(str(path))
    assert str(data["service"]["value"]) == "1"
