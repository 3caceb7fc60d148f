"""Public package surface of ``lib_layered_flags``.

Bind a tagged settings dataclass to ``click`` options, environment variables,
and an optional configuration file, then resolve one value per field with the
precedence option > env > config > default. :class:`FlagBinder` is the entry
point; the remaining names are the error taxonomy and the building blocks for
callers that bring their own stores.
"""

from __future__ import annotations

from .adapters.decoder.strict import DecoderConfig, DecoderHook, StrictDecoder
from .adapters.options.click_store import ClickOptionStore
from .adapters.settings.layered import LAYERS, LayeredSettings
from .application.walker import TagNames, build_schema
from .core import FlagBinder
from .domain.errors import (
    BindingError,
    ConfigError,
    ConfigFileNotFound,
    ConfigParseError,
    ConfigPathIndeterminate,
    ConfigPathNotFound,
    IssueCode,
    NotFound,
    OptionError,
    SchemaError,
    SchemaIssue,
    UnmarshalError,
)
from .domain.formats import SUPPORTED_FORMATS
from .domain.schema import FieldKind, FieldSpec, Schema, uint
from .observability import bind_trace_id, get_logger

__all__ = [
    "BindingError",
    "ClickOptionStore",
    "ConfigError",
    "ConfigFileNotFound",
    "ConfigParseError",
    "ConfigPathIndeterminate",
    "ConfigPathNotFound",
    "DecoderConfig",
    "DecoderHook",
    "FieldKind",
    "FieldSpec",
    "FlagBinder",
    "IssueCode",
    "LAYERS",
    "LayeredSettings",
    "NotFound",
    "OptionError",
    "SUPPORTED_FORMATS",
    "Schema",
    "SchemaError",
    "SchemaIssue",
    "StrictDecoder",
    "TagNames",
    "UnmarshalError",
    "bind_trace_id",
    "build_schema",
    "get_logger",
    "uint",
]
