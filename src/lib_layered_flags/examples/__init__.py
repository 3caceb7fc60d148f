"""Example schema and configuration generation helpers for ``lib_layered_flags``."""

from .generate import GENERATED_FORMATS, ExampleSpec, generate_examples, render_defaults
from .server import EXPECTED_KEYS, Logging, LogLimits, ServerSettings

__all__ = [
    "EXPECTED_KEYS",
    "ExampleSpec",
    "GENERATED_FORMATS",
    "LogLimits",
    "Logging",
    "ServerSettings",
    "generate_examples",
    "render_defaults",
]
