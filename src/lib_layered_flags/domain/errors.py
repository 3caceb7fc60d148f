"""Domain-level exception hierarchy.

Purpose
-------
Expose the stable error taxonomy shared by the binding engine, its adapters,
and consuming applications. The hierarchy lives in the domain layer so outer
layers (settings store, decoder, CLI) depend on it and never the other way
around.

Contents
--------
* :class:`ConfigError` – umbrella base class for every failure.
* :class:`OptionError` – invalid engine construction or reconfiguration.
* :class:`IssueCode` / :class:`SchemaIssue` / :class:`SchemaError` – schema
  mistakes collected during the walk and raised together.
* :class:`BindingError` – misuse of the single-shot bind/resolve lifecycle.
* :class:`NotFound` and subclasses – missing config paths or files.
* :class:`ConfigPathIndeterminate` – ``stat`` failed for another reason.
* :class:`ConfigParseError` – a config file could not be parsed.
* :class:`UnmarshalError` – strict decode rejected the resolved settings.

System Role
-----------
Callers catch :class:`ConfigError` to handle every library failure uniformly
and the subclasses when they need a specific recovery (retry versus abort).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class ConfigError(Exception):
    """Base type for all exceptions emitted by ``lib_layered_flags``.

    Why
    ----
    Provide a single catch-all type for consumers that do not need fine-grained
    handling.
    """


class OptionError(ConfigError):
    """Raised when an engine option is missing or invalid.

    Typical Sources
    ---------------
    :class:`lib_layered_flags.core.FlagBinder` construction and
    :meth:`~lib_layered_flags.core.FlagBinder.configure`.
    """


class IssueCode(str, Enum):
    """Categories of schema mistakes found while walking a result dataclass."""

    MISSING_TAG = "MissingTag"
    MISSING_HELP_TAG = "MissingHelpTag"
    NIL_DEFAULT = "NilDefault"
    UNSUPPORTED_FIELD_TYPE = "UnsupportedFieldType"
    INVALID_DEFAULT = "InvalidDefault"
    DUPLICATE_KEY = "DuplicateKey"
    INVALID_KEY = "InvalidKey"
    RECURSIVE_SCHEMA = "RecursiveSchema"


@dataclass(frozen=True, slots=True)
class SchemaIssue:
    """One schema mistake, located by dataclass field path.

    Examples
    --------
    >>> str(SchemaIssue(IssueCode.NIL_DEFAULT, "Settings.workers", "default is None"))
    'NilDefault at Settings.workers: default is None'
    """

    code: IssueCode
    location: str
    detail: str

    def __str__(self) -> str:
        return f"{self.code.value} at {self.location}: {self.detail}"


class SchemaError(ConfigError):
    """Aggregates every schema mistake found in one walk.

    Why
    ----
    Schema mistakes are programming errors that show up on every start-up.
    Reporting all of them at once saves an edit/run cycle per mistake.

    Examples
    --------
    >>> err = SchemaError([SchemaIssue(IssueCode.MISSING_TAG, "A.b", "no 'mapstructure' tag")])
    >>> err.codes
    ('MissingTag',)
    >>> print(err)
    invalid settings schema (1 issue):
      - MissingTag at A.b: no 'mapstructure' tag
    """

    def __init__(self, issues: Iterable[SchemaIssue]) -> None:
        self.issues: tuple[SchemaIssue, ...] = tuple(issues)
        noun = "issue" if len(self.issues) == 1 else "issues"
        lines = [f"invalid settings schema ({len(self.issues)} {noun}):"]
        lines.extend(f"  - {issue}" for issue in self.issues)
        super().__init__("\n".join(lines))

    @property
    def codes(self) -> tuple[str, ...]:
        """Return the issue codes in discovery order."""

        return tuple(issue.code.value for issue in self.issues)


class BindingError(ConfigError):
    """Raised when flags are bound twice or resolution runs before binding."""


class NotFound(ConfigError):
    """Represents a missing configuration resource (path or file)."""


class ConfigPathNotFound(NotFound):
    """The caller-supplied configuration path does not exist."""


class ConfigFileNotFound(NotFound):
    """No ``<base name>.<ext>`` file was found inside a configuration directory."""


class ConfigPathIndeterminate(ConfigError):
    """The configuration path may or may not exist; ``stat`` failed otherwise.

    Why
    ----
    Permission and I/O failures call for a different recovery (retry, fix
    permissions) than a plain missing path, so they are not folded into
    :class:`NotFound`.
    """


class ConfigParseError(ConfigError):
    """Raised when a configuration file cannot be parsed into a mapping.

    Typical Sources
    ---------------
    Structured file loaders (:mod:`json`, :mod:`tomllib`, :mod:`yaml`) and the
    dotenv parser.
    """


class UnmarshalError(ConfigError):
    """Raised when resolved settings cannot be decoded into the result dataclass.

    Attributes
    ----------
    unknown_keys:
        Dotted settings keys that have no destination field.
    """

    def __init__(self, message: str, *, unknown_keys: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.unknown_keys: tuple[str, ...] = tuple(unknown_keys)
