"""
Exception hierarchy for appboot.

Configuration and binding errors are raised while a runtime is built or a
configuration bean is materialized, and propagate to the caller. Command
failures never raise: they are reported as a ``CommandOutcome``.

    AppBootError
    ├── ConfigError
    │   ├── ConfigReadError
    │   ├── ConfigTypeMismatch
    │   └── UnknownConfigKey
    ├── NoBinding (KeyError)
    ├── BindingConflict (ValueError)
    │   └── DuplicateCommand
    ├── CliError
    └── BuilderClosed
"""

from __future__ import annotations


class AppBootError(Exception):
    """Base class of every error raised by appboot."""


class ConfigError(AppBootError):
    """A configuration tree could not be read or materialized."""

    def __init__(self, message: str, *, path: str = "") -> None:
        super().__init__(message)
        self.path = path
        """Dotted path of the offending node, empty for the root."""


class ConfigReadError(ConfigError):
    """Raised when a config document is missing, unreadable or malformed."""


class ConfigTypeMismatch(ConfigError):
    """Raised when the shape of a node does not match the declared type."""


class UnknownConfigKey(ConfigError):
    """Raised when a key has no attribute on a bean that does not ignore unknowns."""


class NoBinding(AppBootError, KeyError):
    """Raised when a binding name cannot be resolved."""

    def __init__(self, name: str, *, required_by: str | None = None) -> None:
        super().__init__(name)
        self.name = name
        self.required_by = required_by

    def __str__(self) -> str:
        if self.required_by is None:
            return f"No binding for '{self.name}'"
        return f"No binding for '{self.name}' required by '{self.required_by}'"


class BindingConflict(AppBootError, ValueError):
    """Raised when several modules provide the same binding."""


class DuplicateCommand(BindingConflict):
    """Raised when two commands are registered under the same name."""


class CliError(AppBootError):
    """Raised when the argument vector cannot be parsed."""


class BuilderClosed(AppBootError):
    """Raised when a runtime builder is mutated after ``create_runtime``."""
