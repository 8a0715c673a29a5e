"""
Commands: units of work selected from the argument vector.

A command class carries its metadata at class level. By default the name
is derived from the class name and the description from the first line of
the class docstring; both can be set with class keywords:

```python
class ServerStartCommand(Command, short_name="s", options=(PORT,)):
    \"\"\"Starts the server.\"\"\"

    def __init__(self, boot_logger: BootLogger) -> None:
        self.boot_logger = boot_logger

    def execute(self, cli: Cli) -> CommandOutcome:
        ...
        return CommandOutcome.succeeded()
```
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, ClassVar, Final, NoReturn, Self

from appboot.naming import hyphenate

if TYPE_CHECKING:
    from appboot.cli import Cli

SUCCESS: Final[int] = 0
"""Exit code of a successful command."""

FAILURE: Final[int] = 1
"""Exit code of a failed command or a failed dispatch."""

_COMMAND_SUFFIX: Final[str] = "Command"


@dataclass(frozen=True, kw_only=True, slots=True)
class OptionMetadata:
    """A command line option; options without a ``value_name`` are flags."""

    name: str
    short_name: str | None = None
    value_name: str | None = None
    description: str | None = None

    @property
    def is_flag(self) -> bool:
        return self.value_name is None


@dataclass(frozen=True, kw_only=True, slots=True)
class CommandMetadata:
    name: str
    description: str | None = None
    short_name: str | None = None
    """Single character selecting the command with ``-x``; defaults to the first character of ``name``."""
    options: tuple[OptionMetadata, ...] = ()

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Command name must not be empty")
        if self.short_name is None:
            object.__setattr__(self, "short_name", self.name[0])

    @classmethod
    def of(cls, command: "type[Command] | Command") -> Self:
        """Return the metadata of a command class or instance."""
        if isinstance(command, Command):
            return command.metadata
        declared = command.__dict__.get("command_metadata")
        if isinstance(declared, cls):
            return declared
        return cls(name=_derive_name(command), description=_first_doc_line(command))


def _derive_name(command_type: type) -> str:
    name = command_type.__name__
    if name.endswith(_COMMAND_SUFFIX) and name != _COMMAND_SUFFIX:
        name = name[: -len(_COMMAND_SUFFIX)]
    return hyphenate(name)


def _first_doc_line(command_type: type) -> str | None:
    doc = command_type.__dict__.get("__doc__")
    if not doc:
        return None
    return doc.strip().splitlines()[0].strip() or None


@dataclass(frozen=True, kw_only=True, slots=True)
class CommandOutcome:
    exit_code: int
    message: str | None = None
    exception: BaseException | None = None

    @classmethod
    def succeeded(cls) -> Self:
        return cls(exit_code=SUCCESS)

    @classmethod
    def failed(
        cls,
        exit_code: int,
        message: str | None = None,
        exception: BaseException | None = None,
    ) -> Self:
        if exit_code == SUCCESS:
            raise ValueError("A failed outcome needs a non-zero exit code")
        return cls(exit_code=exit_code, message=message, exception=exception)

    @property
    def is_success(self) -> bool:
        return self.exit_code == SUCCESS

    def exit(self) -> NoReturn:
        """Terminate the process with this outcome's exit code."""
        raise SystemExit(self.exit_code)

    def __str__(self) -> str:
        if self.is_success:
            return f"[{self.exit_code}] success"
        return f"[{self.exit_code}] {self.message or 'failure'}"


class Command(ABC):
    """
    Base class of commands.

    Subclasses are instantiated through dependency injection, so their
    constructor parameters are resolved by name or by annotated type.
    """

    command_metadata: ClassVar[CommandMetadata | None] = None

    def __init_subclass__(
        cls,
        *,
        name: str | None = None,
        description: str | None = None,
        short_name: str | None = None,
        options: tuple[OptionMetadata, ...] = (),
        **kwargs: Any,
    ) -> None:
        super().__init_subclass__(**kwargs)
        if name is None and description is None and short_name is None and not options:
            return
        cls.command_metadata = CommandMetadata(
            name=name or _derive_name(cls),
            description=description if description is not None else _first_doc_line(cls),
            short_name=short_name,
            options=options,
        )

    @property
    def metadata(self) -> CommandMetadata:
        return CommandMetadata.of(type(self))

    @abstractmethod
    def execute(self, cli: Cli) -> CommandOutcome: ...
