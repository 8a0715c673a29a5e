"""
Parsed command line.

The argument vector is tokenized by ``argparse`` against the options of
every registered command: each command contributes a ``--<name>`` flag (and
a ``-<short_name>`` flag when that letter is still free) plus its own
options. Runtime-wide options such as ``--config`` come from modules and
take precedence: a command whose flags collide with them keeps only the
flags still free.
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass, field
from typing import Final, Iterable, Mapping, NoReturn, Sequence, override

from appboot.command import CommandMetadata, OptionMetadata
from appboot.exceptions import CliError

_logger: Final[logging.Logger] = logging.getLogger(__name__)


@dataclass(frozen=True, kw_only=True, slots=True)
class Cli:
    """Options and arguments recognized in the argument vector."""

    command_names: tuple[str, ...] = ()
    """Names of the commands selected by flags, in declaration order."""

    options: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    """Values of every option present; flags map to an empty tuple."""

    standalone_arguments: tuple[str, ...] = ()

    @property
    def command_name(self) -> str | None:
        """The selected command when exactly one is selected."""
        if len(self.command_names) == 1:
            return self.command_names[0]
        return None

    def has_option(self, name: str) -> bool:
        return name in self.options

    def option_strings(self, name: str) -> tuple[str, ...]:
        return self.options.get(name, ())

    def option_string(self, name: str) -> str | None:
        """The last value given for ``name``, ``None`` when absent or a flag."""
        values = self.option_strings(name)
        return values[-1] if values else None


class _RaisingArgumentParser(argparse.ArgumentParser):
    @override
    def error(self, message: str) -> NoReturn:
        raise CliError(message)


def parse_cli(
    args: Sequence[str],
    commands: Iterable[CommandMetadata],
    options: Iterable[OptionMetadata] = (),
    *,
    prog: str = "app",
) -> Cli:
    """
    Parse ``args`` against the given commands and runtime options.

    :raises CliError: on unknown options or malformed values.
    """
    commands = tuple(commands)
    parser = _RaisingArgumentParser(prog=prog, add_help=False, allow_abbrev=False)
    taken: set[str] = set()
    command_destinations: dict[str, str] = {}
    option_destinations: dict[str, str] = {}

    def flags(name: str, short_name: str | None) -> list[str]:
        result: list[str] = []
        if f"--{name}" not in taken:
            result.append(f"--{name}")
        if short_name and f"-{short_name}" not in taken:
            result.append(f"-{short_name}")
        taken.update(result)
        return result

    def add_option(option: OptionMetadata) -> None:
        option_strings = flags(option.name, option.short_name)
        if not option_strings:
            _logger.debug("Option '%s' has no free option string", option.name)
            return
        destination = f"option_{len(option_destinations)}"
        option_destinations[destination] = option.name
        if option.is_flag:
            parser.add_argument(*option_strings, dest=destination, action="store_true")
        else:
            parser.add_argument(
                *option_strings, dest=destination, action="append", metavar=option.value_name
            )

    # Runtime options claim their flags before any command.
    for option in options:
        add_option(option)

    for metadata in commands:
        option_strings = flags(metadata.name, metadata.short_name)
        if not option_strings:
            _logger.debug("Command '%s' has no free option string", metadata.name)
            continue
        destination = f"command_{len(command_destinations)}"
        command_destinations[destination] = metadata.name
        parser.add_argument(*option_strings, dest=destination, action="store_true")

    for metadata in commands:
        for option in metadata.options:
            add_option(option)

    parser.add_argument("arguments", nargs="*")
    namespace = parser.parse_intermixed_args(list(args))

    values: dict[str, tuple[str, ...]] = {}
    for destination, name in option_destinations.items():
        value = getattr(namespace, destination)
        if value is True:
            values[name] = ()
        elif value:
            values[name] = tuple(value)
    return Cli(
        command_names=tuple(
            name
            for destination, name in command_destinations.items()
            if getattr(namespace, destination)
        ),
        options=values,
        standalone_arguments=tuple(namespace.arguments),
    )
