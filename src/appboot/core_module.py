"""
The core module: bindings every runtime starts with, and the extender other
modules use to contribute commands, options, properties and config files.

```python
def configure(binder: Binder) -> None:
    CoreModule.extend(binder).add_command(ServerCommand).set_property("bq.server.port", "8080")
```
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from os import PathLike
from typing import Callable, Final, Iterator, Mapping, Self, Sequence

from appboot.binder import Binder
from appboot.cli import Cli, parse_cli
from appboot.command import Command, CommandMetadata, CommandOutcome, OptionMetadata
from appboot.config.factory import ConfigurationFactory
from appboot.config.overlay import overlay_properties, overlay_variables
from appboot.config.source import ConfigTree, load_configs
from appboot.exceptions import DuplicateCommand
from appboot.injection import aggregator, resource
from appboot.log import BootLogger
from appboot.shutdown import ShutdownManager

_logger: Final[logging.Logger] = logging.getLogger(__name__)

CONFIG_OPTION: Final[OptionMetadata] = OptionMetadata(
    name="config",
    value_name="yaml_location",
    description="Specifies YAML config location. Can be repeated; later files win.",
)

CommandSource = type[Command] | Command


@dataclass(frozen=True, kw_only=True, slots=True)
class CommandBinding:
    metadata: CommandMetadata
    command: CommandSource


@dataclass(frozen=True, kw_only=True, slots=True)
class CommandManager:
    """Registered commands indexed by name, plus the optional default command."""

    commands: Mapping[str, CommandBinding]
    default_command: CommandBinding | None = None

    def metadata(self) -> tuple[CommandMetadata, ...]:
        return tuple(binding.metadata for binding in self.commands.values())

    def lookup(self, name: str) -> CommandBinding:
        return self.commands[name]


def _index_commands(contributions: Iterator[CommandSource]) -> Mapping[str, CommandBinding]:
    index: dict[str, CommandBinding] = {}
    for command in contributions:
        metadata = CommandMetadata.of(command)
        existing = index.get(metadata.name)
        if existing is not None:
            if existing.command is command:
                continue
            raise DuplicateCommand(
                f"More than one command named '{metadata.name}': "
                f"{_describe(existing.command)} and {_describe(command)}"
            )
        index[metadata.name] = CommandBinding(metadata=metadata, command=command)
    return index


def _describe(command: CommandSource) -> str:
    command_type = command if isinstance(command, type) else type(command)
    return command_type.__qualname__


class _CoreBindings:
    @aggregator
    def commands() -> Callable[[Iterator[CommandSource]], Mapping[str, CommandBinding]]:
        return _index_commands

    @resource
    def default_command() -> CommandSource | None:
        return None

    @resource
    def application_name() -> str:
        return "app"

    @aggregator
    def options() -> Callable[[Iterator[OptionMetadata]], tuple[OptionMetadata, ...]]:
        return tuple

    @aggregator
    def module_properties() -> Callable[[Iterator[tuple[str, str]]], dict[str, str]]:
        return dict

    @aggregator
    def declared_vars() -> Callable[[Iterator[tuple[str, str]]], dict[str, str]]:
        return dict

    @aggregator
    def config_resources() -> Callable[[Iterator[str]], tuple[str, ...]]:
        return tuple

    @resource
    def command_manager(
        commands: Mapping[str, CommandBinding], default_command: CommandSource | None
    ) -> CommandManager:
        if default_command is None:
            return CommandManager(commands=commands)
        metadata = CommandMetadata.of(default_command)
        return CommandManager(
            commands=commands,
            default_command=CommandBinding(metadata=metadata, command=default_command),
        )

    @resource
    def cli(
        args: Sequence[str],
        command_manager: CommandManager,
        options: tuple[OptionMetadata, ...],
        application_name: str,
    ) -> Cli:
        return parse_cli(args, command_manager.metadata(), options, prog=application_name)

    @resource
    def config_tree(
        cli: Cli,
        config_resources: tuple[str, ...],
        module_properties: Mapping[str, str],
        properties: Mapping[str, str],
        environment: Mapping[str, str],
        declared_vars: Mapping[str, str],
    ) -> ConfigTree:
        locations = (*config_resources, *cli.option_strings(CONFIG_OPTION.name))
        _logger.debug("Loading configuration from %s", locations)
        tree = load_configs(locations)
        tree = overlay_properties(tree, module_properties)
        tree = overlay_properties(tree, properties)
        return overlay_variables(tree, environment, declared_vars)

    @resource
    def configuration_factory(config_tree: ConfigTree) -> ConfigurationFactory:
        return ConfigurationFactory(config_tree)

    @resource
    def shutdown_manager(boot_logger: BootLogger) -> ShutdownManager:
        return ShutdownManager(boot_logger)


class HelpCommand(Command, name="help", short_name="h"):
    """Prints this message."""

    def __init__(
        self,
        command_manager: CommandManager,
        options: tuple[OptionMetadata, ...],
        boot_logger: BootLogger,
        application_name: str,
    ) -> None:
        self.command_manager = command_manager
        self.options = options
        self.boot_logger = boot_logger
        self.application_name = application_name

    def execute(self, cli: Cli) -> CommandOutcome:
        self.boot_logger.stdout(self.render())
        return CommandOutcome.succeeded()

    def render(self) -> str:
        command_rows = [
            (_flags(metadata.name, metadata.short_name, None), metadata.description or "")
            for metadata in sorted(self.command_manager.metadata(), key=lambda m: m.name)
        ]
        option_rows = [
            (_flags(option.name, option.short_name, option.value_name), option.description or "")
            for option in self.options
        ]
        width = max((len(flags) for flags, _ in (*command_rows, *option_rows)), default=0)
        lines = [f"Usage: {self.application_name} [options] [arguments]", "", "Commands:"]
        lines.extend(f"  {flags.ljust(width)}  {text}".rstrip() for flags, text in command_rows)
        if option_rows:
            lines.extend(["", "Options:"])
            lines.extend(f"  {flags.ljust(width)}  {text}".rstrip() for flags, text in option_rows)
        return "\n".join(lines)


def _flags(name: str, short_name: str | None, value_name: str | None) -> str:
    long_flag = f"--{name}" if value_name is None else f"--{name}={value_name}"
    return f"-{short_name}, {long_flag}" if short_name else long_flag


class CoreModuleExtender:
    """Fluent surface for contributing to the core bindings from a module."""

    def __init__(self, binder: Binder) -> None:
        self._binder = binder

    def add_command(self, command: CommandSource) -> Self:
        """Register a command class (constructed by injection) or instance."""
        self._binder.contribute("commands", command)
        return self

    def add_commands(self, *commands: CommandSource) -> Self:
        for command in commands:
            self.add_command(command)
        return self

    def set_default_command(self, command: CommandSource) -> Self:
        """Run ``command`` when the argument vector selects none."""
        self._binder.contribute("default_command", lambda _previous: command)
        return self

    def set_application_name(self, name: str) -> Self:
        self._binder.contribute("application_name", lambda _previous: name)
        return self

    def add_option(self, option: OptionMetadata) -> Self:
        self._binder.contribute("options", option)
        return self

    def set_property(self, key: str, value: str) -> Self:
        """Set a ``bq.``-prefixed property; the process property store overrides it."""
        self._binder.contribute("module_properties", (key, value))
        return self

    def declare_var(self, config_path: str, var_name: str) -> Self:
        """Let the environment variable ``var_name`` set the dotted ``config_path``."""
        self._binder.contribute("declared_vars", (var_name, config_path))
        return self

    def add_config(self, location: str | PathLike[str]) -> Self:
        """Load a config file before the ``--config`` files of the command line."""
        self._binder.contribute("config_resources", str(location))
        return self


class CoreModule:
    """Commands, CLI parsing, configuration and shutdown support."""

    def configure(self, binder: Binder) -> None:
        binder.install(_CoreBindings)
        CoreModule.extend(binder).add_command(HelpCommand).add_option(CONFIG_OPTION)

    @staticmethod
    def extend(binder: Binder) -> CoreModuleExtender:
        return CoreModuleExtender(binder)
