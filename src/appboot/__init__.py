"""
appboot: a modular application runtime with dependency injection, YAML
configuration and command dispatch.

```python
import appboot
from appboot import Cli, Command, CommandOutcome, CoreModule

class HelloCommand(Command):
    \"\"\"Says hello.\"\"\"

    def __init__(self, boot_logger: appboot.BootLogger) -> None:
        self.boot_logger = boot_logger

    def execute(self, cli: Cli) -> CommandOutcome:
        self.boot_logger.stdout("Hello")
        return CommandOutcome.succeeded()

appboot.app("--hello").module(lambda b: CoreModule.extend(b).add_command(HelloCommand)).exec().exit()
```
"""

from appboot.binder import Binder, Module
from appboot.cli import Cli
from appboot.command import Command, CommandMetadata, CommandOutcome, OptionMetadata
from appboot.config import ConfigurationFactory, ignore_unknown
from appboot.core_module import CoreModule, CoreModuleExtender
from appboot.exceptions import (
    AppBootError,
    BindingConflict,
    BuilderClosed,
    CliError,
    ConfigError,
    ConfigReadError,
    ConfigTypeMismatch,
    DuplicateCommand,
    NoBinding,
    UnknownConfigKey,
)
from appboot.log import BootLogger, DefaultBootLogger
from appboot.runtime import Runtime, RuntimeBuilder, app
from appboot.shutdown import ShutdownManager

__all__ = [
    "AppBootError",
    "Binder",
    "BindingConflict",
    "BootLogger",
    "BuilderClosed",
    "Cli",
    "CliError",
    "Command",
    "CommandMetadata",
    "CommandOutcome",
    "ConfigError",
    "ConfigReadError",
    "ConfigTypeMismatch",
    "ConfigurationFactory",
    "CoreModule",
    "CoreModuleExtender",
    "DefaultBootLogger",
    "DuplicateCommand",
    "Module",
    "NoBinding",
    "OptionMetadata",
    "Runtime",
    "RuntimeBuilder",
    "ShutdownManager",
    "UnknownConfigKey",
    "app",
    "ignore_unknown",
]
