"""
The runtime: an immutable container assembled from modules, and the builder
that assembles it.

```python
outcome = appboot.app(*sys.argv[1:]).auto_load_modules().module(MyModule).exec()
outcome.exit()
```
"""

from __future__ import annotations

import logging
import os
from enum import Enum, auto
from typing import Any, Final, Mapping, Self, Sequence, TypeVar, cast, overload

from appboot.binder import Binder, Module, apply_module, module_name
from appboot.cli import Cli
from appboot.command import FAILURE, Command, CommandOutcome
from appboot.config.properties import PropertyStore, system_properties
from appboot.core_module import CommandManager, CommandSource, CoreModule
from appboot.exceptions import BuilderClosed, CliError
from appboot.injection import CachedProxy, Mixin, Proxy, binding_name, inject, simple_mixin
from appboot.log import BootLogger, DefaultBootLogger
from appboot.modules import load_modules
from appboot.shutdown import ShutdownManager

_logger: Final[logging.Logger] = logging.getLogger(__name__)

TRACE_PROPERTY: Final[str] = "bq.trace"
"""Setting this property enables the boot logger's trace channel."""

T = TypeVar("T")


class Runtime:
    """
    The assembled container: the argument vector, the bindings of all modules
    and the boot logger. It exposes no mutators.
    """

    __slots__ = ("_args", "_injector", "_boot_logger", "_command_manager", "_shut_down")

    def __init__(self, *, args: Sequence[str], injector: Proxy, boot_logger: BootLogger) -> None:
        self._args = tuple(args)
        self._injector = injector
        self._boot_logger = boot_logger
        # Resolved eagerly so that command registration errors surface at build time.
        self._command_manager = cast(CommandManager, injector[binding_name(CommandManager)])
        self._shut_down = False

    @property
    def args(self) -> list[str]:
        return list(self._args)

    @property
    def boot_logger(self) -> BootLogger:
        return self._boot_logger

    @overload
    def get(self, key: type[T]) -> T: ...

    @overload
    def get(self, key: str) -> Any: ...

    def get(self, key: type[T] | str) -> T | Any:
        """
        Look up a binding by type or by name.

        :raises NoBinding: when nothing is bound under the key.
        """
        return self._injector[binding_name(key)]

    def run(self) -> CommandOutcome:
        """Select a command from the argument vector and execute it."""
        try:
            cli = self.get(Cli)
        except CliError as e:
            return CommandOutcome.failed(FAILURE, str(e), exception=e)

        names = cli.command_names
        if len(names) > 1:
            self._boot_logger.trace(lambda: f"Several commands selected: {', '.join(names)}")
            return CommandOutcome.failed(FAILURE, "ambiguous command")
        if names:
            binding = self._command_manager.lookup(names[0])
        elif self._command_manager.default_command is not None:
            binding = self._command_manager.default_command
        else:
            return CommandOutcome.failed(FAILURE, "no command")

        command = self._instantiate(binding.command)
        self._boot_logger.trace(lambda: f"Running command '{binding.metadata.name}'")
        try:
            return command.execute(cli)
        except Exception as e:
            _logger.debug("Command '%s' raised", binding.metadata.name, exc_info=True)
            return CommandOutcome.failed(FAILURE, str(e) or type(e).__name__, exception=e)

    def _instantiate(self, command: CommandSource) -> Command:
        if isinstance(command, Command):
            return command
        return inject(command, self._injector)

    def shutdown(self) -> None:
        """Run the shutdown hooks; later calls do nothing."""
        if self._shut_down:
            return
        self._shut_down = True
        self._boot_logger.trace("Shutting down runtime")
        self.get(ShutdownManager).shutdown()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()


class BuilderState(Enum):
    CONFIGURING = auto()
    BUILT = auto()


class RuntimeBuilder:
    """
    Fluent builder of a ``Runtime``.

    ``create_runtime`` is the only transition from ``CONFIGURING`` to
    ``BUILT``; mutating a built builder raises ``BuilderClosed``.
    """

    def __init__(self, *args: str) -> None:
        self._args: list[str] = list(args)
        self._modules: list[Module] = []
        self._auto_load = False
        self._boot_logger: BootLogger | None = None
        self._properties: Mapping[str, str] | None = None
        self._property_overrides: dict[str, str] = {}
        self._environment: Mapping[str, str] | None = None
        self._var_overrides: dict[str, str] = {}
        self._state = BuilderState.CONFIGURING

    @property
    def state(self) -> BuilderState:
        return self._state

    def _check_open(self) -> None:
        if self._state is BuilderState.BUILT:
            raise BuilderClosed("The runtime was already created by this builder")

    def args(self, *args: str) -> Self:
        self._check_open()
        self._args.extend(args)
        return self

    def auto_load_modules(self) -> Self:
        """Also load the modules advertised under the ``appboot.modules`` entry point group."""
        self._check_open()
        self._auto_load = True
        return self

    def module(self, module: Module) -> Self:
        self._check_open()
        self._modules.append(module)
        return self

    def modules(self, *modules: Module) -> Self:
        self._check_open()
        self._modules.extend(modules)
        return self

    def boot_logger(self, boot_logger: BootLogger) -> Self:
        self._check_open()
        self._boot_logger = boot_logger
        return self

    def properties(self, properties: Mapping[str, str]) -> Self:
        """Use ``properties`` as the property store, read when the config tree is built."""
        self._check_open()
        self._properties = properties
        return self

    def set_property(self, key: str, value: str) -> Self:
        self._check_open()
        self._property_overrides[key] = value
        return self

    def environment(self, environment: Mapping[str, str]) -> Self:
        self._check_open()
        self._environment = environment
        return self

    def var(self, name: str, value: str) -> Self:
        self._check_open()
        self._var_overrides[name] = value
        return self

    def _default_properties(self) -> Mapping[str, str]:
        return system_properties

    def _default_environment(self) -> Mapping[str, str]:
        return os.environ

    def _default_boot_logger(self, properties: Mapping[str, str]) -> BootLogger:
        return DefaultBootLogger(trace=TRACE_PROPERTY in properties)

    def _effective_properties(self) -> Mapping[str, str]:
        properties = self._properties if self._properties is not None else self._default_properties()
        if not self._property_overrides:
            return properties
        return PropertyStore({**properties, **self._property_overrides})

    def _effective_environment(self) -> Mapping[str, str]:
        environment = (
            self._environment if self._environment is not None else self._default_environment()
        )
        if not self._var_overrides:
            return environment
        return {**environment, **self._var_overrides}

    def _all_modules(self) -> list[Module]:
        modules: list[Module] = [CoreModule()]
        if self._auto_load:
            modules.extend(load_modules())
        modules.extend(self._modules)
        return modules

    def create_runtime(self) -> Runtime:
        self._check_open()
        self._state = BuilderState.BUILT

        properties = self._effective_properties()
        boot_logger = self._boot_logger or self._default_boot_logger(properties)
        mixins: list[Mixin] = [
            simple_mixin(
                args=tuple(self._args),
                boot_logger=boot_logger,
                properties=properties,
                environment=self._effective_environment(),
            )
        ]
        for module in self._all_modules():
            binder = Binder(module_name(module))
            boot_logger.trace(f"Loading module '{binder.module_name}'")
            apply_module(module, binder)
            mixins.extend(binder.build())

        _logger.debug("Creating runtime with %d mixins", len(mixins))
        return Runtime(
            args=self._args,
            injector=CachedProxy(mixins=tuple(mixins)),
            boot_logger=boot_logger,
        )

    def exec(self) -> CommandOutcome:
        """Create the runtime, run it, report a failure on stderr and shut it down."""
        runtime = self.create_runtime()
        try:
            outcome = runtime.run()
        finally:
            runtime.shutdown()
        if not outcome.is_success:
            runtime.boot_logger.stderr(
                f"Error running command '{' '.join(runtime.args)}': {outcome.message}"
            )
        return outcome


def app(*args: str) -> RuntimeBuilder:
    """Start building a runtime for the given argument vector."""
    return RuntimeBuilder(*args)
