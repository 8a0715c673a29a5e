"""
Modules and the binder they contribute bindings through.

A module is any of:

- an object with a ``configure(binder)`` method,
- a class defining ``configure`` (instantiated without arguments),
- a plain callable taking the binder,
- a namespace (class or Python module) of ``@resource``/``@patch``/
  ``@patches``/``@aggregator`` definitions.

Each binder compiles into one or more mixins. The runtime union-mounts the
mixins of all modules in module order.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from types import ModuleType
from typing import Any, Callable, Final, Protocol, Union, runtime_checkable

from appboot.injection import (
    Definition,
    Mixin,
    ResourceDefinition,
    SinglePatchDefinition,
    binding_name,
    compile,
    parse,
)

_logger: Final[logging.Logger] = logging.getLogger(__name__)


@runtime_checkable
class ConfigurableModule(Protocol):
    def configure(self, binder: "Binder") -> None: ...


Module = Union[ConfigurableModule, Callable[["Binder"], None], type, ModuleType]


class Binder:
    """Collects the definitions contributed by one module."""

    def __init__(self, module_name: str = "") -> None:
        self.module_name = module_name
        self._definitions: defaultdict[str, list[Definition]] = defaultdict(list)

    def bind(self, key: str | type, instance: object) -> None:
        """Bind ``key`` to a ready-made instance."""
        self._add(key, ResourceDefinition(function=lambda: instance))

    def bind_provider(self, key: str | type, provider: Callable[..., object]) -> None:
        """Bind ``key`` to the result of ``provider``, whose parameters are injected."""
        self._add(key, ResourceDefinition(function=provider))

    def contribute(self, key: str | type, value: object) -> None:
        """Add ``value`` as a patch to the binding ``key``."""
        self._add(key, SinglePatchDefinition(function=lambda: value))

    def install(self, namespace: object) -> None:
        """Add every decorated definition of a class, instance or Python module."""
        for name, definition in parse(namespace).items():
            self._add(name, definition)

    def _add(self, key: str | type, definition: Definition) -> None:
        name = binding_name(key)
        _logger.debug("Module '%s' contributes '%s'", self.module_name, name)
        self._definitions[name].append(definition)

    def build(self) -> tuple[Mixin, ...]:
        """
        Compile the collected definitions into mixins.

        A mixin holds at most one definition per name, so the n-th mixin holds
        the n-th definition of every name.
        """
        depth = max((len(definitions) for definitions in self._definitions.values()), default=0)
        return tuple(
            compile(
                {
                    name: definitions[layer]
                    for name, definitions in self._definitions.items()
                    if layer < len(definitions)
                },
            )
            for layer in range(depth)
        )


def module_name(module: Any) -> str:
    if isinstance(module, ModuleType):
        return module.__name__
    if isinstance(module, type) or callable(module) and hasattr(module, "__qualname__"):
        return module.__qualname__
    return type(module).__qualname__


def apply_module(module: Module, binder: Binder) -> None:
    """Let ``module`` contribute its bindings to ``binder``."""
    if isinstance(module, type):
        if callable(getattr(module, "configure", None)):
            module().configure(binder)
        else:
            binder.install(module)
    elif isinstance(module, ModuleType):
        configure = getattr(module, "configure", None)
        if callable(configure):
            configure(binder)
        else:
            binder.install(module)
    elif isinstance(module, ConfigurableModule):
        module.configure(binder)
    elif callable(module):
        module(binder)
    else:
        binder.install(module)
