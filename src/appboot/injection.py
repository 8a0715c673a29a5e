"""
appboot.injection: the dependency injection container behind every runtime.

## Core Design Principle: Explicit Decorator Marking

All injectable definitions in a namespace MUST be explicitly marked with one of these decorators:
- @resource: Creates a base binding that can be modified by patches
- @patch: Provides a single modification to an existing binding
- @patches: Provides multiple modifications to an existing binding
- @aggregator: Defines custom aggregation strategy for patches

Bare callables (functions without decorators) are NOT automatically injected.

Dependencies are resolved by parameter name, pytest-fixture style. When no
binding carries the parameter name, the parameter's annotated type is tried
through ``binding_name``, and finally its default value.

## Example

```python
from appboot.injection import resource, patch, resolve_root

class Greetings:
    @resource
    def greeting() -> str:
        return "Hello"

class Enthusiasm:
    @patch
    def greeting() -> Callable[[str], str]:
        return lambda s: s + "!"

root = resolve_root(Greetings, Enthusiasm)
root.greeting  # "Hello!"
```
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from functools import reduce
from inspect import Parameter, signature
from typing import (
    Any,
    Callable,
    Collection,
    Final,
    Generic,
    Hashable,
    Iterable,
    Iterator,
    Mapping,
    MutableMapping,
    Sequence,
    TypeVar,
    override,
)

from appboot.exceptions import BindingConflict, NoBinding
from appboot.naming import snake_case

_logger: Final[logging.Logger] = logging.getLogger(__name__)


def binding_name(key: "str | type") -> str:
    """
    Return the binding name a key is registered under.

    Strings are used as they are. A type maps to the snake_case form of its
    name unless it declares a ``__binding_name__`` class attribute:

        binding_name(ConfigurationFactory)  # "configuration_factory"
        binding_name("args")  # "args"
    """
    if isinstance(key, str):
        return key
    declared = getattr(key, "__binding_name__", None)
    if isinstance(declared, str):
        return declared
    return snake_case(key.__name__)


@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class Proxy(Mapping[str, object], ABC):
    """
    A Proxy represents bindings available via attributes or keys.

    Mixins are union-mounted in order; the order decides how patches are
    applied, so later modules patch on top of earlier ones.
    """

    mixins: tuple["Mixin", ...]

    def __getitem__(self, key: str) -> object:
        candidates: list[Builder | Patch] = []
        for mixin in self.mixins:
            try:
                factory_or_patch = mixin[key]
            except KeyError:
                continue
            candidates.append(factory_or_patch(self))
        return _evaluate_resource(key, candidates)

    def __getattr__(self, key: str) -> object:
        try:
            return self[key]
        except KeyError as e:
            raise AttributeError(name=key, obj=self) from e

    def __contains__(self, key: object) -> bool:
        return any(key in mixin for mixin in self.mixins)

    def __iter__(self) -> Iterator[str]:
        visited: set[str] = set()
        for mixin in self.mixins:
            for key in mixin:
                if key not in visited:
                    visited.add(key)
                    yield key

    def __len__(self) -> int:
        keys: set[str] = set()
        for mixin in self.mixins:
            keys.update(mixin)
        return len(keys)


@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class CachedProxy(Proxy):
    """A Proxy evaluating each binding at most once."""

    _cache: MutableMapping[str, object] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    @override
    def __getitem__(self, key: str) -> object:
        if key not in self._cache:
            value = Proxy.__getitem__(self, key)
            self._cache[key] = value
            return value
        else:
            return self._cache[key]


TPatch_co = TypeVar("TPatch_co", covariant=True)
TPatch_contra = TypeVar("TPatch_contra", contravariant=True)
TResult_co = TypeVar("TResult_co", covariant=True)


class Builder(ABC, Generic[TPatch_contra, TResult_co]):
    @abstractmethod
    def create(self, patches: Iterator[TPatch_contra]) -> TResult_co: ...


class Patch(Iterable[TPatch_co], ABC):
    """
    A Patch provides extra data to be applied to a binding created by a Builder.
    """


@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class FunctionPatch(Patch[TPatch_co]):
    patch_generator: Callable[[], Iterator[TPatch_co]]

    def __iter__(self) -> Iterator[TPatch_co]:
        return self.patch_generator()


@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class FunctionBuilder(Builder[TPatch_contra, TResult_co]):
    """Builder that applies custom aggregation function to patches."""

    aggregation_function: Callable[[Iterator[TPatch_contra]], TResult_co]

    @override
    def create(self, patches: Iterator[TPatch_contra]) -> TResult_co:
        return self.aggregation_function(patches)


TResult = TypeVar("TResult")
TProxy = TypeVar("TProxy", bound=Proxy)


@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class EndoBuilder(Generic[TResult], Builder[Callable[[TResult], TResult], TResult]):
    """Builder that applies patches as endofunctions via reduce."""

    base_value: TResult

    @override
    def create(self, patches: Iterator[Callable[[TResult], TResult]]) -> TResult:
        return reduce(lambda acc, endo: endo(acc), patches, self.base_value)


class Mixin(Mapping[str, Callable[[Proxy], Builder | Patch]], Hashable, ABC):
    """
    Abstract base class for mixins.
    Mixins are mappings from binding names to factory functions.
    They must compare by identity to allow storage in sets.
    """

    def __hash__(self) -> int:
        return hash(id(self))

    def __eq__(self, other: object) -> bool:
        return self is other


def _evaluate_resource(key: str, candidates: Sequence[Builder | Patch]) -> object:
    builders = [candidate for candidate in candidates if isinstance(candidate, Builder)]
    if not builders:
        if candidates:
            _logger.debug("Binding '%s' has patches but no base definition", key)
        raise NoBinding(key)
    if len(builders) > 1:
        raise BindingConflict(f"Multiple definitions provided for '{key}'")
    patches = (
        patch
        for maybe_patch in candidates
        if isinstance(maybe_patch, Patch)
        for patch in maybe_patch
    )
    return builders[0].create(patches)


class Definition(ABC):
    @abstractmethod
    def bind(self, resource_name: str, /) -> Callable[[Proxy], Builder | Patch]: ...


class BuilderDefinition(Definition, Generic[TPatch_contra, TResult_co]):
    @abstractmethod
    def bind(self, resource_name: str, /) -> Callable[[Proxy], Builder]: ...


class PatchDefinition(Definition, Generic[TPatch_co]):
    @abstractmethod
    def bind(self, resource_name: str, /) -> Callable[[Proxy], Patch]: ...


def _injectable_parameters(function: Callable[..., Any]) -> Iterator[Parameter]:
    try:
        sig = signature(function, eval_str=True)
    except NameError:
        # Annotations referring to names unavailable at runtime.
        sig = signature(function)
    for parameter in sig.parameters.values():
        if parameter.kind in (Parameter.VAR_POSITIONAL, Parameter.VAR_KEYWORD):
            continue
        yield parameter


def _resolve_dependencies(
    function: Callable[..., Any],
    resource_name: str,
    proxy: Proxy,
) -> Mapping[str, Any]:
    """
    Resolve dependencies for a callable based on its parameters.

    A parameter is looked up in the proxy by its name, then by the binding name
    of its annotated type, and finally falls back to its default value. A
    parameter named after the resource being built never resolves to itself.
    """

    def resolve_param(parameter: Parameter) -> Any:
        param_name = parameter.name
        if param_name != resource_name and param_name in proxy:
            return proxy[param_name]
        annotation = parameter.annotation
        if isinstance(annotation, type) and annotation is not Parameter.empty:
            type_name = binding_name(annotation)
            if type_name != resource_name and type_name in proxy:
                return proxy[type_name]
        if parameter.default is not Parameter.empty:
            return parameter.default
        raise NoBinding(param_name, required_by=resource_name)

    return {
        parameter.name: resolve_param(parameter)
        for parameter in _injectable_parameters(function)
    }


def inject(function: Callable[..., TResult], proxy: Proxy) -> TResult:
    """
    Call ``function`` with its parameters resolved from ``proxy``.

    Classes are instantiated through their constructor signature:

        command = inject(XCommand, runtime_proxy)
    """
    name = getattr(function, "__qualname__", repr(function))
    _logger.debug("Injecting dependencies into %s", name)
    arguments = _resolve_dependencies(function, name, proxy)
    return function(**arguments)


@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class AggregatorDefinition(BuilderDefinition[TPatch_contra, TResult_co]):
    """Definition for aggregator decorator."""

    function: Callable[..., Callable[[Iterator[TPatch_contra]], TResult_co]]

    @override
    def bind(
        self, resource_name: str, /
    ) -> Callable[[Proxy], Builder[TPatch_contra, TResult_co]]:
        def factory(proxy: Proxy) -> Builder[TPatch_contra, TResult_co]:
            dependencies = _resolve_dependencies(self.function, resource_name, proxy)
            return FunctionBuilder(aggregation_function=self.function(**dependencies))

        return factory


@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class ResourceDefinition(
    Generic[TResult], BuilderDefinition[Callable[[TResult], TResult], TResult]
):
    """Definition for resource decorator."""

    function: Callable[..., TResult]

    @override
    def bind(
        self, resource_name: str, /
    ) -> Callable[[Proxy], Builder[Callable[[TResult], TResult], TResult]]:
        def factory(proxy: Proxy) -> Builder[Callable[[TResult], TResult], TResult]:
            resolved_args = _resolve_dependencies(self.function, resource_name, proxy)
            base_value = self.function(**resolved_args)
            return EndoBuilder(base_value=base_value)

        return factory


@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class SinglePatchDefinition(PatchDefinition[TPatch_co]):
    """Definition for patch decorator (single patch)."""

    function: Callable[..., TPatch_co]

    @override
    def bind(self, resource_name: str, /) -> Callable[[Proxy], Patch[TPatch_co]]:
        def factory(proxy: Proxy) -> Patch[TPatch_co]:
            def patch_generator() -> Iterator[TPatch_co]:
                resolved_args = _resolve_dependencies(self.function, resource_name, proxy)
                yield self.function(**resolved_args)

            return FunctionPatch(patch_generator=patch_generator)

        return factory


@dataclass(frozen=True, kw_only=True, slots=True, weakref_slot=True)
class MultiplePatchDefinition(PatchDefinition[TPatch_co]):
    """Definition for patches decorator (multiple patches)."""

    function: Callable[..., Collection[TPatch_co]]

    @override
    def bind(self, resource_name: str, /) -> Callable[[Proxy], Patch[TPatch_co]]:
        def factory(proxy: Proxy) -> Patch[TPatch_co]:
            def patch_generator() -> Iterator[TPatch_co]:
                resolved_args = _resolve_dependencies(self.function, resource_name, proxy)
                yield from self.function(**resolved_args)

            return FunctionPatch(patch_generator=patch_generator)

        return factory


T = TypeVar("T")


@dataclass(frozen=True, kw_only=True)
class ObjectMapping(Mapping[str, Definition], Generic[T]):
    """
    A lazy mapping that parses definitions from an object's attributes on access.
    Implements call-by-name semantics using dir() and getattr().
    """

    underlying: T

    def __getitem__(self, key: str) -> Definition:
        try:
            val = getattr(self.underlying, key)
        except AttributeError as e:
            raise KeyError(key) from e

        if isinstance(val, Definition):
            return val
        raise KeyError(key)

    def __iter__(self) -> Iterator[str]:
        for name in dir(self.underlying):
            try:
                val = getattr(self.underlying, name)
            except AttributeError:
                continue
            if isinstance(val, Definition):
                yield name

    def __len__(self) -> int:
        return sum(1 for _ in self)


def parse(namespace: object) -> Mapping[str, Definition]:
    """
    Parses a class, an instance or a Python module into its definitions.

    Only attributes explicitly decorated with @resource, @patch, @patches, or @aggregator are included.

    IMPORTANT: Bare callables (without decorators) are NOT automatically included.
    Users must explicitly mark all injectable definitions with appropriate decorators.
    """
    return ObjectMapping(underlying=namespace)


Endo = Callable[[TResult], TResult]


def aggregator(
    callable: Callable[..., Callable[[Iterator[TPatch_contra]], TResult_co]],
) -> BuilderDefinition[TPatch_contra, TResult_co]:
    """
    A decorator that converts a callable into a builder definition with a custom aggregation strategy for patches.

    Example:

    The following example collects the commands contributed by several modules into a frozenset.

        class Base:
            @aggregator
            def command_types():
                return frozenset

        class ModuleA:
            @patch
            def command_types():
                return StartCommand

        class ModuleB:
            @patch
            def command_types():
                return StopCommand

        root = resolve_root(Base, ModuleA, ModuleB)
        root.command_types  # frozenset({StartCommand, StopCommand})
    """
    return AggregatorDefinition(function=callable)


def patch(
    callable: Callable[..., TPatch_co],
) -> PatchDefinition[TPatch_co]:
    """
    A decorator that converts a callable into a patch definition.
    """
    return SinglePatchDefinition(function=callable)


def patches(
    callable: Callable[..., Collection[TPatch_co]],
) -> PatchDefinition[TPatch_co]:
    """
    A decorator that converts a callable into a patch definition.
    """
    return MultiplePatchDefinition(function=callable)


def resource(
    callable: Callable[..., TResult],
) -> BuilderDefinition[Endo[TResult], TResult]:
    """
    A decorator that converts a callable into a builder definition that treats patches as endofunctions.

    It's a syntactic sugar for using ``aggregator`` with a standard endofunction application strategy.

    Example:
    The following example defines a binding that can be modified by patches.
        from appboot.injection import resource, patch
        @resource
        def greeting() -> str:
            return "Hello"


        @patch
        def greeting() -> Endo[str]:
            return lambda original: original + "!!!"
    """
    return ResourceDefinition(function=callable)


@dataclass(frozen=True, kw_only=True, slots=True, eq=False)
class CompiledMixin(Mixin):
    normalized_scope_definition: Mapping[str, Definition]

    def __getitem__(self, key: str) -> Callable[[Proxy], Builder | Patch]:
        if key not in self.normalized_scope_definition:
            raise KeyError(key)
        definition = self.normalized_scope_definition[key]
        return definition.bind(key)

    def __iter__(self) -> Iterator[str]:
        return iter(self.normalized_scope_definition)

    def __len__(self) -> int:
        return len(self.normalized_scope_definition)


def compile(normalized_scope_definition: Mapping[str, Definition]) -> Mixin:
    return CompiledMixin(normalized_scope_definition=normalized_scope_definition)


def resolve_root(*objects: object, cls: type[TProxy] = CachedProxy) -> TProxy:
    """
    Resolves a Proxy union-mounting the definitions of the given classes or modules.

    Examples:
        root = resolve_root(MyNamespace)
        root = resolve_root(MyNamespace, cls=Proxy)
    """
    return cls(mixins=tuple(compile(parse(obj)) for obj in objects))


@dataclass(frozen=True, kw_only=True, slots=True, eq=False)
class KeywordArgumentMixin(Mixin):
    kwargs: Mapping[str, object]

    def __getitem__(self, key: str) -> Callable[[Proxy], Builder | Patch]:
        if key not in self.kwargs:
            raise KeyError(key)
        value = self.kwargs[key]

        def factory(proxy: Proxy) -> Builder[Any, object]:
            return EndoBuilder(base_value=value)

        return factory

    def __iter__(self) -> Iterator[str]:
        return iter(self.kwargs)

    def __len__(self) -> int:
        return len(self.kwargs)


def simple_mixin(**kwargs: object) -> Mixin:
    return KeywordArgumentMixin(kwargs=kwargs)
