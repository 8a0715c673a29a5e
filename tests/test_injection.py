from typing import Callable, Iterator

import pytest

from appboot.exceptions import BindingConflict, NoBinding
from appboot.injection import (
    CachedProxy,
    Endo,
    Proxy,
    aggregator,
    binding_name,
    inject,
    patch,
    patches,
    resolve_root,
    resource,
    simple_mixin,
)
from appboot.log import BootLogger, DefaultBootLogger


class TestSimpleResource:
    """Test basic resource definition and resolution."""

    def test_simple_resource_no_dependencies(self) -> None:
        class Namespace:
            greeting = resource(lambda: "Hello")

        root = resolve_root(Namespace)
        assert root.greeting == "Hello"

    def test_resource_with_dependency(self) -> None:
        class Namespace:
            name = resource(lambda: "World")
            greeting = resource(lambda name: f"Hello, {name}!")

        root = resolve_root(Namespace)
        assert root.greeting == "Hello, World!"

    def test_decorated_functions(self) -> None:
        class Namespace:
            @resource
            def first() -> str:
                return "First"

            @resource
            def combined(first: str) -> str:
                return f"{first} and more"

        root = resolve_root(Namespace)
        assert root["combined"] == "First and more"

    def test_missing_binding(self) -> None:
        class Namespace:
            greeting = resource(lambda name: f"Hello, {name}!")

        root = resolve_root(Namespace)
        with pytest.raises(NoBinding) as exc_info:
            root["greeting"]
        assert exc_info.value.name == "name"
        assert exc_info.value.required_by == "greeting"

    def test_missing_binding_is_key_error(self) -> None:
        root = resolve_root()
        with pytest.raises(KeyError):
            root["absent"]
        with pytest.raises(AttributeError):
            root.absent

    def test_default_value_when_unbound(self) -> None:
        class Namespace:
            greeting = resource(lambda name="default": f"Hello, {name}!")

        root = resolve_root(Namespace)
        assert root.greeting == "Hello, default!"


class TestCaching:
    """Test evaluation counts of proxies."""

    def test_cached_proxy_evaluates_once(self) -> None:
        calls: list[int] = []

        class Namespace:
            value = resource(lambda: calls.append(1) or len(calls))

        root = resolve_root(Namespace)
        assert root.value == 1
        assert root.value == 1
        assert calls == [1]

    def test_plain_proxy_evaluates_each_time(self) -> None:
        calls: list[int] = []

        class Namespace:
            value = resource(lambda: calls.append(1) or len(calls))

        root = resolve_root(Namespace, cls=Proxy)
        assert root.value == 1
        assert root.value == 2

    def test_contains_does_not_evaluate(self) -> None:
        calls: list[int] = []

        class Namespace:
            value = resource(lambda: calls.append(1))

        root = resolve_root(Namespace)
        assert "value" in root
        assert "other" not in root
        assert calls == []


class TestPatch:
    """Test patch decorator."""

    def test_single_patch(self) -> None:
        class Base:
            value = resource(lambda: 10)

        class Patcher:
            value = patch(lambda: (lambda x: x * 2))

        root = resolve_root(Base, Patcher)
        assert root.value == 20

    def test_patches_apply_in_mixin_order(self) -> None:
        class Base:
            value = resource(lambda: "base")

        class First:
            @patch
            def value() -> Endo[str]:
                return lambda s: s + "-first"

        class Second:
            @patch
            def value() -> Endo[str]:
                return lambda s: s + "-second"

        assert resolve_root(Base, First, Second).value == "base-first-second"
        assert resolve_root(Base, Second, First).value == "base-second-first"

    def test_patch_with_dependency(self) -> None:
        class Base:
            value = resource(lambda: 10)
            factor = resource(lambda: 3)

        class Patcher:
            value = patch(lambda factor: (lambda x: x * factor))

        root = resolve_root(Base, Patcher)
        assert root.value == 30

    def test_patch_without_base(self) -> None:
        class Patcher:
            value = patch(lambda: (lambda x: x * 2))

        root = resolve_root(Patcher)
        with pytest.raises(NoBinding):
            root["value"]


class TestPatches:
    """Test patches decorator (multiple patches from single callable)."""

    def test_patches_decorator(self) -> None:
        class Base:
            value = resource(lambda: 10)

        class Patcher:
            value = patches(lambda: ((lambda x: x + 5), (lambda x: x + 3)))

        root = resolve_root(Base, Patcher)
        assert root.value == 18


class TestAggregator:
    """Test aggregator decorator."""

    def test_custom_aggregation(self) -> None:
        class Base:
            tags = aggregator(lambda: frozenset)

        class Provider1:
            tags = patch(lambda: "tag1")

        class Provider2:
            tags = patch(lambda: "tag2")

        root = resolve_root(Base, Provider1, Provider2)
        assert root.tags == frozenset({"tag1", "tag2"})

    def test_aggregation_preserves_order(self) -> None:
        class Base:
            @aggregator
            def names() -> Callable[[Iterator[str]], tuple[str, ...]]:
                return tuple

        class Provider:
            names = patches(lambda: ("b", "a"))

        class LaterProvider:
            names = patch(lambda: "c")

        assert resolve_root(Base, Provider, LaterProvider).names == ("b", "a", "c")

    def test_aggregator_without_patches(self) -> None:
        class Base:
            names = aggregator(lambda: tuple)

        assert resolve_root(Base).names == ()


class TestUnionMount:
    """Test union mount semantics with multiple objects."""

    def test_union_mount_multiple_namespaces(self) -> None:
        class Namespace1:
            foo = resource(lambda: "foo_value")

        class Namespace2:
            bar = resource(lambda: "bar_value")

        root = resolve_root(Namespace1, Namespace2)
        assert root.foo == "foo_value"
        assert root.bar == "bar_value"
        assert set(root) == {"foo", "bar"}
        assert len(root) == 2

    def test_union_mount_with_dependencies_across_namespaces(self) -> None:
        class Namespace1:
            base_value = resource(lambda: "base")

        class Namespace2:
            combined = resource(lambda base_value: f"{base_value}_combined")

        root = resolve_root(Namespace1, Namespace2)
        assert root.combined == "base_combined"

    def test_conflicting_resources(self) -> None:
        class Namespace1:
            foo = resource(lambda: 1)

        class Namespace2:
            foo = resource(lambda: 2)

        root = resolve_root(Namespace1, Namespace2)
        with pytest.raises(BindingConflict):
            root.foo


class TestSimpleMixin:
    """Test simple_mixin helper."""

    def test_simple_mixin_multiple_values(self) -> None:
        proxy = CachedProxy(mixins=(simple_mixin(foo="bar", count=42, flag=True),))
        assert proxy.foo == "bar"
        assert proxy.count == 42
        assert proxy.flag is True

    def test_proxy_symlink(self) -> None:
        inner_proxy = CachedProxy(mixins=(simple_mixin(inner_value="inner"),))

        class Namespace:
            linked = resource(lambda: inner_proxy)

        root = resolve_root(Namespace)
        assert root.linked.inner_value == "inner"


class Greeter:
    def __init__(self, logger: BootLogger, punctuation: str = "!") -> None:
        self.logger = logger
        self.punctuation = punctuation


class TestInject:
    """Test constructor injection by parameter name and annotated type."""

    def test_binding_name(self) -> None:
        assert binding_name("args") == "args"
        assert binding_name(BootLogger) == "boot_logger"
        assert binding_name(DefaultBootLogger) == "default_boot_logger"

    def test_declared_binding_name(self) -> None:
        class Settings:
            __binding_name__ = "app_settings"

        assert binding_name(Settings) == "app_settings"

    def test_resolves_by_annotated_type(self) -> None:
        logger = DefaultBootLogger()
        proxy = CachedProxy(mixins=(simple_mixin(boot_logger=logger),))
        greeter = inject(Greeter, proxy)
        assert greeter.logger is logger
        assert greeter.punctuation == "!"

    def test_parameter_name_wins_over_type(self) -> None:
        by_name = DefaultBootLogger()
        by_type = DefaultBootLogger()
        proxy = CachedProxy(
            mixins=(simple_mixin(logger=by_name, boot_logger=by_type, punctuation="?"),)
        )
        greeter = inject(Greeter, proxy)
        assert greeter.logger is by_name
        assert greeter.punctuation == "?"

    def test_unresolvable_parameter(self) -> None:
        proxy = CachedProxy(mixins=())
        with pytest.raises(NoBinding) as exc_info:
            inject(Greeter, proxy)
        assert exc_info.value.name == "logger"
        assert "Greeter" in str(exc_info.value)
