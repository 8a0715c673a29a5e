from dataclasses import dataclass
from pathlib import Path

import pytest

from appboot.config import ConfigurationFactory, describe, ignore_unknown, load_config, to_config_tree
from appboot.exceptions import ConfigError, ConfigTypeMismatch, UnknownConfigKey
from tests.fixtures.commands import Bean1, Mode, Server


class Strict:
    name: str = "default"
    count: int = 0


class WithSetters:
    def __init__(self) -> None:
        self._port = 0

    def set_port(self, port: int) -> None:
        self._port = port

    def get_port(self) -> int:
        return self._port


@dataclass
class Pool:
    size: int


@dataclass
class Database:
    url: str = "sqlite://"
    pool: Pool | None = None
    options: dict[str, int] | None = None


class TestConfigurationFactory:
    """Test materializing beans from a config tree."""

    def test_nested_beans(self, config_dir: Path) -> None:
        factory = ConfigurationFactory(load_config(config_dir / "config_environment.yml"))
        bean = factory.config(Bean1)
        assert bean.a == "e"
        assert bean.c is not None and bean.c.m is not None
        assert bean.c.m.k == "q"
        assert bean.c.m.l == "n"

    def test_unknown_keys_tolerated(self) -> None:
        factory = ConfigurationFactory({"a": "e", "c": {"m": {"k": "q", "f": "x"}}})
        bean = factory.config(Bean1)
        assert bean.c is not None and bean.c.m is not None
        assert bean.c.m.k == "q"
        assert not hasattr(bean.c.m, "f")

    def test_unknown_key_rejected(self) -> None:
        factory = ConfigurationFactory({"name": "x", "colour": "red"})
        with pytest.raises(UnknownConfigKey) as exc_info:
            factory.config(Strict)
        assert exc_info.value.path == "colour"

    def test_scalar_coercion(self, config_dir: Path) -> None:
        factory = ConfigurationFactory(load_config(config_dir / "server.yml"))
        server = factory.config(Server, "server")
        assert server == Server(
            host="localhost", port=8080, debug=True, tags=["api", "internal"], mode=Mode.FAST
        )

    def test_enum_by_value(self) -> None:
        factory = ConfigurationFactory({"mode": "safe"})
        assert factory.config(Server).mode is Mode.SAFE

    def test_missing_prefix_yields_defaults(self) -> None:
        factory = ConfigurationFactory({"other": {"x": "1"}})
        assert factory.config(Server, "server") == Server()

    def test_missing_attributes_keep_defaults(self) -> None:
        factory = ConfigurationFactory({"name": "x"})
        bean = factory.config(Strict)
        assert bean.name == "x"
        assert bean.count == 0

    def test_hyphenated_and_camel_keys(self) -> None:
        @dataclass
        class Limits:
            max_size: int = 0
            min_size: int = 0

        factory = ConfigurationFactory({"max-size": "10", "minSize": "2"})
        assert factory.config(Limits) == Limits(max_size=10, min_size=2)

    def test_attribute_set_twice(self) -> None:
        @dataclass
        class Limits:
            max_size: int = 0

        factory = ConfigurationFactory({"max_size": "10", "max-size": "2"})
        with pytest.raises(ConfigError, match="set twice"):
            factory.config(Limits)

    def test_setter_methods(self) -> None:
        factory = ConfigurationFactory({"port": "8080"})
        bean = factory.config(WithSetters)
        assert bean.get_port() == 8080

    def test_nested_dataclasses_and_mappings(self) -> None:
        factory = ConfigurationFactory(
            {"db": {"url": "postgres://", "pool": {"size": "5"}, "options": {"timeout": "30"}}}
        )
        database = factory.config(Database, "db")
        assert database == Database(url="postgres://", pool=Pool(size=5), options={"timeout": 30})

    def test_missing_required_field(self) -> None:
        factory = ConfigurationFactory({"pool": {}})
        with pytest.raises(ConfigError, match="Cannot create"):
            factory.config(Database)

    def test_mapping_where_scalar_expected(self) -> None:
        factory = ConfigurationFactory({"name": {"nested": "x"}})
        with pytest.raises(ConfigTypeMismatch) as exc_info:
            factory.config(Strict)
        assert exc_info.value.path == "name"

    def test_scalar_where_mapping_expected(self) -> None:
        factory = ConfigurationFactory({"c": "flat"})
        with pytest.raises(ConfigTypeMismatch):
            factory.config(Bean1)

    def test_uncoercible_scalar(self) -> None:
        factory = ConfigurationFactory({"count": "many"})
        with pytest.raises(ConfigTypeMismatch, match="many"):
            factory.config(Strict)

    def test_invalid_boolean(self) -> None:
        factory = ConfigurationFactory({"debug": "maybe"})
        with pytest.raises(ConfigTypeMismatch):
            factory.config(Server)

    def test_prefix_through_scalar(self) -> None:
        factory = ConfigurationFactory({"a": "e"})
        with pytest.raises(ConfigTypeMismatch):
            factory.config(Strict, "a.b")


class TestBeanDescriptor:
    """Test the schema recorded for bean types."""

    def test_plain_class_attributes(self) -> None:
        descriptor = describe(Strict)
        assert set(descriptor.attributes) == {"name", "count"}
        assert descriptor.attributes["count"].type is int
        assert not descriptor.ignore_unknown

    def test_setter_attribute(self) -> None:
        attribute = describe(WithSetters).attributes["port"]
        assert attribute.setter == "set_port"
        assert attribute.type is int

    def test_ignore_unknown_flag(self) -> None:
        @ignore_unknown
        class Lenient:
            name: str = ""

        assert describe(Lenient).ignore_unknown


class TestToConfigTree:
    """Test serializing beans back into config trees."""

    def test_dataclass(self) -> None:
        server = Server(host="h", port=1, debug=True, tags=["a"], mode=Mode.FAST)
        assert to_config_tree(server) == {
            "host": "h",
            "port": "1",
            "debug": "true",
            "tags": ["a"],
            "mode": "FAST",
        }

    def test_getter_backed_bean(self) -> None:
        bean = WithSetters()
        bean.set_port(9)
        assert to_config_tree(bean) == {"port": "9"}

    def test_materialized_tree_round_trips(self, config_dir: Path) -> None:
        tree = load_config(config_dir / "server.yml")
        server = ConfigurationFactory(tree).config(Server, "server")
        assert to_config_tree(server) == tree["server"]
