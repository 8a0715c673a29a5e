"""
Bean descriptors: the explicit schema of a configuration bean.

A bean is a class whose configurable attributes are discovered once and
recorded in a ``BeanDescriptor``:

- annotated attributes (plain classes with class-level defaults, or dataclass fields),
- ``set_<name>(value)`` setter methods, typed by their parameter annotation.

```python
@ignore_unknown
class Database:
    url: str = "sqlite://"
    pool_size: int = 4
```
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from functools import cache
from inspect import Parameter, signature
from pathlib import PurePath
from typing import Any, ClassVar, Iterator, Mapping, TypeVar, get_origin, get_type_hints

from appboot.config.source import ConfigTree
from appboot.exceptions import ConfigError
from appboot.naming import snake_case

TBean = TypeVar("TBean", bound=type)

_IGNORE_UNKNOWN_ATTRIBUTE = "__config_ignore_unknown__"
_SETTER_PREFIX = "set_"


def ignore_unknown(bean_type: TBean) -> TBean:
    """Class decorator making a bean drop config keys it has no attribute for."""
    setattr(bean_type, _IGNORE_UNKNOWN_ATTRIBUTE, True)
    return bean_type


@dataclass(frozen=True, kw_only=True, slots=True)
class BeanAttribute:
    name: str
    type: Any
    setter: str | None = None
    """Name of the setter method, ``None`` when the attribute is assigned directly."""


@dataclass(frozen=True, kw_only=True, slots=True)
class BeanDescriptor:
    bean_type: type
    attributes: Mapping[str, BeanAttribute]
    ignore_unknown: bool

    def lookup(self, key: str) -> BeanAttribute | None:
        """Find the attribute for a config key, trying the key as written first."""
        attribute = self.attributes.get(key)
        if attribute is None:
            attribute = self.attributes.get(snake_case(key))
        return attribute

    def create(self, values: Mapping[str, object], *, path: str = "") -> object:
        """Instantiate the bean with the given attribute values."""
        name = self.bean_type.__qualname__
        if dataclasses.is_dataclass(self.bean_type):
            try:
                return self.bean_type(**values)
            except TypeError as e:
                raise ConfigError(f"Cannot create {name} at '{path}': {e}", path=path) from e
        try:
            bean = self.bean_type()
        except TypeError as e:
            raise ConfigError(f"Cannot create {name} at '{path}': {e}", path=path) from e
        for attribute_name, value in values.items():
            attribute = self.attributes[attribute_name]
            if attribute.setter is not None:
                getattr(bean, attribute.setter)(value)
            else:
                setattr(bean, attribute_name, value)
        return bean

    def read(self, bean: object) -> Iterator[tuple[BeanAttribute, object]]:
        """Yield the current value of every attribute of ``bean``."""
        for attribute in self.attributes.values():
            getter = getattr(bean, f"get_{attribute.name}", None)
            if callable(getter):
                yield attribute, getter()
            elif hasattr(bean, attribute.name):
                yield attribute, getattr(bean, attribute.name)
            else:
                yield attribute, getattr(bean, f"_{attribute.name}", None)


@cache
def describe(bean_type: type) -> BeanDescriptor:
    """Build (once per type) the descriptor of a bean type."""
    try:
        hints = get_type_hints(bean_type)
    except NameError as e:
        raise ConfigError(f"Cannot resolve annotations of {bean_type.__qualname__}: {e}") from e

    attributes: dict[str, BeanAttribute] = {}
    if dataclasses.is_dataclass(bean_type):
        for field in dataclasses.fields(bean_type):
            if field.init:
                attributes[field.name] = BeanAttribute(
                    name=field.name, type=hints.get(field.name, Any)
                )
    else:
        for name, hint in hints.items():
            if name.startswith("_") or get_origin(hint) is ClassVar or hint is ClassVar:
                continue
            attributes[name] = BeanAttribute(name=name, type=hint)
        for setter_name in dir(bean_type):
            attribute = _setter_attribute(bean_type, setter_name)
            if attribute is not None:
                attributes[attribute.name] = attribute

    return BeanDescriptor(
        bean_type=bean_type,
        attributes=attributes,
        ignore_unknown=bool(getattr(bean_type, _IGNORE_UNKNOWN_ATTRIBUTE, False)),
    )


def _setter_attribute(bean_type: type, setter_name: str) -> BeanAttribute | None:
    if not setter_name.startswith(_SETTER_PREFIX) or len(setter_name) == len(_SETTER_PREFIX):
        return None
    method = getattr(bean_type, setter_name)
    if not callable(method):
        return None
    parameters = [
        parameter
        for parameter in signature(method).parameters.values()
        if parameter.name != "self"
    ]
    if len(parameters) != 1 or parameters[0].kind in (
        Parameter.VAR_POSITIONAL,
        Parameter.VAR_KEYWORD,
    ):
        return None
    try:
        hints = get_type_hints(method)
    except NameError as e:
        raise ConfigError(f"Cannot resolve annotations of {method.__qualname__}: {e}") from e
    return BeanAttribute(
        name=setter_name[len(_SETTER_PREFIX) :],
        type=hints.get(parameters[0].name, Any),
        setter=setter_name,
    )


def to_config_tree(value: object) -> ConfigTree:
    """Serialize a bean (or a value held by one) back into a config tree."""
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.name
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float, PurePath)):
        return str(value)
    if isinstance(value, Mapping):
        return {str(key): to_config_tree(child) for key, child in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_config_tree(child) for child in value]
    descriptor = describe(type(value))
    return {
        attribute.name: to_config_tree(child)
        for attribute, child in descriptor.read(value)
        if child is not None
    }
