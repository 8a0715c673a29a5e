"""Materializing configuration beans from a resolved config tree."""

from __future__ import annotations

import collections.abc
import logging
import types
from enum import Enum
from pathlib import Path, PurePath
from typing import Any, Callable, Final, TypeVar, Union, cast, get_args, get_origin

from appboot.config.beans import describe
from appboot.config.overlay import split_path
from appboot.config.source import ConfigTree
from appboot.exceptions import ConfigError, ConfigTypeMismatch, UnknownConfigKey

_logger: Final[logging.Logger] = logging.getLogger(__name__)

T = TypeVar("T")

_TRUE: Final = frozenset({"true", "yes", "on", "1"})
_FALSE: Final = frozenset({"false", "no", "off", "0"})


def _to_bool(text: str) -> bool:
    lowered = text.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"not a boolean: {text!r}")


_SCALARS: Final[dict[type, Callable[[str], object]]] = {
    str: str,
    int: int,
    float: float,
    bool: _to_bool,
    Path: Path,
    PurePath: PurePath,
}

_SEQUENCE_ORIGINS: Final = frozenset(
    {list, tuple, set, frozenset, collections.abc.Sequence, collections.abc.Set}
)
_MAPPING_ORIGINS: Final = frozenset(
    {dict, collections.abc.Mapping, collections.abc.MutableMapping}
)


class ConfigurationFactory:
    """
    Creates configuration beans from the runtime's config tree.

    The tree is already merged from all config files and overlaid with
    property and environment overrides when the factory receives it.
    """

    def __init__(self, tree: ConfigTree) -> None:
        self._tree = tree

    @property
    def tree(self) -> ConfigTree:
        return self._tree

    def config(self, bean_type: type[T], prefix: str = "") -> T:
        """
        Create a ``bean_type`` from the subtree at the dotted ``prefix``.

        An empty prefix denotes the root; a prefix that is absent from the
        tree yields a bean with all defaults.
        """
        _logger.debug("Creating %s from '%s'", bean_type.__qualname__, prefix)
        node = self._subtree(prefix)
        if node is None:
            node = {}
        return cast(T, _convert(node, bean_type, prefix))

    def _subtree(self, prefix: str) -> ConfigTree:
        node = self._tree
        walked: list[str] = []
        for segment in split_path(prefix):
            walked.append(segment)
            if node is None:
                return None
            if isinstance(node, dict):
                node = node.get(segment)
            elif isinstance(node, list) and segment.isdigit() and int(segment) < len(node):
                node = node[int(segment)]
            else:
                path = ".".join(walked)
                raise ConfigTypeMismatch(
                    f"Cannot descend into '{path}': the parent is not a mapping", path=path
                )
        return node


def _join(path: str, key: object) -> str:
    return f"{path}.{key}" if path else str(key)


def _convert(node: ConfigTree, target: Any, path: str) -> object:
    if target is Any or target is object:
        return node
    if node is None:
        return None
    origin = get_origin(target)
    if origin is Union or origin is types.UnionType:
        return _convert_union(node, target, path)
    if origin in _SEQUENCE_ORIGINS or target in _SEQUENCE_ORIGINS:
        return _convert_sequence(node, origin or target, get_args(target), path)
    if origin in _MAPPING_ORIGINS or target in _MAPPING_ORIGINS:
        return _convert_mapping(node, get_args(target), path)
    if isinstance(target, type) and issubclass(target, Enum):
        return _convert_enum(node, target, path)
    if target in _SCALARS:
        return _convert_scalar(node, target, path)
    if isinstance(target, type):
        return _convert_bean(node, target, path)
    raise ConfigTypeMismatch(f"Unsupported type {target!r} at '{path}'", path=path)


def _convert_union(node: ConfigTree, target: Any, path: str) -> object:
    arms = [arm for arm in get_args(target) if arm is not type(None)]
    if len(arms) == 1:
        return _convert(node, arms[0], path)
    for arm in arms:
        try:
            return _convert(node, arm, path)
        except ConfigError:
            continue
    raise ConfigTypeMismatch(f"Value at '{path}' matches none of {target!r}", path=path)


def _convert_sequence(
    node: ConfigTree, origin: Any, args: tuple[Any, ...], path: str
) -> object:
    if not isinstance(node, list):
        raise ConfigTypeMismatch(
            f"Expected a list at '{path}', found {_describe_node(node)}", path=path
        )
    item_type = args[0] if args else Any
    items = [_convert(child, item_type, _join(path, index)) for index, child in enumerate(node)]
    if origin is tuple:
        return tuple(items)
    if origin in (set, collections.abc.Set):
        return set(items)
    if origin is frozenset:
        return frozenset(items)
    return items


def _convert_mapping(node: ConfigTree, args: tuple[Any, ...], path: str) -> object:
    if not isinstance(node, dict):
        raise ConfigTypeMismatch(
            f"Expected a mapping at '{path}', found {_describe_node(node)}", path=path
        )
    value_type = args[1] if len(args) == 2 else Any
    return {
        key: _convert(child, value_type, _join(path, key)) for key, child in node.items()
    }


def _convert_enum(node: ConfigTree, target: type[Enum], path: str) -> object:
    if not isinstance(node, str):
        raise ConfigTypeMismatch(
            f"Expected a scalar at '{path}', found {_describe_node(node)}", path=path
        )
    try:
        return target[node]
    except KeyError:
        pass
    try:
        return target(node)
    except ValueError as e:
        raise ConfigTypeMismatch(
            f"'{node}' at '{path}' is not a {target.__qualname__}", path=path
        ) from e


def _convert_scalar(node: ConfigTree, target: type, path: str) -> object:
    if not isinstance(node, str):
        raise ConfigTypeMismatch(
            f"Expected a scalar at '{path}', found {_describe_node(node)}", path=path
        )
    try:
        return _SCALARS[target](node)
    except ValueError as e:
        raise ConfigTypeMismatch(
            f"Cannot convert '{node}' at '{path}' to {target.__qualname__}", path=path
        ) from e


def _convert_bean(node: ConfigTree, bean_type: type, path: str) -> object:
    if not isinstance(node, dict):
        raise ConfigTypeMismatch(
            f"Expected a mapping for {bean_type.__qualname__} at '{path}', "
            f"found {_describe_node(node)}",
            path=path,
        )
    descriptor = describe(bean_type)
    values: dict[str, object] = {}
    for key, child in node.items():
        child_path = _join(path, key)
        attribute = descriptor.lookup(key)
        if attribute is None:
            if descriptor.ignore_unknown:
                _logger.debug("Ignoring unknown config key '%s'", child_path)
                continue
            raise UnknownConfigKey(
                f"Unknown config key '{child_path}' for {bean_type.__qualname__}",
                path=child_path,
            )
        if attribute.name in values:
            raise ConfigError(
                f"Attribute '{attribute.name}' of {bean_type.__qualname__} "
                f"is set twice at '{path}'",
                path=child_path,
            )
        values[attribute.name] = _convert(child, attribute.type, child_path)
    return descriptor.create(values, path=path)


def _describe_node(node: ConfigTree) -> str:
    if isinstance(node, dict):
        return "a mapping"
    if isinstance(node, list):
        return "a list"
    return f"scalar '{node}'"
