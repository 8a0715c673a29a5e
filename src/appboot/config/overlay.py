"""
Overlaying property and environment overrides onto a config tree.

A property ``bq.c.m.k=v`` assigns ``v`` at path ``("c", "m", "k")``. The
overlay always wins over file content: scalars standing where the path
needs a mapping are replaced by mappings.
"""

from __future__ import annotations

import copy
import logging
from typing import Final, Iterable, Mapping

from appboot.config.properties import PROPERTY_PREFIX
from appboot.config.source import ConfigTree

_logger: Final[logging.Logger] = logging.getLogger(__name__)


def overlay_properties(
    tree: ConfigTree,
    properties: Mapping[str, str],
    prefix: str = PROPERTY_PREFIX,
) -> ConfigTree:
    """
    Return a copy of ``tree`` with every prefixed property applied in iteration order.

    Keys without the prefix are ignored, so an empty overlay is the identity.
    """
    assignments = [
        (split_path(key[len(prefix) :]), value)
        for key, value in properties.items()
        if key.startswith(prefix)
    ]
    return overlay(tree, assignments)


def overlay_variables(
    tree: ConfigTree,
    environment: Mapping[str, str],
    declared_vars: Mapping[str, str],
) -> ConfigTree:
    """
    Return a copy of ``tree`` with declared environment variables applied.

    ``declared_vars`` maps a variable name to the dotted config path it sets.
    Variables absent from ``environment`` are skipped.
    """
    assignments = [
        (split_path(config_path), environment[var_name])
        for var_name, config_path in declared_vars.items()
        if var_name in environment
    ]
    return overlay(tree, assignments)


def split_path(dotted: str) -> tuple[str, ...]:
    return tuple(segment for segment in dotted.split(".") if segment)


def overlay(
    tree: ConfigTree, assignments: Iterable[tuple[tuple[str, ...], str]]
) -> ConfigTree:
    """Apply ``(path, value)`` assignments to a deep copy of ``tree``."""
    result = copy.deepcopy(tree)
    for path, value in assignments:
        if not path:
            continue
        _logger.debug("Overriding config path %s", ".".join(path))
        if not isinstance(result, dict):
            result = {}
        _assign(result, path, value)
    return result


def _assign(
    node: dict[str, ConfigTree] | list[ConfigTree], path: tuple[str, ...], value: str
) -> None:
    head, *rest = path
    key: int | str = int(head) if isinstance(node, list) else head
    if not rest:
        node[key] = value  # type: ignore[index]
        return
    child = node[key] if isinstance(node, list) else node.get(head)  # type: ignore[index]
    descend = isinstance(child, dict) or (
        isinstance(child, list) and _is_index(rest[0], child)
    )
    if not descend:
        child = {}
        node[key] = child  # type: ignore[index]
    _assign(child, tuple(rest), value)


def _is_index(segment: str, sequence: list[ConfigTree]) -> bool:
    return segment.isdigit() and int(segment) < len(sequence)
