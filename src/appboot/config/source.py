"""
Reading configuration documents.

Documents are YAML files whose top level is a mapping. Scalars are
normalized to strings so that file values and property overrides share one
representation; bean materialization coerces them to the declared types.
"""

from __future__ import annotations

import datetime
import logging
from os import PathLike
from pathlib import Path
from typing import Final, Iterable, Mapping, TypeAlias, cast

import yaml

from appboot.exceptions import ConfigReadError

_logger: Final[logging.Logger] = logging.getLogger(__name__)

ConfigTree: TypeAlias = "str | None | dict[str, ConfigTree] | list[ConfigTree]"


def load_config(path: str | PathLike[str]) -> "dict[str, ConfigTree]":
    """
    Read a YAML document into a config tree.

    :raises ConfigReadError: if the file is missing or unreadable, the YAML is
        malformed, or the top level is not a mapping.
    """
    location = Path(path)
    try:
        text = location.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigReadError(f"Cannot read config file '{location}': {e}") from e
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigReadError(f"Malformed config file '{location}': {e}") from e
    _logger.debug("Loaded config file %s", location)
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ConfigReadError(
            f"Config file '{location}' must contain a mapping at the top level, "
            f"got {type(document).__name__}"
        )
    return normalize(document)


def load_configs(paths: Iterable[str | PathLike[str]]) -> "dict[str, ConfigTree]":
    """Load several documents and deep-merge them in order; later files win."""
    tree: dict[str, ConfigTree] = {}
    for path in paths:
        tree = cast("dict[str, ConfigTree]", merge_trees(tree, load_config(path)))
    return tree


def normalize(value: object) -> "ConfigTree":
    """Convert a parsed YAML value into a config tree."""
    if value is None:
        return None
    if isinstance(value, Mapping):
        return {str(key): normalize(child) for key, child in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize(child) for child in value]
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    return str(value)


def merge_trees(base: "ConfigTree", override: "ConfigTree") -> "ConfigTree":
    """
    Deep-merge ``override`` onto ``base``.

    Mappings merge key by key; any other combination is replaced by ``override``.
    Neither argument is mutated.
    """
    if isinstance(base, dict) and isinstance(override, dict):
        merged = dict(base)
        for key, value in override.items():
            merged[key] = merge_trees(base[key], value) if key in base else value
        return merged
    return override
