"""Discovery of modules advertised by installed distributions."""

from __future__ import annotations

import logging
from importlib.metadata import entry_points
from typing import Final

from appboot.binder import Module

_logger: Final[logging.Logger] = logging.getLogger(__name__)

MODULES_ENTRY_POINT_GROUP: Final[str] = "appboot.modules"


def load_modules(group: str = MODULES_ENTRY_POINT_GROUP) -> list[Module]:
    """
    Load every module advertised under the entry point ``group``.

    A distribution advertises a module in its ``pyproject.toml``:

        [project.entry-points."appboot.modules"]
        jdbc = "my_package.jdbc:JdbcModule"

    Nothing is loaded when no distribution advertises the group.
    """
    modules: list[Module] = []
    for entry_point in entry_points(group=group):
        _logger.debug("Loading module '%s' from %s", entry_point.name, entry_point.value)
        modules.append(entry_point.load())
    return modules
