"""Name conversions shared by bindings, config keys and command names."""

from __future__ import annotations

import re
from typing import Final

_CAMEL_BOUNDARY: Final = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def snake_case(name: str) -> str:
    """``ConfigurationFactory`` -> ``configuration_factory``, ``log-level`` -> ``log_level``."""
    return _CAMEL_BOUNDARY.sub("_", name).replace("-", "_").lower()


def hyphenate(name: str) -> str:
    """``ServerStart`` -> ``server-start``."""
    return snake_case(name).replace("_", "-")
