"""Process-wide property store consulted by the configuration overlay."""

from __future__ import annotations

from typing import Final, Iterator, MutableMapping

PROPERTY_PREFIX: Final[str] = "bq."
"""Properties starting with this prefix override configuration values."""


class PropertyStore(MutableMapping[str, str]):
    """
    An ordered string-to-string map that remembers write order.

    Re-assigning a key moves it to the end, so iteration order is the order in
    which values were last written.
    """

    def __init__(self, initial: "dict[str, str] | None" = None) -> None:
        self._values: dict[str, str] = {}
        if initial:
            self.update(initial)

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __setitem__(self, key: str, value: str) -> None:
        self._values.pop(key, None)
        self._values[key] = value

    def __delitem__(self, key: str) -> None:
        del self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"PropertyStore({self._values!r})"


system_properties: Final[PropertyStore] = PropertyStore()


def set_property(key: str, value: str) -> None:
    system_properties[key] = value


def clear_property(key: str) -> None:
    system_properties.pop(key, None)


def get_property(key: str, default: str | None = None) -> str | None:
    return system_properties.get(key, default)
