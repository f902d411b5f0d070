"""Alert deduplication helpers (core domain)."""

from __future__ import annotations

from typing import Hashable, Iterator, Set


class AlertedSet:
    """Append-only memory of keys that already produced a notification.

    Keys are signatures, owners or milestone values depending on the owner
    component. The set only shrinks through an explicit ``clear()``.
    """

    def __init__(self) -> None:
        self._keys: Set[Hashable] = set()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._keys)

    def add_if_absent(self, key: Hashable) -> bool:
        """Record ``key`` and return True only the first time it is seen."""

        if key in self._keys:
            return False
        self._keys.add(key)
        return True

    def clear(self) -> None:
        self._keys.clear()
