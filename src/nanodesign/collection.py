"""Copy-on-write maps held by a design."""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Generic, Iterable, Iterator, Mapping, MutableMapping, Optional, Tuple, TypeVar

LOGGER = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")


class SharedMap(Mapping[K, V], Generic[K, V]):
    """
    An immutable map ordered by key, shared between design snapshots.

    ``next_id`` is the id the next inserted value receives. It only grows, so an id removed
    from the map is never handed out again.
    """

    __slots__ = ("_data", "_next_id", "_sort_key")

    def __init__(
        self,
        items: Optional[Mapping[K, V] | Iterable[Tuple[K, V]]] = None,
        next_id: int = 0,
        sort_key: Optional[Callable[[K], Any]] = None,
    ) -> None:
        data = dict(items or {})
        self._sort_key = sort_key
        self._data: Dict[K, V] = {key: data[key] for key in sorted(data, key=sort_key)}
        self._next_id = max(next_id, _max_int_key(self._data) + 1)

    @property
    def next_id(self) -> int:
        return self._next_id

    def __getitem__(self, key: K) -> V:
        return self._data[key]

    def __iter__(self) -> Iterator[K]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if isinstance(other, SharedMap):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"SharedMap({self._data!r})"

    def mutate(self, on_commit: Callable[["SharedMap[K, V]"], None]) -> "Mutator[K, V]":
        return Mutator(self, on_commit)


def _max_int_key(data: Mapping[Any, Any]) -> int:
    keys = [key for key in data if isinstance(key, int) and not isinstance(key, bool)]
    return max(keys) if keys else -1


class Mutator(MutableMapping[K, V], Generic[K, V]):
    """
    Scoped write access to a copy of a ``SharedMap``.

    The map is copied on entry. A clean exit hands the new map to ``on_commit``; an exit
    through an exception drops the copy.
    """

    def __init__(self, source: SharedMap[K, V], on_commit: Callable[[SharedMap[K, V]], None]) -> None:
        self._source = source
        self._on_commit = on_commit
        self._data: Dict[K, V] = dict(source._data)
        self._next_id = source.next_id
        self.result: Optional[SharedMap[K, V]] = None

    def __enter__(self) -> "Mutator[K, V]":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            LOGGER.debug("mutator dropped after %s", exc_type.__name__)
            return False
        self.result = SharedMap(self._data, next_id=self._next_id, sort_key=self._source._sort_key)
        LOGGER.debug("mutator commit entries=%s next_id=%s", len(self.result), self.result.next_id)
        self._on_commit(self.result)
        return False

    def __getitem__(self, key: K) -> V:
        return self._data[key]

    def __setitem__(self, key: K, value: V) -> None:
        self._data[key] = value
        if isinstance(key, int) and not isinstance(key, bool):
            self._next_id = max(self._next_id, key + 1)

    def __delitem__(self, key: K) -> None:
        del self._data[key]

    def __iter__(self) -> Iterator[K]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def allocate_id(self) -> int:
        new_id = self._next_id
        self._next_id += 1
        return new_id

    def push(self, value: V) -> int:
        """Insert ``value`` under a fresh id and return the id."""
        new_id = self.allocate_id()
        self._data[new_id] = value  # type: ignore[index]
        return new_id


__all__ = ["SharedMap", "Mutator"]
