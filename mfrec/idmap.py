"""Bijective mapping between opaque ids and dense zero-based indices."""

from typing import Dict, Generic, Hashable, List, Optional, Tuple, TypeVar

K = TypeVar('K', bound=Hashable)


class IdMap(Generic[K]):
    """
    Assigns indices in first-seen order.

    Once an id has an index it keeps it for the lifetime of the map.
    """

    def __init__(self):
        self._index: Dict[K, int] = {}
        self._ids: List[K] = []

    def add(self, id_: K) -> int:
        index = self._index.get(id_)
        if index is None:
            index = len(self._ids)
            self._index[id_] = index
            self._ids.append(id_)
        return index

    def get(self, id_: K) -> Optional[int]:
        return self._index.get(id_)

    def lookup(self, index: int) -> K:
        if index < 0:
            raise IndexError(f"Index out of range: {index}")
        return self._ids[index]

    def size(self) -> int:
        return len(self._ids)

    def ids(self) -> Tuple[K, ...]:
        return tuple(self._ids)

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, id_: object) -> bool:
        return id_ in self._index

    def __repr__(self) -> str:
        return f"IdMap(size={len(self._ids)})"
