"""Fitted factor model and its read-only query surface."""

from dataclasses import dataclass
from typing import Any, FrozenSet, Hashable, List, Optional, Tuple

import numpy as np

from .idmap import IdMap

# Smallest positive float32; keeps cosine similarity finite for zero rows.
_NORM_FLOOR = np.nextafter(np.float32(0), np.float32(1))


@dataclass(frozen=True)
class Rec:
    """A recommended (or similar) id and its score."""
    id: Any
    score: float


def _row_norms(factors: np.ndarray) -> np.ndarray:
    return np.sqrt(np.sum(factors * factors, axis=1, dtype=np.float32))


def _frozen(array: np.ndarray) -> np.ndarray:
    array.setflags(write=False)
    return array


class Recommender:
    """
    Result of an explicit or implicit fit.

    Unknown ids never raise: predictions fall back to the global mean,
    ranked queries return an empty list and factor lookups return None.
    """

    def __init__(
        self,
        user_map: IdMap,
        item_map: IdMap,
        rated: Tuple[FrozenSet[int], ...],
        global_mean: float,
        user_factors: np.ndarray,
        item_factors: np.ndarray
    ):
        self._user_map = user_map
        self._item_map = item_map
        self._rated = rated
        self._global_mean = float(global_mean)
        self._user_factors = _frozen(user_factors)
        self._item_factors = _frozen(item_factors)
        self._user_norms = _frozen(_row_norms(user_factors))
        self._item_norms = _frozen(_row_norms(item_factors))

    def __repr__(self) -> str:
        return (
            f"Recommender(users={len(self._user_map)}, "
            f"items={len(self._item_map)}, "
            f"factors={self._user_factors.shape[1]})"
        )

    def predict(self, user_id: Hashable, item_id: Hashable) -> float:
        u = self._user_map.get(user_id)
        if u is None:
            return self._global_mean

        i = self._item_map.get(item_id)
        if i is None:
            return self._global_mean

        return float(self._user_factors[u] @ self._item_factors[i])

    def user_recs(self, user_id: Hashable, count: int = 10) -> List[Rec]:
        u = self._user_map.get(user_id)
        if u is None:
            return []

        scores = self._item_factors @ self._user_factors[u]
        return self._top(self._item_map, scores, self._rated[u], count)

    def item_recs(self, item_id: Hashable, count: int = 10) -> List[Rec]:
        return self._similar(
            self._item_map,
            self._item_factors,
            self._item_norms,
            item_id,
            count
        )

    def similar_users(self, user_id: Hashable, count: int = 10) -> List[Rec]:
        return self._similar(
            self._user_map,
            self._user_factors,
            self._user_norms,
            user_id,
            count
        )

    def user_factors(self, user_id: Hashable) -> Optional[np.ndarray]:
        u = self._user_map.get(user_id)
        return None if u is None else self._user_factors[u]

    def item_factors(self, item_id: Hashable) -> Optional[np.ndarray]:
        i = self._item_map.get(item_id)
        return None if i is None else self._item_factors[i]

    def global_mean(self) -> float:
        return self._global_mean

    def user_ids(self) -> List[Hashable]:
        return list(self._user_map.ids())

    def item_ids(self) -> List[Hashable]:
        return list(self._item_map.ids())

    def _similar(
        self,
        id_map: IdMap,
        factors: np.ndarray,
        norms: np.ndarray,
        id_: Hashable,
        count: int
    ) -> List[Rec]:
        i = id_map.get(id_)
        if i is None:
            return []

        denom = np.maximum(norms * norms[i], _NORM_FLOOR)
        scores = (factors @ factors[i]) / denom
        return self._top(id_map, scores, frozenset((i,)), count)

    @staticmethod
    def _top(
        id_map: IdMap,
        scores: np.ndarray,
        exclude: FrozenSet[int],
        count: int
    ) -> List[Rec]:
        # Stable sort on the negated score: ties keep ascending index order.
        order = np.argsort(-scores, kind='stable')

        recs: List[Rec] = []
        if count <= 0:
            return recs

        for j in order.tolist():
            if j in exclude:
                continue

            recs.append(Rec(id_map.lookup(j), float(scores[j])))

            if len(recs) == count:
                break

        return recs
