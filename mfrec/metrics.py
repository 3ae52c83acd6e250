"""Evaluation metrics for fitted recommenders."""

from typing import Dict, Hashable, Iterable, List, Sequence, Set

import numpy as np

from .data import Dataset
from .recommender import Recommender


def rmse(recommender: Recommender, dataset: Dataset) -> float:
    """RMSE of predictions over held-out ratings; unseen ids use the global mean."""
    if len(dataset) == 0:
        return float('nan')

    predictions = np.array(
        [recommender.predict(r.user_id, r.item_id) for r in dataset],
        dtype=np.float64
    )
    actuals = np.array([r.value for r in dataset], dtype=np.float64)
    return float(np.sqrt(np.mean((predictions - actuals) ** 2)))


def hit_rate_at_k(
    recommendations: Sequence[Hashable],
    relevant_items: Set[Hashable],
    k: int = 10
) -> float:
    """1 if any relevant item in top-k, else 0."""
    top_k = set(recommendations[:k])
    return 1.0 if len(top_k & relevant_items) > 0 else 0.0


def dcg_at_k(ranked_items: Iterable[Hashable], relevant_items: Set[Hashable], k: int) -> float:
    dcg = 0.0
    for i, item in enumerate(list(ranked_items)[:k]):
        if item in relevant_items:
            dcg += 1.0 / np.log2(i + 2)
    return dcg


def ndcg_at_k(
    recommendations: Sequence[Hashable],
    relevant_items: Set[Hashable],
    k: int = 10
) -> float:
    """Normalised DCG at k."""
    if len(relevant_items) == 0:
        return 0.0

    dcg = dcg_at_k(recommendations, relevant_items, k)
    ideal_dcg = dcg_at_k(list(relevant_items), relevant_items, k)

    if ideal_dcg == 0:
        return 0.0

    return dcg / ideal_dcg


def evaluate_ranking(
    recommender: Recommender,
    test: Dataset,
    k_values: Sequence[int] = (5, 10, 20),
    relevance_threshold: float = 4.0
) -> Dict[int, Dict[str, float]]:
    """Average hit rate and NDCG over users with relevant held-out items."""
    relevant_by_user: Dict[Hashable, Set[Hashable]] = {}
    for rating in test:
        if rating.value >= relevance_threshold:
            relevant_by_user.setdefault(rating.user_id, set()).add(rating.item_id)

    results: Dict[int, Dict[str, List[float]]] = {
        k: {'hit_rate': [], 'ndcg': []} for k in k_values
    }

    for user_id, relevant in relevant_by_user.items():
        recs = recommender.user_recs(user_id, max(k_values))
        ranked = [rec.id for rec in recs]

        for k in k_values:
            results[k]['hit_rate'].append(hit_rate_at_k(ranked, relevant, k))
            results[k]['ndcg'].append(ndcg_at_k(ranked, relevant, k))

    return {
        k: {
            'hit_rate': float(np.mean(v['hit_rate'])) if v['hit_rate'] else 0.0,
            'ndcg': float(np.mean(v['ndcg'])) if v['ndcg'] else 0.0
        }
        for k, v in results.items()
    }
