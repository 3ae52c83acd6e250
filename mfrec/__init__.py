"""Matrix factorisation recommenders for explicit and implicit feedback."""

from .idmap import IdMap
from .config import FitInfo, RecommenderConfig
from .data import (
    Rating,
    Dataset,
    EncodedDataset,
    encode,
    build_confidence_matrices,
    download_movielens_100k,
    load_movielens
)
from .recommender import Rec, Recommender
from .explicit_mf import ExplicitMF, fit_explicit
from .implicit_mf import ImplicitMF, fit_implicit
from .metrics import (
    rmse,
    hit_rate_at_k,
    ndcg_at_k,
    evaluate_ranking
)

__all__ = [
    'IdMap',
    'FitInfo',
    'RecommenderConfig',
    'Rating',
    'Dataset',
    'EncodedDataset',
    'encode',
    'build_confidence_matrices',
    'download_movielens_100k',
    'load_movielens',
    'Rec',
    'Recommender',
    'ExplicitMF',
    'fit_explicit',
    'ImplicitMF',
    'fit_implicit',
    'rmse',
    'hit_rate_at_k',
    'ndcg_at_k',
    'evaluate_ranking'
]
