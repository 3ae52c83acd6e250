"""Matrix factorisation for explicit ratings with twin-learner SGD."""

import logging
import math
import time
from typing import Optional

import numpy as np

from .config import FitInfo, RecommenderConfig
from .data import Dataset, EncodedDataset, encode
from .factors import create_factors, make_rng
from .recommender import Recommender

logger = logging.getLogger(__name__)

INIT_RANGE = 0.1
SLOW_FRACTION = 0.08


def slow_dimensions(n_factors: int) -> int:
    return max(int(round(n_factors * SLOW_FRACTION)), 1)


class ExplicitMF:
    """
    Adaptive SGD with a slow and a fast learner.

    Factor dimensions are split in two groups. The first ~8% (at least one)
    form the slow learner, updated on every pass; the rest form the fast
    learner, which starts on the second pass. Each group keeps one AdaGrad
    style accumulator per user and per item.

    Reference: Chin et al., "A Learning-rate Schedule for Stochastic Gradient
    Methods to Matrix Factorization", PAKDD 2015, algorithm 2.
    """

    def __init__(self, config: Optional[RecommenderConfig] = None):
        self.config = config if config is not None else RecommenderConfig()
        self.user_factors: Optional[np.ndarray] = None
        self.item_factors: Optional[np.ndarray] = None

    def _init_factors(self, rng: np.random.RandomState, n_users: int, n_items: int) -> None:
        k = self.config.factors
        self.user_factors = create_factors(rng, n_users, k, INIT_RANGE)
        self.item_factors = create_factors(rng, n_items, k, INIT_RANGE)

    def _init_accumulators(self, n_users: int, n_items: int) -> None:
        self._g_slow = np.ones(n_users, dtype=np.float32)
        self._g_fast = np.ones(n_users, dtype=np.float32)
        self._h_slow = np.ones(n_items, dtype=np.float32)
        self._h_fast = np.ones(n_items, dtype=np.float32)

    @staticmethod
    def _global_mean(values: np.ndarray) -> float:
        if len(values) == 0:
            return float('nan')
        return float(np.mean(values, dtype=np.float64))

    def _learner_step(
        self,
        dims: slice,
        u: int,
        v: int,
        e: np.float32,
        g: np.ndarray,
        h: np.ndarray
    ) -> None:
        pu = self.user_factors[u, dims]
        qv = self.item_factors[v, dims]

        nu = self._learning_rate / np.sqrt(g[u])
        nv = self._learning_rate / np.sqrt(h[v])

        grad_u = -e * qv + self._lambda * pu
        grad_v = -e * pu + self._lambda * qv

        # pu and qv are views, so this writes through to the factor rows
        pu -= nu * grad_u
        qv -= nv * grad_v

        n_dims = np.float32(len(grad_u))
        g[u] += (grad_u @ grad_u) / n_dims
        h[v] += (grad_v @ grad_v) / n_dims

    def _run_pass(
        self,
        iteration: int,
        encoded: EncodedDataset,
        rng: np.random.RandomState
    ) -> float:
        k = self.config.factors
        ks = slow_dimensions(k)
        slow = slice(0, ks)
        fast = slice(ks, k)
        update_fast = iteration > 0 and k > ks

        user_idx = encoded.user_idx
        item_idx = encoded.item_idx
        values = encoded.values

        sq_error = 0.0
        for j in rng.permutation(len(values)).tolist():
            u = int(user_idx[j])
            v = int(item_idx[j])
            e = values[j] - self.user_factors[u] @ self.item_factors[v]

            self._learner_step(slow, u, v, e, self._g_slow, self._h_slow)

            # fast learner waits one pass for the slow one to settle
            if update_fast:
                self._learner_step(fast, u, v, e, self._g_fast, self._h_fast)

            sq_error += float(e) * float(e)

        if len(values) == 0:
            return float('nan')
        return math.sqrt(sq_error / len(values))

    def fit(self, dataset: Dataset) -> Recommender:
        self.config.check()
        encoded = encode(dataset)
        n_users, n_items = encoded.n_users, encoded.n_items

        self._learning_rate = np.float32(self.config.learning_rate)
        self._lambda = np.float32(self.config.resolve_regularization(implicit=False))

        logger.info(
            "Training explicit MF: %d users, %d items, %d ratings",
            n_users, n_items, len(encoded)
        )
        logger.info(
            "Factors: %d, regularization: %s, learning rate: %s",
            self.config.factors, self._lambda, self._learning_rate
        )

        global_mean = self._global_mean(encoded.values)

        rng = make_rng(self.config.seed)
        self._init_factors(rng, n_users, n_items)
        self._init_accumulators(n_users, n_items)

        for iteration in range(self.config.iterations):
            iter_start = time.time()

            train_loss = self._run_pass(iteration, encoded, rng)

            if self.config.verbose:
                logger.info(
                    "Iteration %2d | RMSE: %.4f | Time: %.2fs",
                    iteration + 1, train_loss, time.time() - iter_start
                )

            if self.config.callback is not None:
                self.config.callback(FitInfo(iteration + 1, train_loss))

        return Recommender(
            encoded.user_map,
            encoded.item_map,
            encoded.rated,
            global_mean,
            self.user_factors,
            self.item_factors
        )


def fit_explicit(
    dataset: Dataset,
    config: Optional[RecommenderConfig] = None
) -> Recommender:
    return ExplicitMF(config).fit(dataset)
