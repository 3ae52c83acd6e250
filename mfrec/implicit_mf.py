"""Implicit feedback matrix factorisation with conjugate-gradient ALS."""

import logging
import time
from typing import Optional

import numpy as np
from joblib import Parallel, delayed
from scipy.sparse import csr_matrix

from .config import FitInfo, RecommenderConfig
from .data import Dataset, build_confidence_matrices, encode
from .factors import create_factors, make_rng
from .recommender import Recommender

logger = logging.getLogger(__name__)

INIT_RANGE = 0.01
CG_STEPS = 3
CG_TOLERANCE = 1e-20


def _solve_row(
    Y_rated: np.ndarray,
    confidence: np.ndarray,
    YtY: np.ndarray,
    x0: np.ndarray,
    cg_steps: int = CG_STEPS
) -> np.ndarray:
    """
    A few CG steps on (YtCuY + λI) x = YtCuPu, warm-started from x0.

    YtCuY = YtY + Yt(Cu - I)Y is never formed: only rows of Y the user
    interacted with carry confidence above the baseline of 1.
    """
    x = x0.copy()
    excess = confidence - 1

    r = -(YtY @ x) + Y_rated.T @ (confidence - excess * (Y_rated @ x))
    p = r.copy()
    rsold = r @ r

    for _ in range(cg_steps):
        Ap = YtY @ p + Y_rated.T @ (excess * (Y_rated @ p))

        alpha = rsold / (p @ Ap)
        x += alpha * p
        r -= alpha * Ap
        rsnew = r @ r

        if rsnew < CG_TOLERANCE:
            break

        p = r + (rsnew / rsold) * p
        rsold = rsnew

    return x


class ImplicitMF:
    """
    ALS for implicit feedback with confidence weighting.

    Uses the Hu, Koren, Volinsky formulation with confidence
    c_ui = 1 + alpha * r_ui, solving each row approximately with
    conjugate gradient instead of a dense linear solve (Takacs et al.).
    """

    def __init__(self, config: Optional[RecommenderConfig] = None):
        self.config = config if config is not None else RecommenderConfig()
        self.user_factors: Optional[np.ndarray] = None
        self.item_factors: Optional[np.ndarray] = None

    def _init_factors(self, rng: np.random.RandomState, n_users: int, n_items: int) -> None:
        k = self.config.factors
        self.user_factors = create_factors(rng, n_users, k, INIT_RANGE)
        self.item_factors = create_factors(rng, n_items, k, INIT_RANGE)

    def _compute_gram_matrix(self, factors: np.ndarray) -> np.ndarray:
        YtY = factors.T @ factors
        YtY[np.diag_indices_from(YtY)] += self._regularization
        return YtY

    def _update_rows_parallel(
        self,
        C: csr_matrix,
        X: np.ndarray,
        Y: np.ndarray
    ) -> None:
        """Re-solve every row of X in place against the fixed side Y."""
        if X.shape[0] == 0:
            return

        YtY = self._compute_gram_matrix(Y)

        results = Parallel(n_jobs=self.config.n_jobs)(
            delayed(_solve_row)(
                Y[C.indices[C.indptr[u]:C.indptr[u + 1]]],
                C.data[C.indptr[u]:C.indptr[u + 1]],
                YtY,
                X[u]
            )
            for u in range(X.shape[0])
        )

        X[:] = np.vstack(results)

    def fit(self, dataset: Dataset) -> Recommender:
        self.config.check()
        encoded = encode(dataset)
        n_users, n_items = encoded.n_users, encoded.n_items
        self._regularization = np.float32(self.config.resolve_regularization(implicit=True))

        logger.info(
            "Training implicit MF: %d users, %d items, %d interactions",
            n_users, n_items, len(encoded)
        )
        logger.info(
            "Factors: %d, regularization: %s, alpha: %s",
            self.config.factors, self._regularization, self.config.alpha
        )

        Cui, Ciu = build_confidence_matrices(encoded, self.config.alpha)

        rng = make_rng(self.config.seed)
        self._init_factors(rng, n_users, n_items)

        for iteration in range(self.config.iterations):
            iter_start = time.time()

            self._update_rows_parallel(Cui, self.user_factors, self.item_factors)
            self._update_rows_parallel(Ciu, self.item_factors, self.user_factors)

            if self.config.verbose:
                logger.info(
                    "Iteration %2d | Time: %.2fs",
                    iteration + 1, time.time() - iter_start
                )

            # no training loss is tracked for this objective
            if self.config.callback is not None:
                self.config.callback(FitInfo(iteration + 1, float('nan')))

        return Recommender(
            encoded.user_map,
            encoded.item_map,
            encoded.rated,
            0.0,
            self.user_factors,
            self.item_factors
        )


def fit_implicit(
    dataset: Dataset,
    config: Optional[RecommenderConfig] = None
) -> Recommender:
    return ImplicitMF(config).fit(dataset)
