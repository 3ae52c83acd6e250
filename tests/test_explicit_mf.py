from __future__ import annotations

import math

import numpy as np
import pytest

from mfrec import Dataset, ExplicitMF, FitInfo, RecommenderConfig, fit_explicit
from mfrec.explicit_mf import slow_dimensions


def test_slow_dimensions() -> None:
    assert slow_dimensions(1) == 1
    assert slow_dimensions(8) == 1
    assert slow_dimensions(20) == 2
    assert slow_dimensions(100) == 8


def test_global_mean() -> None:
    data = Dataset([(1, 1, 5.0), (2, 1, 3.0)])
    recommender = fit_explicit(data)
    assert recommender.global_mean() == pytest.approx(4.0)


def test_user_recs_new_user() -> None:
    data = Dataset([(1, 1, 5.0), (2, 1, 3.0)])
    recommender = fit_explicit(data)
    assert recommender.user_recs(1000, 5) == []
    assert recommender.predict(1000, 1) == recommender.global_mean()
    assert recommender.predict(1, 1000) == recommender.global_mean()


def test_callback_cardinality_and_order() -> None:
    infos: list[FitInfo] = []
    data = Dataset([(1, 1, 5.0)])
    fit_explicit(data, RecommenderConfig(callback=infos.append))

    assert [info.iteration for info in infos] == list(range(1, 21))
    assert all(math.isfinite(info.train_loss) for info in infos)


def test_callback_failure_aborts_fit() -> None:
    calls = []

    def callback(info: FitInfo) -> None:
        calls.append(info.iteration)
        if info.iteration == 2:
            raise RuntimeError("stop")

    with pytest.raises(RuntimeError, match="stop"):
        fit_explicit(Dataset([(1, 1, 5.0)]), RecommenderConfig(callback=callback))

    assert calls == [1, 2]


def test_training_loss_decreases(ratings_dataset: Dataset) -> None:
    losses: list[float] = []
    config = RecommenderConfig(factors=8, iterations=30, seed=1, callback=lambda info: losses.append(info.train_loss))
    fit_explicit(ratings_dataset, config)

    assert len(losses) == 30
    assert losses[-1] < losses[0]
    assert losses[-1] < 1.0


def test_deterministic_with_seed(ratings_dataset: Dataset) -> None:
    config = RecommenderConfig(factors=10, iterations=5, seed=123)
    first = fit_explicit(ratings_dataset, config)
    second = fit_explicit(ratings_dataset, config)

    for user_id in first.user_ids():
        assert np.array_equal(first.user_factors(user_id), second.user_factors(user_id))
    for item_id in first.item_ids():
        assert np.array_equal(first.item_factors(item_id), second.item_factors(item_id))


def test_different_seeds_differ(ratings_dataset: Dataset) -> None:
    first = fit_explicit(ratings_dataset, RecommenderConfig(iterations=2, seed=1))
    second = fit_explicit(ratings_dataset, RecommenderConfig(iterations=2, seed=2))
    assert not np.array_equal(first.user_factors("user0"), second.user_factors("user0"))


def test_fast_learner_skipped_on_first_pass() -> None:
    data = Dataset([(1, "a", 4.0), (2, "a", 2.0), (1, "b", 3.0)])
    config = RecommenderConfig(factors=20, iterations=1, seed=5)
    recommender = fit_explicit(data, config)

    # the same seed replays the initial draw, so the fast dimensions are untouched
    rng = np.random.RandomState(5)
    bits = rng.randint(0, 1 << 24, size=(2, 20))
    initial = (bits.astype(np.float32) / np.float32(1 << 24)) * np.float32(0.1)

    ks = slow_dimensions(20)
    for u, user_id in enumerate(recommender.user_ids()):
        row = recommender.user_factors(user_id)
        assert np.array_equal(row[ks:], initial[u, ks:])
        assert not np.array_equal(row[:ks], initial[u, :ks])


def test_factor_shapes_and_dtype() -> None:
    data = Dataset([(1, "A", 1.0), (1, "B", 1.0), (2, "B", 1.0)])
    engine = ExplicitMF(RecommenderConfig(factors=20, seed=0))
    recommender = engine.fit(data)

    assert recommender.user_factors(1).shape == (20,)
    assert recommender.item_factors("A").dtype == np.float32
    assert recommender.user_factors(3) is None
    assert recommender.item_factors("C") is None
    assert engine.user_factors.shape == (2, 20)
    assert engine.item_factors.shape == (2, 20)


def test_predict_is_dot_product() -> None:
    data = Dataset([(1, "A", 4.0), (2, "B", 2.0), (1, "B", 3.0)])
    recommender = fit_explicit(data, RecommenderConfig(seed=3))
    expected = float(recommender.user_factors(1) @ recommender.item_factors("B"))
    assert recommender.predict(1, "B") == pytest.approx(expected)


def test_no_training_data() -> None:
    infos: list[FitInfo] = []
    recommender = fit_explicit(Dataset(), RecommenderConfig(callback=infos.append))

    assert recommender.user_ids() == []
    assert recommender.item_ids() == []
    assert math.isnan(recommender.predict(1, 1))
    assert len(infos) == 20


def test_invalid_factors() -> None:
    with pytest.raises(ValueError):
        fit_explicit(Dataset([(1, 1, 5.0)]), RecommenderConfig(factors=0))


def test_regularization_override() -> None:
    config = RecommenderConfig(regularization=0.5)
    assert config.resolve_regularization(implicit=False) == 0.5
    assert config.resolve_regularization(implicit=True) == 0.5
    assert RecommenderConfig().resolve_regularization(implicit=False) == 0.1
    assert RecommenderConfig().resolve_regularization(implicit=True) == 0.01
