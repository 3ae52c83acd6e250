"""Train and evaluate explicit and implicit MF on MovieLens 100K."""

from mfrec import (
    RecommenderConfig,
    fit_explicit,
    fit_implicit,
    load_movielens,
    rmse,
    evaluate_ranking
)
from mfrec.utils import setup_logging


def main():
    setup_logging()

    # Load data
    data = load_movielens()
    print(f"Loaded {len(data):,} ratings")

    # Train/test split
    train, test = data.split(test_ratio=0.2)
    print(f"Train: {len(train):,}, Test: {len(test):,}")

    # Explicit model
    config = RecommenderConfig(factors=20, seed=42, verbose=True)
    explicit = fit_explicit(train, config)

    print(f"\nUsers: {len(explicit.user_ids())}, Items: {len(explicit.item_ids())}")
    print(f"Global mean: {explicit.global_mean():.5f}")
    print(f"Test RMSE: {rmse(explicit, test):.4f}")

    # Implicit model
    implicit = fit_implicit(train, RecommenderConfig(factors=20, seed=42, verbose=True))

    results = evaluate_ranking(implicit, test)
    print("\nRanking Metrics (implicit):")
    for k, metrics in results.items():
        print(f"  K={k:2d} | Hit Rate: {metrics['hit_rate']:.3f} | NDCG: {metrics['ndcg']:.3f}")

    # Similar items
    title = "Star Wars (1977)"
    for name, model in (("explicit", explicit), ("implicit", implicit)):
        print(f"\nItems similar to {title} ({name}):")
        for rank, rec in enumerate(model.item_recs(title, 5), 1):
            print(f"  {rank:2d}. {str(rec.id)[:50]:50s} ({rec.score:.4f})")

    # Show recommendations for user 1
    print("\nTop 10 for user 1:")
    for rank, rec in enumerate(explicit.user_recs(1, 10), 1):
        print(f"  {rank:2d}. {str(rec.id)[:50]:50s} ({rec.score:.2f})")


if __name__ == "__main__":
    main()
