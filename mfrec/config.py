"""Hyperparameters shared by the explicit and implicit fitting engines."""

from dataclasses import dataclass
from typing import Callable, Optional


@dataclass(frozen=True)
class FitInfo:
    """Progress report delivered to the callback after each pass."""
    iteration: int
    train_loss: float


@dataclass
class RecommenderConfig:
    factors: int = 8
    iterations: int = 20
    regularization: Optional[float] = None
    learning_rate: float = 0.1
    alpha: float = 40.0
    seed: Optional[int] = None
    callback: Optional[Callable[[FitInfo], None]] = None
    n_jobs: int = 1
    verbose: bool = False

    def resolve_regularization(self, implicit: bool) -> float:
        if self.regularization is not None:
            return float(self.regularization)
        return 0.01 if implicit else 0.1

    def check(self) -> None:
        if self.factors < 1:
            raise ValueError(f"factors must be positive, got {self.factors}")
