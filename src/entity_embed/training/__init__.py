"""
Per-entity training: example construction and logistic regression.
"""

from .examples import build_examples, sample_negative_ids, empty_examples
from .logistic import (
    train_logistic_regression, regularized_loss, score, sigmoid, init_weights
)

__all__ = [
    "build_examples",
    "sample_negative_ids",
    "empty_examples",
    "train_logistic_regression",
    "regularized_loss",
    "score",
    "sigmoid",
    "init_weights",
]
