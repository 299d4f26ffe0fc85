"""
L2-regularized logistic regression fitted by batch gradient descent.

Each entity gets its own tiny binary classifier separating its description
words from randomly sampled words; the fitted weight vector is the entity's
embedding. Weight 0 acts as the bias and is not regularized.
"""

import logging
from typing import Optional

import numpy as np

from ..core.models import FitResult, TrainingExamples


logger = logging.getLogger(__name__)

DEFAULT_REGULARIZATION = 10.0
DEFAULT_MAX_ITERATIONS = 50000
DEFAULT_TOLERANCE = 1e-5
INITIAL_LEARNING_RATE = 1.0
# Seed value for the "previous loss" before the first step
INITIAL_PREVIOUS_LOSS = 100.0


def sigmoid(z):
    """Logistic function, 1 / (1 + e^-z)."""
    with np.errstate(over="ignore"):
        return 1.0 / (1.0 + np.exp(-z))


def score(weights: np.ndarray, features: np.ndarray):
    """Sigmoid score of one feature row or of every row of a matrix."""
    return sigmoid(np.asarray(features, dtype=np.float64) @ np.asarray(weights, dtype=np.float64))


def init_weights(dimension: int, rng: np.random.Generator) -> np.ndarray:
    """Draw ``dimension`` independent uniform weights in [0, 1)."""
    return rng.random(dimension)


def regularized_loss(
    weights: np.ndarray,
    features: np.ndarray,
    labels: np.ndarray,
    c: float,
) -> float:
    """
    Penalized negative mean log-likelihood.

    Rows whose score is exactly 0 are skipped and non-finite terms are
    dropped, so a saturated example never poisons the objective.
    """
    n = len(labels)
    penalty = (c / n) * float(np.dot(weights, weights))

    scores = score(weights, features)
    keep = scores > 0
    if not np.any(keep):
        return penalty

    s = scores[keep]
    y = labels[keep]
    with np.errstate(divide="ignore", invalid="ignore"):
        terms = y * np.log(s) + (1 - y) * np.log(1 - s)
    terms = terms[np.isfinite(terms)]
    return penalty - float(np.sum(terms)) / n


def train_logistic_regression(
    examples: TrainingExamples,
    dimension: int,
    rng: np.random.Generator,
    regularization: float = DEFAULT_REGULARIZATION,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
    initial_weights: Optional[np.ndarray] = None,
    initial_learning_rate: float = INITIAL_LEARNING_RATE,
) -> FitResult:
    """
    Fit an entity's weight vector.

    Args:
        examples: Labeled features (positives and sampled negatives)
        dimension: Number of weights to learn
        rng: The calling worker's random generator (used for initialization)
        regularization: Loss/regularizer trade-off; the penalty coefficient
            is half of it
        max_iterations: Hard cap on gradient steps
        tolerance: Stop once the loss changes by less than this
        initial_weights: Starting point instead of random initialization
        initial_learning_rate: Step size of the first iteration

    Returns:
        FitResult holding the float32 weight vector
    """
    features = np.asarray(examples.features, dtype=np.float64)
    labels = np.asarray(examples.labels, dtype=np.float64)
    n = len(labels)

    if initial_weights is not None:
        weights = np.array(initial_weights, dtype=np.float64)
    else:
        weights = init_weights(dimension, rng)

    if n == 0:
        return FitResult(
            weights=weights.astype(np.float32),
            iterations=0,
            loss=float("nan"),
            converged=False,
            learning_rate=initial_learning_rate,
        )

    c = regularization / 2
    alpha = initial_learning_rate
    previous_loss = INITIAL_PREVIOUS_LOSS
    loss = previous_loss
    converged = False
    iterations = 0

    while iterations < max_iterations:
        residuals = score(weights, features) - labels
        gradient = (residuals @ features) / n
        gradient[1:] += (c / n) * weights[1:]
        weights = weights - alpha * gradient

        loss = regularized_loss(weights, features, labels, c)
        iterations += 1

        if abs(loss - previous_loss) < tolerance:
            converged = True
            break
        if loss > previous_loss:
            alpha /= 2
        previous_loss = loss

    if not converged:
        logger.debug(f"Stopped at iteration cap {max_iterations} (loss={loss:.6f})")

    return FitResult(
        weights=weights.astype(np.float32),
        iterations=iterations,
        loss=loss,
        converged=converged,
        learning_rate=alpha,
    )
