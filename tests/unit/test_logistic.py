"""
Unit tests for the logistic regression trainer.
"""

import math

import numpy as np
import pytest

from entity_embed.core.models import TrainingExamples
from entity_embed.training import (
    build_examples, regularized_loss, score, sigmoid, train_logistic_regression
)
from entity_embed.training.logistic import DEFAULT_MAX_ITERATIONS


def make_examples(features, labels) -> TrainingExamples:
    labels = np.asarray(labels, dtype=np.int8)
    return TrainingExamples(
        features=np.asarray(features, dtype=np.float32),
        labels=labels,
        num_positive=int(labels.sum()),
    )


class TestSigmoid:
    """Tests for the scoring helpers."""

    def test_midpoint(self):
        assert sigmoid(0.0) == 0.5

    def test_saturates_without_warnings(self):
        assert sigmoid(-1000.0) == 0.0
        assert sigmoid(1000.0) == 1.0

    def test_score_rows(self):
        scores = score(np.array([1.0, -1.0]), np.array([[1.0, 1.0], [2.0, 0.0]]))
        np.testing.assert_allclose(scores, [0.5, 1 / (1 + math.exp(-2))])


class TestRegularizedLoss:
    """Tests for the penalized objective."""

    def test_penalty_only_when_all_terms_dropped(self):
        # Score is exactly 1 for a negative example: log(0) term is dropped
        weights = np.array([1000.0, 0.0])
        loss = regularized_loss(weights, np.array([[1.0, 0.0]]), np.array([0.0]), c=5.0)

        assert math.isfinite(loss)
        assert loss == pytest.approx(5.0 * 1000.0 ** 2)

    def test_zero_scores_are_skipped(self):
        weights = np.array([-1000.0, 0.0])
        loss = regularized_loss(weights, np.array([[1.0, 0.0]]), np.array([1.0]), c=1.0)

        assert loss == pytest.approx(1000.0 ** 2)

    def test_matches_closed_form(self):
        weights = np.array([0.0, 0.0])
        loss = regularized_loss(weights, np.array([[1.0, 2.0], [3.0, 4.0]]), np.array([1.0, 0.0]), c=5.0)

        # Both scores are 0.5
        assert loss == pytest.approx(-math.log(0.5))


class TestTrainLogisticRegression:
    """Tests for train_logistic_regression."""

    def test_returns_dimension_weights(self, animal_store, rng):
        examples = build_examples(["dog", "cat"], animal_store, rng, rho=1)

        fit = train_logistic_regression(examples, 2, rng)

        assert fit.weights.shape == (2,)
        assert fit.weights.dtype == np.float32
        assert np.all(np.isfinite(fit.weights))

    def test_converges_within_cap(self, animal_store, rng):
        examples = build_examples(["dog", "cat"], animal_store, rng, rho=1)

        fit = train_logistic_regression(examples, 2, rng)

        assert fit.converged
        assert 0 < fit.iterations <= DEFAULT_MAX_ITERATIONS

    def test_iteration_cap(self, random_store, rng):
        examples = build_examples(["w1", "w2", "w3"], random_store, rng, rho=3)

        fit = train_logistic_regression(examples, random_store.dimension, rng,
                                        max_iterations=10, tolerance=0.0)

        assert fit.iterations == 10
        assert not fit.converged
        assert fit.weights.shape == (random_store.dimension,)

    def test_all_zero_features_terminate(self, rng):
        examples = make_examples(np.zeros((4, 3)), [1, 1, 0, 0])

        fit = train_logistic_regression(examples, 3, rng, max_iterations=200)

        assert fit.iterations <= 200
        assert fit.weights.shape == (3,)

    def test_bias_is_not_regularized(self, rng):
        # Only the first column carries signal; zero features leave w_j decaying
        examples = make_examples([[1.0, 0.0], [1.0, 0.0]], [1, 1])
        start = np.array([0.0, 1.0])

        fit = train_logistic_regression(examples, 2, rng, initial_weights=start,
                                        max_iterations=1, tolerance=0.0)

        # w_0 moves up with the residual, w_1 only shrinks from the penalty
        assert fit.weights[0] > 0.0
        assert fit.weights[1] == pytest.approx(1.0 - (5.0 / 2) * 1.0, rel=1e-6)

    def test_separates_positives_from_negatives(self):
        rng = np.random.default_rng(5)
        positives = np.hstack([np.ones((20, 1)), rng.normal(1.5, 0.3, size=(20, 3))])
        negatives = np.hstack([np.ones((20, 1)), rng.normal(-1.5, 0.3, size=(20, 3))])
        examples = make_examples(np.vstack([positives, negatives]), [1] * 20 + [0] * 20)

        fit = train_logistic_regression(examples, 4, rng)

        scores = score(fit.weights, examples.features)
        assert scores[:20].mean() > 0.5 > scores[20:].mean()

    def test_deterministic_for_fixed_seed(self, random_store):
        examples = build_examples(["w1", "w2"], random_store, np.random.default_rng(3), rho=4)

        first = train_logistic_regression(examples, 8, np.random.default_rng(11))
        second = train_logistic_regression(examples, 8, np.random.default_rng(11))

        np.testing.assert_array_equal(first.weights, second.weights)
        assert first.iterations == second.iterations

    def test_empty_examples(self, rng):
        examples = make_examples(np.empty((0, 2)), [])

        fit = train_logistic_regression(examples, 2, rng)

        assert fit.iterations == 0
        assert fit.weights.shape == (2,)


class TestLearningRate:
    """Tests for step-size control."""

    # Large features make a unit step overshoot past the optimum
    FEATURES = [[10.0, 10.0], [10.0, -10.0]]
    LABELS = [1, 0]

    def test_overshooting_step_is_halved(self, rng):
        examples = make_examples(self.FEATURES, self.LABELS)

        fit = train_logistic_regression(examples, 2, rng, initial_weights=np.zeros(2))

        assert fit.learning_rate < 1.0
        # Halving only ever divides by two
        assert math.log2(fit.learning_rate) == int(math.log2(fit.learning_rate))
        assert fit.converged
        assert fit.loss < 1.0

    def test_loss_increase_triggers_halving(self, rng):
        examples = make_examples(self.FEATURES, self.LABELS)

        # Step 1 moves w_1 to 5 and lowers the loss; step 2 overshoots to -7.5
        one_step = train_logistic_regression(examples, 2, rng, initial_weights=np.zeros(2),
                                             max_iterations=1, tolerance=0.0)
        two_steps = train_logistic_regression(examples, 2, rng, initial_weights=np.zeros(2),
                                              max_iterations=2, tolerance=0.0)

        assert one_step.learning_rate == 1.0
        assert two_steps.loss > one_step.loss
        assert two_steps.learning_rate == 0.5

    def test_initial_learning_rate(self, rng):
        examples = make_examples(self.FEATURES, self.LABELS)

        fit = train_logistic_regression(examples, 2, rng, initial_weights=np.zeros(2),
                                        max_iterations=1, tolerance=0.0,
                                        initial_learning_rate=0.5)

        # Gradient on w_1 at zero is -5
        assert fit.weights[1] == pytest.approx(2.5)
        assert fit.weights[0] == pytest.approx(0.0)
        assert fit.learning_rate == 0.5
