"""
Unit tests for machine learning components.

Tests:
- LDA classifier states and prediction
- Training and separability
- Covariance helpers
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose

from bci_backend.ml.lda_classifier import (
    LDAClassifier,
    Prediction,
    Trained,
    Untrained,
    invert_3x3,
    pooled_covariance,
    sigmoid,
)
from bci_backend.core.exceptions import ModelError
from bci_backend.signal_processing.feature_extraction import FeatureVector


class TestUntrainedClassifier:
    """Test classifier behaviour before training."""

    @pytest.fixture
    def classifier(self):
        """Create untrained classifier instance."""
        return LDAClassifier()

    def test_initial_state(self, classifier):
        """Test a new classifier is untrained."""
        assert not classifier.is_trained
        assert isinstance(classifier.state, Untrained)
        assert classifier.threshold == 0.5

    def test_predict_fallback(self, classifier):
        """Test untrained prediction is NO with 0.5 confidence."""
        prediction = classifier.predict(FeatureVector(mean=3.0, peak=5.0, latency=450.0))

        assert prediction == Prediction(label="NO", confidence=0.5)

    def test_parameters_report_untrained(self, classifier):
        """Test parameter report of an untrained model."""
        assert classifier.get_parameters() == {'trained': False, 'threshold': 0.5}

    def test_training_requires_both_classes(self, classifier):
        """Test single-class training leaves the model untouched."""
        features = [FeatureVector(mean=1.0, peak=5.0, latency=450.0)] * 3

        assert classifier.train(features, ["YES"] * 3) is False
        assert not classifier.is_trained

    def test_training_rejects_misaligned_labels(self, classifier):
        """Test feature/label length mismatch is refused."""
        features = [FeatureVector.zeros(), FeatureVector.zeros()]

        assert classifier.train(features, ["YES"]) is False
        assert classifier.train([], []) is False
        assert not classifier.is_trained


class TestFixedParameterClassifier:
    """Test classifier built from fixed parameters."""

    @pytest.fixture
    def classifier(self):
        """Create classifier with the default fixed parameters."""
        return LDAClassifier.from_parameters([2.5, 3.0, 0.5], -1.2)

    def test_from_parameters(self, classifier):
        """Test factory produces a trained state."""
        assert classifier.is_trained
        assert classifier.state == Trained(weights=(2.5, 3.0, 0.5), bias=-1.2, threshold=0.5)

    def test_from_parameters_requires_three_weights(self):
        """Test wrong weight count is rejected."""
        with pytest.raises(ModelError):
            LDAClassifier.from_parameters([1.0, 2.0], 0.0)

    def test_predict_score(self, classifier):
        """Test confidence is the sigmoid of the linear score."""
        prediction = classifier.predict(FeatureVector(mean=1.0, peak=1.0, latency=0.0))

        assert prediction.label == "YES"
        assert prediction.confidence == pytest.approx(1.0 / (1.0 + np.exp(-4.3)))

    def test_predict_below_threshold(self, classifier):
        """Test negative score gives NO."""
        prediction = classifier.predict(FeatureVector.zeros())

        assert prediction.label == "NO"
        assert prediction.confidence == pytest.approx(1.0 / (1.0 + np.exp(1.2)))

    def test_predict_is_idempotent(self, classifier):
        """Test repeated predictions on the same input agree."""
        features = FeatureVector(mean=0.2, peak=1.7, latency=420.0)

        assert classifier.predict(features) == classifier.predict(features)

    def test_threshold_is_clamped(self, classifier):
        """Test threshold stays in [0, 1]."""
        classifier.set_threshold(1.5)
        assert classifier.threshold == 1.0

        classifier.set_threshold(-0.2)
        assert classifier.threshold == 0.0

        # Parameters survive a threshold change
        assert classifier.state.weights == (2.5, 3.0, 0.5)

    def test_threshold_controls_label(self, classifier):
        """Test a stricter threshold turns a YES into NO."""
        features = FeatureVector(mean=0.2, peak=0.2, latency=0.0)  # score -0.1
        classifier.set_threshold(0.4)
        assert classifier.predict(features).label == "YES"

        classifier.set_threshold(0.6)
        assert classifier.predict(features).label == "NO"

    def test_parameters_report(self, classifier):
        """Test parameter report names every weight."""
        params = classifier.get_parameters()

        assert params['trained'] is True
        assert params['weights'] == {'mean': 2.5, 'peak': 3.0, 'latency': 0.5}
        assert params['bias'] == -1.2


class TestTraining:
    """Test LDA training."""

    @pytest.fixture
    def training_set(self):
        """Noisy, well separated synthetic features."""
        rng = np.random.RandomState(3)
        yes = [
            FeatureVector(
                mean=1.0 + 0.1 * rng.randn(),
                peak=5.0 + 0.3 * rng.randn(),
                latency=450.0 + 10.0 * rng.randn()
            )
            for _ in range(20)
        ]
        no = [
            FeatureVector(
                mean=0.1 * rng.randn(),
                peak=0.5 + 0.3 * rng.randn(),
                latency=380.0 + 40.0 * rng.randn()
            )
            for _ in range(20)
        ]
        return yes + no, ["YES"] * 20 + ["NO"] * 20

    def test_train_separates_classes(self, training_set):
        """Test trained model labels class prototypes correctly."""
        features, labels = training_set
        classifier = LDAClassifier()

        assert classifier.train(features, labels) is True
        assert classifier.is_trained

        yes = classifier.predict(FeatureVector(mean=1.0, peak=5.0, latency=450.0))
        no = classifier.predict(FeatureVector(mean=0.0, peak=0.5, latency=380.0))

        assert yes.label == "YES" and yes.confidence > 0.5
        assert no.label == "NO" and no.confidence < 0.5

    def test_training_accuracy(self, training_set):
        """Test the training set itself is classified well."""
        features, labels = training_set
        classifier = LDAClassifier()
        classifier.train(features, labels)

        predicted = [classifier.predict(f).label for f in features]
        accuracy = np.mean([p == y for p, y in zip(predicted, labels)])

        assert accuracy >= 0.95

    def test_non_yes_labels_count_as_no(self, training_set):
        """Test labels other than YES fall into the NO class."""
        features, labels = training_set
        reference = LDAClassifier()
        reference.train(features, labels)

        relabelled = LDAClassifier()
        relabelled.train(features, ["YES" if y == "YES" else "nontarget" for y in labels])

        assert_allclose(relabelled.state.weights, reference.state.weights)
        assert relabelled.state.bias == pytest.approx(reference.state.bias)

    def test_retraining_overwrites(self, training_set):
        """Test training replaces fixed parameters but keeps the threshold."""
        features, labels = training_set
        classifier = LDAClassifier.from_parameters([0.0, 0.0, 0.0], 0.0, threshold=0.3)

        classifier.train(features, labels)

        assert classifier.state.weights != (0.0, 0.0, 0.0)
        assert classifier.threshold == 0.3

    def test_failed_training_keeps_parameters(self):
        """Test a rejected training call leaves previous parameters."""
        classifier = LDAClassifier.from_parameters([2.5, 3.0, 0.5], -1.2)
        before = classifier.state

        classifier.train([FeatureVector.zeros()], ["NO"])

        assert classifier.state == before

    def test_degenerate_classes_use_identity(self):
        """Test zero within-class spread still yields a separating model."""
        yes = FeatureVector(mean=1.0, peak=5.0, latency=450.0)
        no = FeatureVector(mean=0.0, peak=0.0, latency=300.0)
        classifier = LDAClassifier()

        assert classifier.train([yes, yes, no, no], ["YES", "YES", "NO", "NO"])

        # Identity inverse: w = mu_yes - mu_no
        assert_allclose(classifier.state.weights, [1.0, 5.0, 150.0])
        assert classifier.predict(yes).label == "YES"
        assert classifier.predict(no).label == "NO"


class TestCovarianceHelpers:
    """Test covariance and inversion helpers."""

    def test_invert_matches_numpy(self):
        """Test adjugate inverse against numpy."""
        m = np.array([
            [4.0, 1.0, 0.5],
            [1.0, 3.0, 0.2],
            [0.5, 0.2, 2.0],
        ])
        assert_allclose(invert_3x3(m), np.linalg.inv(m))

    def test_invert_singular_returns_identity(self):
        """Test nearly singular matrices fall back to the identity."""
        assert_allclose(invert_3x3(np.zeros((3, 3))), np.eye(3))

        rank_two = np.array([
            [1.0, 2.0, 3.0],
            [2.0, 4.0, 6.0],
            [0.0, 1.0, 1.0],
        ])
        assert_allclose(invert_3x3(rank_two), np.eye(3))

    def test_pooled_covariance(self):
        """Test pooled scatter normalisation and regularization."""
        class1 = np.array([[1.0, 0.0, 0.0], [3.0, 0.0, 0.0]])
        class2 = np.array([[0.0, 2.0, 0.0], [0.0, 4.0, 0.0]])

        cov = pooled_covariance(class1, class2, class1.mean(axis=0), class2.mean(axis=0))

        # Each class contributes 2.0 of scatter on its axis; dof = 2
        assert cov[0, 0] == pytest.approx(1.0 + 1e-6)
        assert cov[1, 1] == pytest.approx(1.0 + 1e-6)
        assert cov[2, 2] == pytest.approx(1e-6)
        assert cov[0, 1] == 0.0

    def test_sigmoid_is_stable(self):
        """Test sigmoid at extreme scores."""
        assert sigmoid(0.0) == 0.5
        assert sigmoid(1000.0) == 1.0
        assert sigmoid(-1000.0) == 0.0
