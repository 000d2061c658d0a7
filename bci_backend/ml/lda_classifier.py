"""
Two-class linear discriminant analysis (LDA) classifier for P300 detection.

Decision rule:
    score = w^T x + b
    confidence = sigmoid(score) = P(YES | x)
    YES if confidence > threshold, NO otherwise

Training estimates w and b from class means and the pooled within-class
covariance of the (mean, peak, latency) feature vectors.
"""

import math
from dataclasses import dataclass, replace
from typing import Literal, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

from bci_backend.core.exceptions import ModelError
from bci_backend.core.logging import get_logger
from bci_backend.signal_processing.feature_extraction import FEATURE_NAMES, FeatureVector

logger = get_logger(__name__)

Label = Literal["YES", "NO"]

COVARIANCE_REGULARIZATION = 1e-6
SINGULAR_DETERMINANT = 1e-10


@dataclass(frozen=True)
class Untrained:
    """Classifier state before any successful training."""
    threshold: float = 0.5


@dataclass(frozen=True)
class Trained:
    """Classifier state holding learned or supplied parameters."""
    weights: Tuple[float, float, float]
    bias: float
    threshold: float = 0.5


ClassifierState = Union[Untrained, Trained]


@dataclass(frozen=True)
class Prediction:
    """Classifier output for one feature vector."""
    label: Label
    confidence: float

    def to_dict(self) -> dict:
        return {'prediction': self.label, 'confidence': self.confidence}


class LDAClassifier:
    """
    Linear discriminant classifier over (mean, peak, latency) features.

    Starts untrained; predict() then returns a NO / 0.5 fallback.
    Re-training overwrites the parameters and keeps the classifier trained.
    """

    def __init__(self, threshold: float = 0.5) -> None:
        """
        Initialize an untrained classifier.

        Args:
            threshold: Decision threshold on the YES probability
        """
        self.state: ClassifierState = Untrained(threshold=_clamp_unit(threshold))

    @classmethod
    def from_parameters(
        cls,
        weights: Sequence[float],
        bias: float,
        threshold: float = 0.5
    ) -> 'LDAClassifier':
        """
        Build an already-trained classifier from fixed parameters.

        Args:
            weights: Three weights for [mean, peak, latency]
            bias: Bias term
            threshold: Decision threshold

        Returns:
            Trained classifier
        """
        if len(weights) != len(FEATURE_NAMES):
            raise ModelError(f"Expected {len(FEATURE_NAMES)} weights, got {len(weights)}")

        classifier = cls(threshold=threshold)
        classifier.state = Trained(
            weights=tuple(float(w) for w in weights),
            bias=float(bias),
            threshold=classifier.threshold
        )

        logger.info(
            "classifier_loaded_from_parameters",
            weights=list(classifier.state.weights),
            bias=classifier.state.bias
        )

        return classifier

    @property
    def is_trained(self) -> bool:
        return isinstance(self.state, Trained)

    @property
    def threshold(self) -> float:
        return self.state.threshold

    def set_threshold(self, threshold: float) -> None:
        """
        Set the decision threshold, clamped to [0, 1].

        Higher threshold = more conservative YES predictions.
        """
        self.state = replace(self.state, threshold=_clamp_unit(threshold))

    def train(self, features: Sequence[FeatureVector], labels: Sequence[str]) -> bool:
        """
        Train on labelled feature vectors.

        Labels other than "YES" count as NO. Both classes must be present,
        otherwise the current parameters are left untouched.

        Args:
            features: Feature vectors
            labels: "YES" / "NO", aligned 1:1 with features

        Returns:
            True if the parameters were updated
        """
        if len(features) == 0 or len(labels) != len(features):
            logger.warning(
                "invalid_training_data",
                n_features=len(features),
                n_labels=len(labels)
            )
            return False

        yes = np.array([f.to_array() for f, y in zip(features, labels) if y == "YES"])
        no = np.array([f.to_array() for f, y in zip(features, labels) if y != "YES"])

        if len(yes) == 0 or len(no) == 0:
            logger.warning(
                "training_requires_both_classes",
                n_yes=len(yes),
                n_no=len(no)
            )
            return False

        mean_yes = yes.mean(axis=0)
        mean_no = no.mean(axis=0)

        covariance = pooled_covariance(yes, no, mean_yes, mean_no)
        covariance_inv = invert_3x3(covariance)

        weights = covariance_inv @ (mean_yes - mean_no)
        bias = -0.5 * float(weights @ (mean_yes + mean_no))

        self.state = Trained(
            weights=tuple(float(w) for w in weights),
            bias=bias,
            threshold=self.threshold
        )

        logger.info(
            "training_complete",
            n_yes=len(yes),
            n_no=len(no),
            weights=list(self.state.weights),
            bias=bias
        )

        return True

    def predict(self, features: FeatureVector) -> Prediction:
        """
        Classify one feature vector.

        Args:
            features: Feature vector

        Returns:
            Prediction with label and YES probability
        """
        state = self.state
        if isinstance(state, Untrained):
            logger.debug("predict_called_on_untrained_model")
            return Prediction(label="NO", confidence=0.5)

        score = float(np.dot(state.weights, features.to_array())) + state.bias
        confidence = sigmoid(score)
        label: Label = "YES" if confidence > state.threshold else "NO"

        return Prediction(label=label, confidence=confidence)

    def get_parameters(self) -> dict:
        """Current model parameters for reporting."""
        state = self.state
        if isinstance(state, Untrained):
            return {'trained': False, 'threshold': state.threshold}
        return {
            'trained': True,
            'weights': dict(zip(FEATURE_NAMES, state.weights)),
            'bias': state.bias,
            'threshold': state.threshold
        }


def pooled_covariance(
    class1: NDArray[np.float64],
    class2: NDArray[np.float64],
    mean1: NDArray[np.float64],
    mean2: NDArray[np.float64]
) -> NDArray[np.float64]:
    """
    Pooled within-class covariance with diagonal regularization.

    Scatter of both classes around their own means, divided by n1 + n2 - 2.
    """
    n_features = class1.shape[1]
    scatter = np.zeros((n_features, n_features))

    for x in class1:
        diff = x - mean1
        scatter += np.outer(diff, diff)
    for x in class2:
        diff = x - mean2
        scatter += np.outer(diff, diff)

    # Two samples leave no degrees of freedom; keep the zero scatter
    dof = max(len(class1) + len(class2) - 2, 1)
    covariance = scatter / dof
    covariance[np.diag_indices(n_features)] += COVARIANCE_REGULARIZATION

    return covariance


def invert_3x3(m: NDArray[np.float64]) -> NDArray[np.float64]:
    """
    Invert a 3x3 matrix through its adjugate.

    Falls back to the identity when the matrix is nearly singular.
    """
    det = (
        m[0, 0] * (m[1, 1] * m[2, 2] - m[1, 2] * m[2, 1])
        - m[0, 1] * (m[1, 0] * m[2, 2] - m[1, 2] * m[2, 0])
        + m[0, 2] * (m[1, 0] * m[2, 1] - m[1, 1] * m[2, 0])
    )

    if not abs(det) >= SINGULAR_DETERMINANT:
        logger.warning("covariance_nearly_singular", determinant=float(det))
        return np.eye(3)

    adjugate = np.array([
        [
            m[1, 1] * m[2, 2] - m[1, 2] * m[2, 1],
            m[0, 2] * m[2, 1] - m[0, 1] * m[2, 2],
            m[0, 1] * m[1, 2] - m[0, 2] * m[1, 1],
        ],
        [
            m[1, 2] * m[2, 0] - m[1, 0] * m[2, 2],
            m[0, 0] * m[2, 2] - m[0, 2] * m[2, 0],
            m[0, 2] * m[1, 0] - m[0, 0] * m[1, 2],
        ],
        [
            m[1, 0] * m[2, 1] - m[1, 1] * m[2, 0],
            m[0, 1] * m[2, 0] - m[0, 0] * m[2, 1],
            m[0, 0] * m[1, 1] - m[0, 1] * m[1, 0],
        ],
    ])

    return adjugate / det


def sigmoid(x: float) -> float:
    """Logistic function, stable for large |x|."""
    if x >= 0:
        return 1.0 / (1.0 + math.exp(-x))
    z = math.exp(x)
    return z / (1.0 + z)


def _clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, float(value)))
