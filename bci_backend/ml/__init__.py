"""
Machine learning components for the BCI game.

Includes:
- Two-class LDA classifier for P300 detection
"""

from bci_backend.ml.lda_classifier import (
    LDAClassifier,
    Prediction,
    Trained,
    Untrained
)

__all__ = [
    'LDAClassifier',
    'Prediction',
    'Trained',
    'Untrained'
]
