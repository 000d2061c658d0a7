"""
Signal processing pipeline for simulated EEG epochs.
"""

from bci_backend.signal_processing.feature_extraction import FeatureExtractor, FeatureVector
from bci_backend.signal_processing.preprocessing import SignalPreprocessor, preprocess

__all__ = [
    "SignalPreprocessor",
    "preprocess",
    "FeatureExtractor",
    "FeatureVector",
]
