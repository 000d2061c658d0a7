"""
Single-trial BCI processing pipeline.

Coordinates epoch simulation, preprocessing, feature extraction and
classification for one stimulus presentation.
"""

import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional

import numpy as np

from bci_backend.core.config import Settings
from bci_backend.core.logging import get_logger
from bci_backend.eeg.simulator import EEGSimulator, Epoch, StimulusClass
from bci_backend.ml.lda_classifier import LDAClassifier, Prediction
from bci_backend.signal_processing import FeatureExtractor, FeatureVector, SignalPreprocessor

logger = get_logger(__name__)

# Simulated stimulus class -> label the classifier should produce
CLASS_LABELS = {"target": "YES", "nontarget": "NO"}


@dataclass
class TrialResult:
    """Every intermediate product of one processed trial."""
    epoch: Epoch
    filtered_signal: np.ndarray
    features: FeatureVector
    prediction: Prediction
    latency_ms: float

    def to_dict(self) -> dict:
        return {
            'eeg_signal': self.epoch.to_dict(),
            'preprocessed': {'filtered_signal': self.filtered_signal.tolist()},
            'features': self.features.to_dict(),
            'classification': self.prediction.to_dict(),
            'processing_ms': self.latency_ms
        }


class TrialPipeline:
    """
    Trial processing pipeline.

    Orchestrates the complete flow:
    Simulator → Preprocessing → Feature Extraction → LDA
    """

    def __init__(
        self,
        classifier: LDAClassifier,
        simulator: Optional[EEGSimulator] = None,
        preprocessor: Optional[SignalPreprocessor] = None,
        extractor: Optional[FeatureExtractor] = None,
        metrics_history: int = 1000
    ):
        """
        Initialize trial pipeline.

        Args:
            classifier: Classifier used for every trial
            simulator: Epoch source (default: 250 Hz, 1 s epochs)
            preprocessor: Filter chain (default: matches simulator rate)
            extractor: Feature extractor (default: 300-600 ms window)
            metrics_history: Number of recent timings kept per stage
        """
        self.classifier = classifier
        self.simulator = simulator or EEGSimulator()
        self.preprocessor = preprocessor or SignalPreprocessor(
            sampling_rate=self.simulator.sampling_rate
        )
        self.extractor = extractor or FeatureExtractor()

        # Performance metrics
        self.metrics: Dict[str, Deque[float]] = {
            name: deque(maxlen=metrics_history)
            for name in ('total_latency', 'preprocessing_time',
                         'feature_extraction_time', 'classification_time')
        }

    @classmethod
    def from_settings(cls, settings: Settings, classifier: Optional[LDAClassifier] = None) -> 'TrialPipeline':
        """
        Build the pipeline and its classifier from application settings.

        In "default" mode the classifier uses the configured fixed
        parameters; in "trained" mode it is fitted on freshly simulated
        epochs.
        """
        simulator = EEGSimulator(
            sampling_rate=settings.eeg_sampling_rate,
            duration_ms=settings.eeg_epoch_duration_ms,
            noise_level=settings.eeg_noise_level,
            seed=settings.eeg_seed
        )

        if classifier is None:
            if settings.classifier_mode == "trained":
                classifier = LDAClassifier(threshold=settings.classifier_threshold)
            else:
                classifier = LDAClassifier.from_parameters(
                    settings.classifier_weights,
                    settings.classifier_bias,
                    threshold=settings.classifier_threshold
                )

        pipeline = cls(classifier=classifier, simulator=simulator)

        if settings.classifier_mode == "trained" and not classifier.is_trained:
            pipeline.train_classifier(
                settings.classifier_training_targets,
                settings.classifier_training_nontargets
            )

        return pipeline

    def process(self, epoch: Epoch) -> TrialResult:
        """
        Run preprocessing, feature extraction and classification on an epoch.

        Args:
            epoch: Raw epoch

        Returns:
            TrialResult with all intermediate values
        """
        start = time.perf_counter()

        filtered = self.preprocessor.process(epoch.samples)
        t_pre = time.perf_counter()

        features = self.extractor.extract_features(filtered, epoch.timestamps)
        t_feat = time.perf_counter()

        prediction = self.classifier.predict(features)
        t_cls = time.perf_counter()

        self.metrics['preprocessing_time'].append(t_pre - start)
        self.metrics['feature_extraction_time'].append(t_feat - t_pre)
        self.metrics['classification_time'].append(t_cls - t_feat)
        self.metrics['total_latency'].append(t_cls - start)

        latency_ms = (t_cls - start) * 1000

        logger.debug(
            "trial_processed",
            label=epoch.label,
            prediction=prediction.label,
            confidence=prediction.confidence,
            latency_ms=latency_ms
        )

        return TrialResult(
            epoch=epoch,
            filtered_signal=filtered,
            features=features,
            prediction=prediction,
            latency_ms=latency_ms
        )

    def run(
        self,
        stimulus_class: StimulusClass,
        noise_level: Optional[float] = None
    ) -> TrialResult:
        """Simulate an epoch for the given stimulus and process it."""
        epoch = self.simulator.simulate(stimulus_class, noise_level=noise_level)
        return self.process(epoch)

    def build_training_set(
        self,
        target_count: int,
        nontarget_count: int,
        noise_level: Optional[float] = None
    ) -> tuple[List[FeatureVector], List[str]]:
        """
        Simulate labelled epochs and reduce them to feature vectors.

        Returns:
            (features, labels) with labels "YES" for targets, "NO" otherwise
        """
        epochs = self.simulator.generate_training_data(
            target_count, nontarget_count, noise_level=noise_level
        )
        filtered = [self.preprocessor.process(epoch.samples) for epoch in epochs]
        features = self.extractor.extract_batch(filtered, [epoch.timestamps for epoch in epochs])
        labels = [CLASS_LABELS[epoch.label] for epoch in epochs]
        return features, labels

    def train_classifier(
        self,
        target_count: int = 30,
        nontarget_count: int = 30,
        noise_level: Optional[float] = None
    ) -> bool:
        """Fit the classifier on freshly simulated epochs."""
        features, labels = self.build_training_set(target_count, nontarget_count, noise_level)

        logger.info(
            "classifier_training_started",
            target_count=target_count,
            nontarget_count=nontarget_count
        )

        return self.classifier.train(features, labels)

    def get_metrics(self) -> Dict[str, float]:
        """Average per-stage timings in milliseconds."""
        return {
            f"avg_{name}_ms": float(np.mean(values) * 1000) if values else 0.0
            for name, values in self.metrics.items()
        }
