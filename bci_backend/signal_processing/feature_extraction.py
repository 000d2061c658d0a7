"""
Feature extraction from preprocessed epochs.

Extracts from the 300-600 ms post-stimulus (P300) window:
- Mean amplitude
- Peak amplitude (maximum absolute value)
- Peak latency (timestamp of the peak)
"""

from dataclasses import asdict, dataclass
from typing import Dict, List, Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray

from bci_backend.core.exceptions import ProcessingError
from bci_backend.core.logging import get_logger

logger = get_logger(__name__)

FEATURE_NAMES = ('mean', 'peak', 'latency')


@dataclass(frozen=True)
class FeatureVector:
    """Summary of one epoch's analysis window."""
    mean: float
    peak: float
    latency: float  # milliseconds

    def to_array(self) -> NDArray[np.float64]:
        return np.array([self.mean, self.peak, self.latency], dtype=np.float64)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def zeros(cls) -> 'FeatureVector':
        return cls(mean=0.0, peak=0.0, latency=0.0)


class FeatureExtractor:
    """
    Extract P300 window features for classification.

    The window bounds are located by nearest timestamp, so the extractor
    works for any sampling rate.
    """

    def __init__(
        self,
        window_start_ms: float = 300.0,
        window_end_ms: float = 600.0
    ) -> None:
        """
        Initialize feature extractor.

        Args:
            window_start_ms: Start of the analysis window
            window_end_ms: End of the analysis window (inclusive)
        """
        self.window_start_ms = window_start_ms
        self.window_end_ms = window_end_ms

        logger.info(
            "feature_extractor_initialized",
            window=f"{window_start_ms}-{window_end_ms} ms"
        )

    def extract_features(
        self,
        filtered_signal: ArrayLike,
        timestamps: ArrayLike
    ) -> FeatureVector:
        """
        Extract features from one filtered epoch.

        Args:
            filtered_signal: Preprocessed samples
            timestamps: Sample times in ms, aligned with filtered_signal

        Returns:
            FeatureVector (all zeros when the window is empty)

        Raises:
            ProcessingError: If signal and timestamps differ in length
        """
        signal = np.asarray(filtered_signal, dtype=np.float64)
        times = np.asarray(timestamps, dtype=np.float64)

        if signal.size != times.size:
            raise ProcessingError(
                f"Signal has {signal.size} samples but {times.size} timestamps"
            )

        if signal.size == 0:
            logger.warning("empty_analysis_window")
            return FeatureVector.zeros()

        start_idx = self.closest_index(times, self.window_start_ms)
        end_idx = self.closest_index(times, self.window_end_ms)

        window = signal[start_idx:end_idx + 1]
        window_times = times[start_idx:end_idx + 1]

        if window.size == 0:
            logger.warning(
                "empty_analysis_window",
                start_idx=start_idx,
                end_idx=end_idx
            )
            return FeatureVector.zeros()

        mean = float(np.mean(window))
        magnitudes = np.abs(window)
        peak = float(np.max(magnitudes))

        # First sample whose magnitude equals the peak exactly
        peak_idx = int(np.flatnonzero(magnitudes == peak)[0])
        latency = float(window_times[peak_idx])

        return FeatureVector(mean=mean, peak=peak, latency=latency)

    def extract_batch(
        self,
        signals: Sequence[ArrayLike],
        timestamps_list: Sequence[ArrayLike]
    ) -> List[FeatureVector]:
        """Extract features from parallel lists of signals and timestamps."""
        return [
            self.extract_features(signal, times)
            for signal, times in zip(signals, timestamps_list)
        ]

    @staticmethod
    def closest_index(timestamps: NDArray[np.float64], target: float) -> int:
        """Index of the timestamp nearest to target; ties go to the earliest."""
        return int(np.argmin(np.abs(timestamps - target)))
