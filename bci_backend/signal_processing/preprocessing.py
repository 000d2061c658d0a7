"""
Signal preprocessing: simulated bandpass, notch and DC removal.

The filter chain is a cheap stand-in for a bandpass + notch pair:
moving-average smoothing with a recursive drift step, a one-period comb
blend at the power line frequency, then mean removal.
"""

import numpy as np
from numpy.typing import ArrayLike, NDArray

from bci_backend.core.logging import get_logger

logger = get_logger(__name__)


class SignalPreprocessor:
    """
    Preprocessing pipeline for raw single-channel epochs.

    Applies, in order:
    - Bandpass approximation (moving average passes + recursive drift step)
    - Notch approximation at 50 Hz
    - DC removal
    """

    def __init__(
        self,
        sampling_rate: int = 250,
        bandpass_order: int = 2,
        smoothing_window: int = 5,
        drift_coefficient: float = 0.95,
        notch_freq: float = 50.0,
        notch_blend: float = 0.2
    ) -> None:
        """
        Initialize signal preprocessor.

        Args:
            sampling_rate: Sampling rate in Hz
            bandpass_order: Number of moving-average passes
            smoothing_window: Moving-average window in samples
            drift_coefficient: Weight of the previous output in the drift step
            notch_freq: Power line frequency in Hz
            notch_blend: Weight of the sample one notch period earlier
        """
        self.sampling_rate = sampling_rate
        self.bandpass_order = bandpass_order
        self.smoothing_window = smoothing_window
        self.drift_coefficient = drift_coefficient
        self.notch_freq = notch_freq
        self.notch_blend = notch_blend

        logger.info(
            "preprocessor_initialized",
            sampling_rate=sampling_rate,
            bandpass_order=bandpass_order,
            notch=f"{notch_freq} Hz"
        )

    def process(
        self,
        raw_signal: ArrayLike,
        sampling_rate: int | None = None
    ) -> NDArray[np.float64]:
        """
        Run the full filter chain.

        Args:
            raw_signal: Raw samples
            sampling_rate: Override for the sampling rate in Hz

        Returns:
            Filtered samples, same length as the input
        """
        data = np.asarray(raw_signal, dtype=np.float64)
        if data.size == 0:
            return data.copy()

        filtered = self.bandpass(data)
        filtered = self.notch(filtered, sampling_rate or self.sampling_rate)
        filtered = self.remove_dc(filtered)

        return filtered

    def bandpass(self, data: NDArray[np.float64]) -> NDArray[np.float64]:
        """
        Approximate a bandpass filter.

        Repeated centred moving averages act as the low-pass half. The
        high-pass half is a recursive step where each output subtracts
        0.95 times the already-updated previous output.
        """
        filtered = data.copy()
        for _ in range(self.bandpass_order):
            filtered = self.moving_average(filtered, self.smoothing_window)

        # Sequential: each sample depends on the updated previous sample
        for i in range(1, len(filtered)):
            filtered[i] = filtered[i] - self.drift_coefficient * filtered[i - 1]

        return filtered

    def notch(
        self,
        data: NDArray[np.float64],
        sampling_rate: int | None = None
    ) -> NDArray[np.float64]:
        """
        Approximate a notch filter by blending each sample with the
        (already blended) sample one power line period earlier.
        """
        sampling_rate = sampling_rate or self.sampling_rate
        period = int(np.floor(sampling_rate / self.notch_freq))

        filtered = data.copy()
        if period < 1:
            return filtered

        keep = 1.0 - self.notch_blend
        for i in range(period, len(filtered)):
            filtered[i] = keep * filtered[i] + self.notch_blend * filtered[i - period]

        return filtered

    @staticmethod
    def remove_dc(data: NDArray[np.float64]) -> NDArray[np.float64]:
        """Subtract the mean of the whole series."""
        if data.size == 0:
            return data.copy()
        return data - np.mean(data)

    @staticmethod
    def moving_average(data: NDArray[np.float64], window: int) -> NDArray[np.float64]:
        """
        Centred moving average, truncated at the edges.

        Near the boundaries the average covers only the samples that exist,
        so the output keeps the input length.
        """
        n = len(data)
        if n == 0:
            return data.copy()

        half_before = window // 2
        half_after = window - half_before  # exclusive upper offset

        cumulative = np.concatenate(([0.0], np.cumsum(data)))
        idx = np.arange(n)
        lo = np.clip(idx - half_before, 0, n)
        hi = np.clip(idx + half_after, 0, n)

        return (cumulative[hi] - cumulative[lo]) / (hi - lo)


def preprocess(raw_signal: ArrayLike, sampling_rate: int = 250) -> NDArray[np.float64]:
    """Run the default filter chain on one epoch."""
    return SignalPreprocessor(sampling_rate=sampling_rate).process(raw_signal)
