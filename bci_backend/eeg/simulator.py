"""
EEG epoch simulator for the P300 game.

Generates single-channel epochs standing in for one stimulus-locked EEG
recording:
- Zero-mean Gaussian baseline noise
- A P300-like positive deflection (peak ~450 ms) for target stimuli
"""

import math
from dataclasses import dataclass
from typing import List, Literal, Optional

import numpy as np
from numpy.typing import NDArray

from bci_backend.core.logging import get_logger

logger = get_logger(__name__)

StimulusClass = Literal["target", "nontarget"]

# P300-like component
P300_WINDOW_START_MS = 300.0
P300_WINDOW_END_MS = 600.0
P300_CENTER_MS = 450.0
P300_WIDTH_MS = 75.0
P300_PEAK_AMPLITUDE = 5.0  # microvolts


@dataclass
class Epoch:
    """One simulated stimulus-locked epoch."""
    timestamps: NDArray[np.float64]  # milliseconds
    samples: NDArray[np.float64]
    label: Optional[StimulusClass] = None

    def __len__(self) -> int:
        return len(self.samples)

    def to_dict(self) -> dict:
        """Serialize for the API (label is training-only metadata)."""
        return {
            'timestamps': self.timestamps.tolist(),
            'raw_signal': self.samples.tolist()
        }


class EEGSimulator:
    """
    Simulates single-channel EEG epochs with an optional P300 component.

    Each call draws fresh, independent noise for every sample; aside from
    the random draws, simulation is a pure function of its arguments.
    """

    def __init__(
        self,
        sampling_rate: int = 250,
        duration_ms: float = 1000.0,
        noise_level: float = 0.5,
        seed: Optional[int] = None
    ) -> None:
        """
        Initialize EEG simulator.

        Args:
            sampling_rate: Sampling rate in Hz (default: 250)
            duration_ms: Epoch duration in milliseconds (default: 1000)
            noise_level: Default noise standard deviation, 0-1 (default: 0.5)
            seed: Random seed for reproducibility
        """
        self.sampling_rate = sampling_rate
        self.duration_ms = duration_ms
        self.noise_level = noise_level

        # Random number generator
        self.rng = np.random.RandomState(seed)

        logger.info(
            "eeg_simulator_initialized",
            sampling_rate=sampling_rate,
            duration_ms=duration_ms,
            noise_level=noise_level
        )

    def simulate(
        self,
        stimulus_class: StimulusClass,
        sampling_rate: Optional[int] = None,
        duration_ms: Optional[float] = None,
        noise_level: Optional[float] = None
    ) -> Epoch:
        """
        Simulate one epoch.

        Args:
            stimulus_class: 'target' (adds the P300 component) or 'nontarget'
            sampling_rate: Override for the sampling rate in Hz
            duration_ms: Override for the epoch duration in ms
            noise_level: Override for the noise standard deviation

        Returns:
            Epoch with evenly spaced timestamps and raw amplitudes
        """
        sampling_rate = sampling_rate or self.sampling_rate
        duration_ms = duration_ms or self.duration_ms
        noise_level = self.noise_level if noise_level is None else noise_level

        n_samples = int(math.floor(sampling_rate * duration_ms / 1000.0))
        timestamps = np.arange(n_samples) * (1000.0 / sampling_rate)

        samples = self.gaussian_noise(n_samples, mean=0.0, std=noise_level)

        if stimulus_class == "target":
            samples += self.p300_component(timestamps)

        return Epoch(timestamps=timestamps, samples=samples, label=stimulus_class)

    def generate_training_data(
        self,
        target_count: int,
        nontarget_count: int,
        noise_level: Optional[float] = None
    ) -> List[Epoch]:
        """
        Generate labelled epochs for classifier training.

        Targets come first, then non-targets; every epoch is simulated
        independently.
        """
        epochs = [
            self.simulate("target", noise_level=noise_level)
            for _ in range(target_count)
        ]
        epochs.extend(
            self.simulate("nontarget", noise_level=noise_level)
            for _ in range(nontarget_count)
        )

        logger.debug(
            "training_data_generated",
            target_count=target_count,
            nontarget_count=nontarget_count
        )

        return epochs

    def gaussian_noise(
        self,
        n_samples: int,
        mean: float = 0.0,
        std: float = 1.0
    ) -> NDArray[np.float64]:
        """
        Draw Gaussian samples with the Box-Muller transform.

        Uniform draws of exactly zero are redrawn so the logarithm stays
        finite.
        """
        u1 = self._nonzero_uniform(n_samples)
        u2 = self._nonzero_uniform(n_samples)

        z0 = np.sqrt(-2.0 * np.log(u1)) * np.cos(2.0 * np.pi * u2)
        return z0 * std + mean

    def _nonzero_uniform(self, n_samples: int) -> NDArray[np.float64]:
        draws = self.rng.random_sample(n_samples)
        zeros = draws == 0.0
        while np.any(zeros):
            draws[zeros] = self.rng.random_sample(int(np.count_nonzero(zeros)))
            zeros = draws == 0.0
        return draws

    @staticmethod
    def p300_component(timestamps: NDArray[np.float64]) -> NDArray[np.float64]:
        """
        Bell-shaped deflection centred at 450 ms, zero outside 300-600 ms.
        """
        in_window = (timestamps >= P300_WINDOW_START_MS) & (timestamps <= P300_WINDOW_END_MS)
        bell = P300_PEAK_AMPLITUDE * np.exp(
            -0.5 * ((timestamps - P300_CENTER_MS) / P300_WIDTH_MS) ** 2
        )
        return np.where(in_window, bell, 0.0)

    def get_info(self) -> dict:
        """
        Get simulator information.

        Returns:
            Dictionary with simulator info
        """
        return {
            'device_type': 'simulator',
            'n_channels': 1,
            'sampling_rate': self.sampling_rate,
            'duration_ms': self.duration_ms,
            'noise_level': self.noise_level
        }
