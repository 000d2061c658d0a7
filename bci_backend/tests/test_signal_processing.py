"""
Unit tests for signal processing components.

Tests:
- Preprocessing (moving average, drift step, notch, DC removal)
- Feature extraction
"""

import pytest
import numpy as np
from numpy.testing import assert_allclose, assert_array_almost_equal

from bci_backend.core.exceptions import ProcessingError
from bci_backend.signal_processing.preprocessing import SignalPreprocessor, preprocess
from bci_backend.signal_processing.feature_extraction import FeatureExtractor, FeatureVector


class TestSignalPreprocessor:
    """Test signal preprocessing functionality."""

    @pytest.fixture
    def preprocessor(self):
        """Create preprocessor instance."""
        return SignalPreprocessor(sampling_rate=250)

    @pytest.fixture
    def sample_signal(self):
        """One second of a noisy 10 Hz oscillation at 250 Hz."""
        rng = np.random.RandomState(0)
        t = np.arange(250) / 250.0
        return np.sin(2 * np.pi * 10 * t) + 0.3 * rng.randn(250) + 2.0

    def test_initialization(self, preprocessor):
        """Test preprocessor initialization."""
        assert preprocessor.sampling_rate == 250
        assert preprocessor.bandpass_order == 2
        assert preprocessor.smoothing_window == 5
        assert preprocessor.notch_freq == 50.0

    def test_output_length_matches_input(self, preprocessor, sample_signal):
        """Test that output length matches input length."""
        for n in (1, 3, 7, 250):
            assert len(preprocessor.process(sample_signal[:n])) == n

    def test_output_has_zero_mean(self, preprocessor, sample_signal):
        """Test DC removal leaves a zero-mean series."""
        filtered = preprocessor.process(sample_signal)
        assert abs(np.mean(filtered)) < 1e-9

    def test_empty_input(self, preprocessor):
        """Test empty input gives an empty result."""
        filtered = preprocessor.process([])
        assert filtered.size == 0

    def test_input_not_modified(self, preprocessor, sample_signal):
        """Test the raw signal is left untouched."""
        original = sample_signal.copy()
        preprocessor.process(sample_signal)
        assert_array_almost_equal(sample_signal, original)

    def test_moving_average_edges_truncated(self):
        """Test the window shrinks at the boundaries."""
        data = np.array([1.0, 2.0, 3.0, 4.0, 5.0, 6.0])
        smoothed = SignalPreprocessor.moving_average(data, 5)

        expected = [
            (1 + 2 + 3) / 3,
            (1 + 2 + 3 + 4) / 4,
            (1 + 2 + 3 + 4 + 5) / 5,
            (2 + 3 + 4 + 5 + 6) / 5,
            (3 + 4 + 5 + 6) / 4,
            (4 + 5 + 6) / 3,
        ]
        assert_allclose(smoothed, expected)

    def test_moving_average_shorter_than_window(self):
        """Test signals shorter than the window average over what exists."""
        smoothed = SignalPreprocessor.moving_average(np.array([2.0, 4.0]), 5)
        assert_allclose(smoothed, [3.0, 3.0])

    def test_drift_step_is_recursive(self):
        """Test each sample subtracts the already-updated previous sample."""
        preprocessor = SignalPreprocessor(sampling_rate=250, bandpass_order=0)
        filtered = preprocessor.bandpass(np.array([1.0, 1.0, 1.0]))

        # y0 = 1; y1 = 1 - 0.95; y2 = 1 - 0.95 * y1
        assert_allclose(filtered, [1.0, 0.05, 1.0 - 0.95 * 0.05])

    def test_notch_blends_with_previous_period(self, preprocessor):
        """Test the comb blend uses already blended earlier samples."""
        # 250 Hz / 50 Hz = 5 samples per period
        data = np.zeros(11)
        data[0] = 1.0
        filtered = preprocessor.notch(data)

        assert filtered[0] == 1.0
        assert filtered[5] == pytest.approx(0.2)
        assert filtered[10] == pytest.approx(0.04)
        assert filtered[3] == 0.0

    def test_notch_skipped_when_period_is_zero(self):
        """Test sampling rates below the notch frequency leave data unchanged."""
        preprocessor = SignalPreprocessor(sampling_rate=40)
        data = np.array([1.0, -2.0, 3.0])
        assert_allclose(preprocessor.notch(data), data)

    def test_module_level_preprocess(self, sample_signal):
        """Test the convenience function matches the class."""
        assert_allclose(
            preprocess(sample_signal, sampling_rate=250),
            SignalPreprocessor(sampling_rate=250).process(sample_signal)
        )


class TestFeatureExtractor:
    """Test feature extraction functionality."""

    @pytest.fixture
    def extractor(self):
        """Create feature extractor instance."""
        return FeatureExtractor()

    @pytest.fixture
    def timestamps(self):
        """250 Hz timestamps over one second."""
        return np.arange(250) * 4.0

    def test_initialization(self, extractor):
        """Test feature extractor initialization."""
        assert extractor.window_start_ms == 300.0
        assert extractor.window_end_ms == 600.0

    def test_all_zero_signal(self, extractor, timestamps):
        """Test an all-zero signal gives zeros with latency at window start."""
        features = extractor.extract_features(np.zeros(250), timestamps)

        assert features.mean == 0.0
        assert features.peak == 0.0
        assert features.latency == 300.0

    def test_empty_signal_returns_zero_vector(self, extractor):
        """Test empty input falls back to the zero vector."""
        features = extractor.extract_features([], [])
        assert features == FeatureVector.zeros()

    def test_window_features(self, extractor, timestamps):
        """Test mean, peak and latency inside the window."""
        signal = np.zeros(250)
        signal[100] = -3.0  # 400 ms
        signal[120] = 2.0   # 480 ms
        signal[10] = 50.0   # 40 ms, outside the window

        features = extractor.extract_features(signal, timestamps)

        # Window covers indices 75..150 inclusive (76 samples)
        assert features.mean == pytest.approx(-1.0 / 76)
        assert features.peak == 3.0
        assert features.latency == 400.0

    def test_latency_is_first_peak_match(self, extractor, timestamps):
        """Test ties on |peak| resolve to the earliest sample."""
        signal = np.zeros(250)
        signal[110] = -4.0  # 440 ms
        signal[130] = 4.0   # 520 ms

        features = extractor.extract_features(signal, timestamps)
        assert features.latency == 440.0

    def test_closest_index_prefers_first_on_tie(self):
        """Test equidistant timestamps resolve to the earlier index."""
        times = np.array([0.0, 290.0, 310.0, 600.0])
        assert FeatureExtractor.closest_index(times, 300.0) == 1

    def test_mismatched_lengths_rejected(self, extractor, timestamps):
        """Test signal and timestamps must align."""
        with pytest.raises(ProcessingError):
            extractor.extract_features(np.zeros(10), timestamps)

    def test_extract_batch(self, extractor, timestamps):
        """Test batch extraction over parallel lists."""
        signals = [np.zeros(250), np.ones(250)]
        features = extractor.extract_batch(signals, [timestamps, timestamps])

        assert len(features) == 2
        assert features[0].peak == 0.0
        assert features[1].mean == pytest.approx(1.0)

    def test_feature_vector_is_immutable(self):
        """Test feature vectors cannot be modified."""
        features = FeatureVector(mean=1.0, peak=2.0, latency=450.0)
        with pytest.raises(Exception):
            features.mean = 3.0
        assert features.to_dict() == {'mean': 1.0, 'peak': 2.0, 'latency': 450.0}
