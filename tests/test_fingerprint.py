"""
Unit tests for fingerprint construction.
"""

import math

import numpy as np
import pytest

from dashfp import (
    NetworkConfig,
    NetworkFingerprintBuilder,
    NoAlignableUnitsError,
    build_network_fingerprint,
    fingerprint_units,
)
from dashfp.fingerprint import BuilderState, check_fingerprint, normalize, relative_change


def sigmoid(x: float) -> float:
    """Reference logistic function."""
    return 1.0 / (1.0 + math.exp(-x))


class TestNormalization:
    """Test the logistic transform and relative change."""

    def test_zero_delta_is_half(self):
        """Test that an unchanged magnitude maps to 0.5."""
        assert normalize(0.0) == 0.5

    def test_values_bounded_for_finite_inputs(self):
        """Test that any finite delta maps into [0, 1]."""
        deltas = np.array([-1e6, -50.0, -1.0, -1e-9, 0.0, 1e-9, 1.0, 50.0, 1e6])
        values = normalize(deltas)

        assert np.all(values >= 0.0)
        assert np.all(values <= 1.0)
        assert np.all(np.diff(values) >= 0.0)

    def test_no_overflow_warning(self):
        """Test that large negative deltas do not emit overflow warnings."""
        with np.errstate(all="raise"):
            assert normalize(-1e6) == 0.0

    def test_relative_change(self):
        """Test relative change of positive magnitudes."""
        assert relative_change(200, 100) == pytest.approx(1.0)
        assert relative_change(50, 100) == pytest.approx(-0.5)

    def test_zero_previous_magnitude(self):
        """Test that division by zero propagates as non-finite values."""
        growth = relative_change(10, 0)
        flat = relative_change(0, 0)

        assert math.isinf(growth) and growth > 0
        assert math.isnan(flat)
        assert normalize(growth) == 1.0
        assert math.isnan(normalize(flat))


class TestFingerprintUnits:
    """Test per-unit aggregation (media segment path)."""

    def test_length_is_units_minus_one(self):
        """Test that the first delta is omitted."""
        fp = fingerprint_units([100, 200, 100, 100])

        assert len(fp) == 3
        np.testing.assert_allclose(fp, [sigmoid(1.0), sigmoid(-0.5), 0.5])

    def test_two_units(self):
        """Test the smallest valid input."""
        fp = fingerprint_units([300, 300])
        np.testing.assert_allclose(fp, [0.5])

    def test_single_unit_rejected(self):
        """Test that fewer than two units cannot form a delta."""
        with pytest.raises(NoAlignableUnitsError):
            fingerprint_units([100])

    def test_no_units_rejected(self):
        """Test that an empty unit list is an error."""
        with pytest.raises(NoAlignableUnitsError):
            fingerprint_units([])

    def test_fingerprint_is_read_only(self):
        """Test that fingerprints cannot be mutated after construction."""
        fp = fingerprint_units([1, 2, 3])
        with pytest.raises(ValueError):
            fp[0] = 0.0


class TestCheckFingerprint:
    """Test fingerprint coercion."""

    def test_coerces_lists(self):
        """Test that lists become float64 arrays."""
        fp = check_fingerprint([1, 0.5])
        assert fp.dtype == np.float64

    def test_rejects_empty(self):
        """Test that empty fingerprints are rejected."""
        with pytest.raises(ValueError, match="empty"):
            check_fingerprint([])

    def test_rejects_matrix(self):
        """Test that multi-dimensional input is rejected."""
        with pytest.raises(ValueError, match="1-D"):
            check_fingerprint([[0.1, 0.2], [0.3, 0.4]])


class TestNetworkFingerprintBuilder:
    """Test segment-windowed aggregation (network path)."""

    def test_scenario_growth_trace(self):
        """Test three segments of one tick each over a growing trace."""
        cfg = NetworkConfig(num_samples=3, segment_length=1, epsilon=0)
        fp = build_network_fingerprint([0, 0, 100, 100, 200, 200], cfg)

        assert len(fp) == 3
        assert fp[0] == 0.5
        assert fp[1] == 0.5
        assert fp[2] == pytest.approx(sigmoid(1.0))
        assert fp[2] == pytest.approx(0.731, abs=1e-3)

    def test_state_transitions(self):
        """Test IDLE -> ACCUMULATING -> DONE."""
        builder = NetworkFingerprintBuilder(NetworkConfig(num_samples=1, segment_length=1, epsilon=0))
        assert builder.state is BuilderState.IDLE

        # Zero bytes keep the builder idle
        assert builder.feed(0) is False
        assert builder.state is BuilderState.IDLE

        assert builder.feed(500) is False
        assert builder.state is BuilderState.ACCUMULATING

        assert builder.feed(500) is True
        assert builder.state is BuilderState.DONE
        assert builder.progress == 1.0
        np.testing.assert_allclose(builder.fingerprint(), [0.5])

    def test_feed_after_done_rejected(self):
        """Test that a finished builder accepts no more ticks."""
        builder = NetworkFingerprintBuilder(NetworkConfig(num_samples=1, segment_length=1, epsilon=0))
        builder.feed(10)
        builder.feed(10)

        with pytest.raises(RuntimeError):
            builder.feed(10)

    def test_incomplete_fingerprint_rejected(self):
        """Test that the fingerprint is unavailable before all segments close."""
        builder = NetworkFingerprintBuilder(NetworkConfig(num_samples=2, segment_length=1, epsilon=0))
        builder.feed(10)

        with pytest.raises(RuntimeError, match="incomplete"):
            builder.fingerprint()

    def test_sub_threshold_ticks_ignored(self):
        """Test that ticks below epsilon neither add bytes nor advance the timer."""
        cfg = NetworkConfig(num_samples=2, segment_length=2, epsilon=50)
        builder = NetworkFingerprintBuilder(cfg)

        # Segment 0: 100 + 100 (the two 10-byte ticks do not count)
        for rate in (100, 10, 10, 100):
            assert builder.feed(rate) is False
        assert builder.segments == 0

        # Closes segment 0, then segment 1 collects 100 + 300
        assert builder.feed(100) is False
        assert builder.segments == 1
        assert builder.feed(300) is False
        assert builder.feed(7) is False

        # Closes segment 1: (400 - 200) / 200 = 1.0
        assert builder.feed(50) is True

        np.testing.assert_allclose(builder.fingerprint(), [0.5, sigmoid(1.0)])

    def test_zero_previous_segment_propagates_nan(self):
        """Test that an empty previous segment yields a non-finite value instead of failing."""
        cfg = NetworkConfig(num_samples=3, segment_length=1, epsilon=0)
        fp = build_network_fingerprint([10, 0, 0, 0], cfg)

        assert fp[0] == 0.5
        assert fp[1] == pytest.approx(sigmoid(-1.0))
        assert math.isnan(fp[2])

    def test_negative_rate_rejected(self):
        """Test that negative deltas are rejected."""
        builder = NetworkFingerprintBuilder(NetworkConfig())
        with pytest.raises(ValueError, match="non-negative"):
            builder.feed(-1)

    def test_trace_too_short(self):
        """Test that running out of samples is an error."""
        cfg = NetworkConfig(num_samples=5, segment_length=1, epsilon=0)
        with pytest.raises(ValueError, match="ended after"):
            build_network_fingerprint([100, 100, 100], cfg)

    def test_stops_consuming_when_done(self):
        """Test that construction terminates at the target segment count."""
        cfg = NetworkConfig(num_samples=2, segment_length=1, epsilon=0)
        consumed = []

        def rates():
            for rate in [100] * 100:
                consumed.append(rate)
                yield rate

        fp = build_network_fingerprint(rates(), cfg)
        assert len(fp) == 2
        assert len(consumed) == 3


class TestNetworkConfig:
    """Test network configuration validation."""

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"num_samples": 0},
            {"segment_length": 0},
            {"epsilon": -1},
        ],
    )
    def test_invalid_config_rejected(self, kwargs):
        """Test that bad parameters are rejected before any sample is consumed."""
        with pytest.raises(ValueError):
            NetworkFingerprintBuilder(NetworkConfig(**kwargs))

    def test_defaults_are_valid(self):
        """Test the default capture settings."""
        cfg = NetworkConfig()
        cfg.validate()
        assert (cfg.num_samples, cfg.segment_length, cfg.epsilon) == (40, 4, 100)


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
