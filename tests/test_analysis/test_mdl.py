"""Tests for MDL change point segmentation."""

import numpy as np
import pytest

from conftest import make_two_state_trace
from ionchannel.analysis.evaluation import accuracy
from ionchannel.analysis.mdl import (
    DOUBLE,
    SINGLE,
    accept_breakpoints,
    detect_breaks,
    detect_double_breakpoint,
    detect_single_breakpoint,
    filter_by_jump,
    find_breakpoints,
    mdl_method,
    mdl_score,
)
from ionchannel.errors import ConfigurationError, InsufficientDataError
from ionchannel.models.method import MDLConfig

TRUE_BREAKS = [400, 800, 1200, 1600]


@pytest.fixture
def five_segments():
    """Segments at 0, 1, 0, 1, 0 of 400 samples each with noise 0.2."""
    return make_two_state_trace([400] * 5, noise_std=0.2, seed=7)


class TestMdlScore:
    """Tests for mdl_score and accept_breakpoints."""

    def test_no_breakpoints(self):
        data = np.array([0.0, 1.0, 0.0, 1.0])
        expected = 0.5 * np.log(4) + 2 * np.log(0.25)
        assert mdl_score(data, np.array([], dtype=np.int64)) == pytest.approx(expected)

    def test_with_breakpoint(self):
        data = np.array([0.0, 1.0, 0.0, 1.0])
        expected = np.log(4) + 0.5 * (2 * np.log(2)) + 2 * np.log(0.25)
        assert mdl_score(data, np.array([2])) == pytest.approx(expected)

    def test_zero_residual(self):
        """A segment explained exactly has infinite description length."""
        assert np.isinf(mdl_score(np.full(10, 3.0), np.array([], dtype=np.int64)))

    def test_empty_candidate_rejected(self):
        assert not accept_breakpoints(np.arange(10.0), np.array([], dtype=np.int64))

    def test_exact_split_accepted(self):
        """A split leaving no residual is accepted."""
        data = np.array([0.0] * 20 + [1.0] * 20)
        assert accept_breakpoints(data, np.array([20]))

    def test_pure_noise_split_rejected(self, rng):
        data = rng.normal(0.0, 1.0, 400)
        assert not accept_breakpoints(data, np.array([200]))


class TestDetectBreakpoints:
    """Tests for single and double breakpoint search."""

    def test_single_step(self):
        data = np.array([0.0] * 300 + [5.0] * 300)
        assert list(detect_single_breakpoint(data, 50)) == [300]

    def test_single_respects_min_seg(self):
        """A step closer to the edge than min_seg is placed at min_seg."""
        data = np.array([0.0] * 10 + [1.0] * 190)
        assert list(detect_single_breakpoint(data, 50)) == [50]

    def test_single_too_short(self):
        assert len(detect_single_breakpoint(np.arange(99.0), 50)) == 0

    def test_single_exact_minimum(self):
        """Exactly 2 * min_seg samples allow only the middle split."""
        assert list(detect_single_breakpoint(np.arange(100.0), 50)) == [50]

    def test_double_pulse(self):
        data = np.array([0.0] * 100 + [5.0] * 100 + [0.0] * 100)
        assert list(detect_double_breakpoint(data, 50)) == [100, 200]

    def test_double_segment_lengths(self, rng):
        """All three parts are at least min_seg long."""
        i, j = detect_double_breakpoint(rng.normal(size=200), 40)

        assert i >= 40
        assert j - i >= 40
        assert 200 - j >= 40

    def test_double_too_short(self):
        assert len(detect_double_breakpoint(np.arange(149.0), 50)) == 0

    def test_detect_breaks_single(self):
        data = np.array([0.0] * 300 + [5.0] * 300)
        assert list(detect_breaks(data, SINGLE, 50)) == [300]

    def test_detect_breaks_double(self):
        data = np.array([0.0] * 100 + [5.0] * 100 + [0.0] * 100)
        assert list(detect_breaks(data, DOUBLE, 50)) == [100, 200]

    def test_unknown_variant(self):
        with pytest.raises(ConfigurationError):
            detect_breaks(np.arange(10.0), "triple", 2)


class TestFindBreakpoints:
    """Tests for find_breakpoints function."""

    def test_recovers_all_steps(self, five_segments):
        trace, _ = five_segments
        found = find_breakpoints(trace, 100)

        for true_break in TRUE_BREAKS:
            assert np.min(np.abs(found - true_break)) <= 5

    def test_sorted(self, five_segments):
        trace, _ = five_segments
        found = find_breakpoints(trace, 100)
        assert np.all(np.diff(found) > 0)

    def test_no_steps_in_short_trace(self):
        assert len(find_breakpoints(np.arange(10.0), 100)) == 0


class TestFilterByJump:
    """Tests for filter_by_jump function."""

    def test_drops_small_jumps(self):
        data = np.array([0.0] * 10 + [0.1] * 10 + [5.0] * 10)
        kept, steps = filter_by_jump(data, np.array([10, 20]), 0.8)

        assert list(kept) == [20]
        assert np.allclose(steps, [0.0, 0.1, 5.0])

    def test_short_segment_not_trimmed(self):
        """Segments too short to trim use all their samples."""
        data = np.array([0.0, 0.0, 5.0, 5.0, 5.0, 5.0])
        kept, steps = filter_by_jump(data, np.array([2]), 0.8)

        assert list(kept) == [2]
        assert np.allclose(steps, [0.0, 5.0])

    def test_no_breakpoints(self):
        kept, steps = filter_by_jump(np.ones(10), np.array([], dtype=np.int64))

        assert len(kept) == 0
        assert np.allclose(steps, [1.0])


class TestMdlMethod:
    """Tests for mdl_method function."""

    def test_noiseless_step(self):
        trace = np.array([0.0] * 300 + [5.0] * 300, dtype=np.float32)
        result = mdl_method(trace, 1e-4, MDLConfig(min_seg=300))

        assert list(result.break_indices) == [300]
        assert result.breakpoints[0] == pytest.approx(300 * 1e-4)
        assert list(result.idealized_data) == [0] * 300 + [1] * 300

    def test_noisy_segments(self, five_segments):
        trace, labels = five_segments
        result = mdl_method(trace, 1e-4, MDLConfig(min_seg=100))

        assert len(result.break_indices) == 4
        for found, true_break in zip(result.break_indices, TRUE_BREAKS):
            assert abs(found - true_break) <= 5
        assert accuracy(labels, result.idealized_data) > 0.99

    def test_breakpoint_dwell_consistency(self, five_segments):
        trace, _ = five_segments
        result = mdl_method(trace, 1e-4, MDLConfig(min_seg=100))
        assert np.allclose(np.cumsum(result.dwell_times_approx), result.breakpoints)

    def test_short_trace(self):
        with pytest.raises(InsufficientDataError):
            mdl_method(np.zeros(599, dtype=np.float32), 1e-4, MDLConfig(min_seg=300))

    def test_constant_trace(self):
        result = mdl_method(np.ones(1000, dtype=np.float32), 1e-4, MDLConfig(min_seg=100))

        assert len(result.breakpoints) == 0
        assert np.all(result.idealized_data == 0)
        assert list(result.step_values) == [1.0]

    def test_invalid_dt(self):
        with pytest.raises(ConfigurationError):
            mdl_method(np.zeros(1000, dtype=np.float32), 0.0, MDLConfig(min_seg=100))
