"""Tests for residual noise analysis and dwell-time MSE."""

import numpy as np
import pytest

from ionchannel.analysis.noise import (
    compute_noise,
    fit_mse,
    fit_normal_to_noise,
    mean_squared_error,
    noise_normality_score,
)
from ionchannel.errors import InvalidInputError
from ionchannel.models.histogram import Histogram
from ionchannel.models.noise import Noise


def _noise(residuals) -> Noise:
    residuals = np.asarray(residuals, dtype=np.float64)
    return Noise(residuals=residuals, mean=float(residuals.mean()), std=float(residuals.std(ddof=1)))


class TestComputeNoise:
    """Tests for compute_noise function."""

    def test_residual_statistics(self):
        noise = compute_noise(np.array([1.0, 2.0, 3.0]), np.zeros(3))

        assert list(noise.residuals) == [1.0, 2.0, 3.0]
        assert noise.mean == pytest.approx(2.0)
        assert noise.std == pytest.approx(1.0)
        assert noise.num_samples == 3

    def test_single_sample(self):
        """A single residual has zero deviation."""
        noise = compute_noise(np.array([1.5]), np.array([1.0]))
        assert noise.std == 0.0

    def test_length_mismatch(self):
        with pytest.raises(InvalidInputError):
            compute_noise(np.zeros(5), np.zeros(4))

    def test_empty(self):
        with pytest.raises(InvalidInputError):
            compute_noise(np.array([]), np.array([]))


class TestNoiseNormalityScore:
    """Tests for noise_normality_score function."""

    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_gaussian_noise_scores_high(self, seed):
        """Pure Gaussian noise gives a mean p-value well above 0.3."""
        rng = np.random.default_rng(seed)
        score = noise_normality_score(_noise(rng.normal(0.0, 1.0, 5000)), batch_size=50)
        assert score > 0.3

    def test_bimodal_residuals_score_low(self, rng):
        """Residuals left by a missed transition are far from Gaussian."""
        residuals = rng.choice([-1.0, 1.0], size=5000) + rng.normal(0.0, 0.1, 5000)
        assert noise_normality_score(_noise(residuals)) < 0.05

    def test_no_complete_batch(self, rng):
        """Fewer samples than one batch gives NaN."""
        assert np.isnan(noise_normality_score(_noise(rng.normal(size=49)), batch_size=50))

    def test_remainder_discarded(self, rng):
        """Samples after the last complete batch do not affect the score."""
        residuals = rng.normal(size=120)
        full = noise_normality_score(_noise(residuals), batch_size=50)
        trimmed = noise_normality_score(_noise(residuals[:100]), batch_size=50)
        assert full == pytest.approx(trimmed)

    def test_invalid_batch_size(self, rng):
        with pytest.raises(InvalidInputError):
            noise_normality_score(_noise(rng.normal(size=100)), batch_size=2)


class TestMeanSquaredError:
    """Tests for mean_squared_error function."""

    def test_identical_distributions(self, rng):
        dwells = rng.exponential(0.01, size=200)
        mse, true_hist, approx_hist = mean_squared_error(dwells, dwells.copy(), bins=20)

        assert mse == 0.0
        assert true_hist.num_bins == 20

    def test_shared_edges(self, rng):
        """Both histograms are built on the same bins."""
        _, true_hist, approx_hist = mean_squared_error(
            rng.exponential(0.01, 100), rng.exponential(0.02, 80), bins=30
        )
        assert np.array_equal(true_hist.edges, approx_hist.edges)
        assert true_hist.total == 100
        assert approx_hist.total == 80

    def test_known_value(self):
        """Counts [2, 1] against [1, 2] give an MSE of 1."""
        mse, true_hist, approx_hist = mean_squared_error(
            np.array([1.0, 1.0, 2.0]), np.array([1.0, 2.0, 2.0]), bins=2
        )
        assert list(true_hist.weights) == [2.0, 1.0]
        assert list(approx_hist.weights) == [1.0, 2.0]
        assert mse == pytest.approx(1.0)

    def test_no_approximate_dwells(self):
        """A method that found nothing is compared against empty counts."""
        mse, _, approx_hist = mean_squared_error(np.array([0.1, 0.2, 0.3, 0.4]), np.array([]), bins=4)

        assert approx_hist.total == 0
        assert mse == pytest.approx(1.0)

    def test_single_valued_dwells(self):
        """Identical dwell times still give a valid histogram."""
        mse, true_hist, _ = mean_squared_error(np.array([0.5, 0.5]), np.array([0.5]), bins=100)

        assert true_hist.total == 2
        assert mse == pytest.approx(0.01)

    def test_empty_ground_truth(self):
        with pytest.raises(InvalidInputError):
            mean_squared_error(np.array([]), np.array([0.1]))


class TestFitNormal:
    """Tests for fit_normal_to_noise and fit_mse."""

    def test_density_histogram(self, rng):
        """The noise histogram is a density and the fit is evaluated at every edge."""
        density, fitted = fit_normal_to_noise(_noise(rng.normal(0.0, 1.0, 10000)), bins=100)

        assert np.sum(density.weights * density.bin_width) == pytest.approx(1.0)
        assert len(fitted) == len(density.edges)

    def test_gaussian_fit_is_close(self, rng):
        """Gaussian residuals are close to their fitted normal density."""
        density, fitted = fit_normal_to_noise(_noise(rng.normal(0.0, 1.0, 10000)), bins=100)
        assert fit_mse(density, fitted) < 0.005

    def test_fit_mse_known_value(self):
        hist = Histogram(edges=np.array([0.0, 1.0, 2.0]), weights=np.array([1.0, 2.0]))
        assert fit_mse(hist, np.array([0.0, 2.0, 9.0])) == pytest.approx(0.5)

    def test_fit_mse_length_mismatch(self):
        hist = Histogram(edges=np.array([0.0, 1.0, 2.0]), weights=np.array([1.0, 2.0]))
        with pytest.raises(InvalidInputError):
            fit_mse(hist, np.array([0.0, 2.0]))
