"""Residual noise analysis and goodness-of-fit measures.

The residuals between a trace and its idealization should look like Gaussian
noise when the idealization explains the signal. This module scores that with
batched Shapiro-Wilk tests and compares dwell-time distributions through their
histograms.
"""

import logging
from typing import Tuple

import numpy as np
from numpy.typing import NDArray
from scipy import stats

from ionchannel.analysis.histograms import build_histogram, to_probability
from ionchannel.errors import InvalidInputError
from ionchannel.models.histogram import Histogram
from ionchannel.models.noise import Noise

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50


def compute_noise(raw: NDArray[np.float64], idealized: NDArray[np.float64]) -> Noise:
    """Compute the residuals of an idealization.

    Args:
        raw: Recorded trace.
        idealized: Idealized amplitude per sample.

    Returns:
        Noise with residuals ``raw - idealized``, their mean and sample standard
        deviation (population deviation for a single sample).

    Raises:
        InvalidInputError: If the inputs are empty or differ in length.
    """
    raw = np.asarray(raw, dtype=np.float64)
    idealized = np.asarray(idealized, dtype=np.float64)
    if len(raw) != len(idealized):
        raise InvalidInputError(
            f"raw ({len(raw)}) and idealized ({len(idealized)}) must have the same length"
        )
    if len(raw) == 0:
        raise InvalidInputError("Cannot compute noise of an empty trace")

    residuals = raw - idealized
    ddof = 1 if len(residuals) > 1 else 0
    return Noise(
        residuals=residuals,
        mean=float(np.mean(residuals)),
        std=float(np.std(residuals, ddof=ddof)),
    )


def noise_normality_score(noise: Noise, batch_size: int = DEFAULT_BATCH_SIZE) -> float:
    """Mean Shapiro-Wilk p-value over consecutive batches of residuals.

    The residuals are split into non-overlapping batches of ``batch_size``
    samples; the trailing remainder is discarded. Higher scores mean the
    residuals are closer to Gaussian.

    Args:
        noise: Residual noise of an idealization.
        batch_size: Samples per batch, at least 3.

    Returns:
        Mean p-value, or NaN if there is no complete batch.
    """
    if batch_size < 3:
        raise InvalidInputError(f"batch_size must be at least 3, got {batch_size}")

    num_batches = noise.num_samples // batch_size
    if num_batches == 0:
        logger.debug(f"No complete batch of {batch_size} in {noise.num_samples} residuals")
        return float("nan")

    batches = noise.residuals[: num_batches * batch_size].reshape(num_batches, batch_size)
    pvalues = np.empty(num_batches, dtype=np.float64)
    for i, batch in enumerate(batches):
        pvalues[i] = stats.shapiro(batch).pvalue

    return float(np.mean(pvalues))


def _shared_edges(
    true_dwells: NDArray[np.float64],
    approx_dwells: NDArray[np.float64],
    bins: int,
) -> NDArray[np.float64]:
    """Uniform edges spanning both dwell-time sets."""
    combined = np.concatenate((true_dwells, approx_dwells))
    lo = float(np.min(combined))
    hi = float(np.max(combined))
    if lo == hi:
        lo -= 0.5
        hi += 0.5
    return np.linspace(lo, hi, bins + 1)


def mean_squared_error(
    true_dwells: NDArray[np.float64],
    approx_dwells: NDArray[np.float64],
    bins: int = 100,
) -> Tuple[float, Histogram, Histogram]:
    """Mean squared difference between two dwell-time histograms.

    Both histograms use the same ``bins`` uniform bins over the combined range
    of the two sets, and are compared on raw counts.

    Args:
        true_dwells: Ground-truth dwell times.
        approx_dwells: Dwell times found by a method. May be empty.
        bins: Number of histogram bins.

    Returns:
        Tuple of (mse, true_histogram, approx_histogram).

    Raises:
        InvalidInputError: If true_dwells is empty or bins is not positive.
    """
    true_dwells = np.asarray(true_dwells, dtype=np.float64)
    approx_dwells = np.asarray(approx_dwells, dtype=np.float64)
    if len(true_dwells) == 0:
        raise InvalidInputError("Ground-truth dwell times are empty")
    if bins <= 0:
        raise InvalidInputError(f"bins must be positive, got {bins}")

    edges = _shared_edges(true_dwells, approx_dwells, bins)
    true_counts, _ = np.histogram(true_dwells, bins=edges)
    approx_counts, _ = np.histogram(approx_dwells, bins=edges)

    true_hist = Histogram(edges=edges, weights=true_counts.astype(np.float64))
    approx_hist = Histogram(edges=edges.copy(), weights=approx_counts.astype(np.float64))

    mse = float(np.mean((true_hist.weights - approx_hist.weights) ** 2))
    return mse, true_hist, approx_hist


def fit_normal_to_noise(
    noise: Noise, bins: int = 100
) -> Tuple[Histogram, NDArray[np.float64]]:
    """Fit a normal distribution to the residuals.

    Args:
        noise: Residual noise of an idealization.
        bins: Number of histogram bins.

    Returns:
        Tuple of (density_histogram, fitted_pdf) where the histogram weights
        are a probability density and fitted_pdf is the normal density with
        the residual mean and deviation evaluated at every bin edge.
    """
    hist = to_probability(build_histogram(noise.residuals, bins))
    density = Histogram(edges=hist.edges, weights=hist.weights / hist.bin_width)
    scale = noise.std if noise.std > 0 else np.finfo(np.float64).tiny
    fitted = stats.norm.pdf(density.edges, loc=noise.mean, scale=scale)
    return density, fitted


def fit_mse(histogram: Histogram, fitted: NDArray[np.float64]) -> float:
    """Mean squared error between histogram weights and fitted values at the left edges.

    Raises:
        InvalidInputError: If fitted does not have one value per edge.
    """
    if len(fitted) != len(histogram.edges):
        raise InvalidInputError(
            f"fitted ({len(fitted)}) must have one value per edge ({len(histogram.edges)})"
        )
    return float(np.mean((histogram.weights - fitted[:-1]) ** 2))
