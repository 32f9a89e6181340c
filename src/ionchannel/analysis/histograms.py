"""Histogram utilities for amplitude and dwell-time distributions.

This module provides functions for creating histograms from trace samples:
- build_histogram: Bin samples over their range with a fixed or optimal bin count
- amplitude_histogram: Probability histogram ready for peak analysis
- to_probability: Normalize histogram weights to probabilities
- freedman_diaconis_bins: Optimal bin count for a sample set
"""

from typing import Optional

import numpy as np
from numpy.typing import NDArray

from ionchannel.errors import InvalidInputError
from ionchannel.models.histogram import Histogram

_MIN_PEAK_BINS = 3


def freedman_diaconis_bins(samples: NDArray[np.float64]) -> int:
    """Compute the Freedman-Diaconis bin count for a sample set.

    The bin width is ``2 * IQR / n^(1/3)``. Sample sets whose interquartile
    range is zero (more than half of the samples identical) fall back to
    Sturges' rule.

    Args:
        samples: Non-empty array of samples with a non-zero range.

    Returns:
        Number of bins, at least 1.
    """
    n = len(samples)
    q75, q25 = np.percentile(samples, [75, 25])
    iqr = q75 - q25
    data_range = float(np.max(samples) - np.min(samples))

    if iqr <= 0:
        return max(1, int(np.ceil(np.log2(n) + 1)))

    bin_width = 2 * iqr / np.cbrt(n)
    return max(1, int(round(data_range / bin_width)))


def build_histogram(
    samples: NDArray[np.float64],
    bins: Optional[int] = None,
) -> Histogram:
    """Build a histogram with uniform bins spanning the sample range.

    Args:
        samples: Amplitude or dwell-time samples.
        bins: Number of bins. None, or a value <= 0, selects the
            Freedman-Diaconis rule.

    Returns:
        Histogram with ``bins + 1`` edges over [min, max] and per-bin counts.
        The last bin is closed so the maximum sample is counted.

    Raises:
        InvalidInputError: If samples is empty or all samples are equal.

    Example:
        >>> hist = build_histogram(np.array([0.0, 0.1, 0.9, 1.0]), bins=2)
        >>> hist.weights
        array([2., 2.])
    """
    samples = np.asarray(samples, dtype=np.float64)
    if len(samples) == 0:
        raise InvalidInputError("Cannot build a histogram from an empty sample set")

    lo = float(np.min(samples))
    hi = float(np.max(samples))
    if lo == hi:
        raise InvalidInputError(f"Cannot build a histogram of zero-range data (all samples {lo})")

    if bins is None or bins <= 0:
        bins = freedman_diaconis_bins(samples)

    edges = np.linspace(lo, hi, int(bins) + 1)
    counts, _ = np.histogram(samples, bins=edges)

    return Histogram(edges=edges, weights=counts.astype(np.float64))


def amplitude_histogram(
    samples: NDArray[np.float64],
    bins: Optional[int] = None,
) -> Histogram:
    """Probability histogram of trace amplitudes for peak analysis.

    An automatically chosen bin count is raised to at least 3, so that a
    trough bin can lie between the two modes. An explicit bin count is used
    as given.

    Args:
        samples: Trace amplitudes.
        bins: Number of bins. None, or a value <= 0, selects the
            Freedman-Diaconis rule.

    Returns:
        Histogram whose weights sum to one.
    """
    if bins is None or bins <= 0:
        samples = np.asarray(samples, dtype=np.float64)
        if len(samples) > 0 and np.min(samples) != np.max(samples):
            bins = max(_MIN_PEAK_BINS, freedman_diaconis_bins(samples))
    return to_probability(build_histogram(samples, bins))


def to_probability(histogram: Histogram) -> Histogram:
    """Rescale histogram weights so they sum to one.

    Args:
        histogram: Histogram of counts.

    Returns:
        New Histogram with the same edges and probability weights.

    Raises:
        InvalidInputError: If the total weight is zero.
    """
    total = histogram.total
    if total <= 0:
        raise InvalidInputError("Cannot normalize a histogram with zero total weight")

    return Histogram(edges=histogram.edges.copy(), weights=histogram.weights / total)
