"""Bimodal peak analysis of amplitude histograms.

Locates the closed- and open-state modes of a probability histogram and the
trough between them, and derives the hysteresis band used by the
threshold-crossing segmenter.
"""

import logging
from typing import Optional

import numpy as np

from ionchannel.errors import ConfigurationError, InvalidInputError
from ionchannel.models.histogram import Histogram, PeakAnalysis, ThresholdBand

logger = logging.getLogger(__name__)


def _trough(weights: np.ndarray, left: int, right: int) -> int:
    """Index of the minimum weight between two peak indices."""
    if right - left > 1:
        return left + 1 + int(np.argmin(weights[left + 1 : right]))
    return left + int(np.argmin(weights[left : right + 1]))


def analyze_peaks(prob_histogram: Histogram) -> PeakAnalysis:
    """Find the two dominant modes of a histogram and the trough between them.

    The global maximum is taken as the first peak. If it lies in the left half
    of the bin range the second peak is the maximum beyond the midpoint between
    it and the last bin; otherwise it is the maximum in the left half of the
    range up to the first peak. Peaks are then ordered so that ``pmax1_index``
    is the left one.

    A unimodal histogram yields a second peak at the boundary extremum of the
    searched half.

    Args:
        prob_histogram: Histogram to analyse, usually probability-normalized.

    Returns:
        PeakAnalysis with canonical left/right peak order.

    Raises:
        InvalidInputError: If the histogram has fewer than two bins.
    """
    weights = prob_histogram.weights
    edges = prob_histogram.edges
    n = len(weights)
    if n < 2:
        raise InvalidInputError(f"Peak analysis needs at least 2 bins, got {n}")

    first = int(np.argmax(weights))

    if first + 1 < round((n + 1) / 2):
        # Dominant peak on the left, search the right part
        midpoint = min(max((first + n + 2) // 2, first + 1), n - 1)
        second = midpoint + int(np.argmax(weights[midpoint:]))
        left, right = first, second
    else:
        midpoint = max((first + 1) // 2, 1)
        second = int(np.argmax(weights[:midpoint]))
        left, right = second, first

    trough = _trough(weights, left, right)

    return PeakAnalysis(
        edges=edges,
        weights=weights,
        pmax1=float(weights[left]),
        pmax1_index=left,
        pmax2=float(weights[right]),
        pmax2_index=right,
        midpoint=midpoint,
        pmin=float(weights[trough]),
        pmin_index=trough,
    )


def threshold_band(
    analysis: PeakAnalysis,
    epsilon: float,
    trough_index: Optional[int] = None,
) -> ThresholdBand:
    """Derive a hysteresis band around the trough of a peak analysis.

    A line is drawn from each peak to the trough. The band edge on each side
    is pulled toward its peak by ``2 * epsilon`` times the peak-trough
    distance, weighted by the slope of the opposite line, so the steeper side
    receives the narrower half of the band. If either slope is non-finite or
    both are zero the band is symmetric, ``epsilon`` times the distance to
    each peak.

    Args:
        analysis: Peak analysis of the amplitude histogram.
        epsilon: Relative band width in [0, 1]. Zero gives a plain threshold.
        trough_index: Bin to use as the trough instead of ``analysis.pmin_index``.

    Returns:
        ThresholdBand centred on the trough amplitude.

    Raises:
        ConfigurationError: If epsilon is outside [0, 1].
        InvalidInputError: If trough_index lies outside the peak range.
    """
    if not 0 <= epsilon <= 1:
        raise ConfigurationError(f"epsilon must be in [0, 1], got {epsilon}")

    if trough_index is not None:
        analysis = analysis.with_trough(trough_index)

    centre = analysis.threshold
    left_peak = analysis.amplitude(analysis.pmax1_index)
    right_peak = analysis.amplitude(analysis.pmax2_index)
    d1 = centre - left_peak
    d2 = right_peak - centre

    with np.errstate(divide="ignore", invalid="ignore"):
        a1 = np.float64(analysis.pmin - analysis.pmax1) / np.float64(d1)
        a2 = np.float64(analysis.pmax2 - analysis.pmin) / np.float64(d2)
    slope_sum = abs(a1) + abs(a2)

    if not (np.isfinite(a1) and np.isfinite(a2)) or slope_sum == 0:
        x1 = centre - epsilon * d1
        x2 = centre + epsilon * d2
    else:
        w1 = abs(a2) / slope_sum
        w2 = abs(a1) / slope_sum
        x1 = max(centre - 2 * epsilon * w1 * d1, left_peak)
        x2 = min(centre + 2 * epsilon * w2 * d2, right_peak)

    return ThresholdBand.from_bounds(centre, x1, x2)
