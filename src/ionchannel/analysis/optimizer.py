"""Threshold optimization by residual-noise normality.

The trough of the amplitude histogram is a noisy estimate of the best
discrimination threshold. The optimizer re-scores nearby troughs and a range
of hysteresis band widths by how Gaussian the residuals of the resulting
idealization are, and keeps the best one.

Search:
1. Initial idealization with epsilon 0 at the detected trough.
2. Step the trough one bin at a time toward the peak whose side of the
   histogram holds less mass, stopping before the peak.
3. At the best trough, sweep epsilon from ``epsilon_step`` to ``epsilon_max``.

A candidate replaces the current best only if its score is strictly higher,
so the result is never worse than the initial configuration.
"""

import logging
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from ionchannel.analysis.histograms import amplitude_histogram
from ionchannel.analysis.noise import compute_noise, noise_normality_score
from ionchannel.analysis.peaks import analyze_peaks, threshold_band
from ionchannel.analysis.threshold import (
    break_indices_from_breakpoints,
    initial_state,
    sample_times,
    segment_by_threshold,
    states_from_breakpoints,
)
from ionchannel.errors import InsufficientDataError
from ionchannel.models.histogram import PeakAnalysis, ThresholdBand
from ionchannel.models.method import ThresholdBandConfig, ThresholdBandResult
from ionchannel.models.noise import Noise

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class _Candidate:
    """One scored trough/epsilon configuration."""

    trough_index: int
    epsilon: float
    band: ThresholdBand
    breakpoints: NDArray[np.float64]
    dwell_times: NDArray[np.float64]
    labels: NDArray[np.int8]
    levels: NDArray[np.float64]
    noise: Noise
    score: float

    @property
    def rank(self) -> float:
        """Score with NaN ordered below every number."""
        return -np.inf if np.isnan(self.score) else self.score


def _evaluate(
    trace: NDArray[np.float64],
    times: NDArray[np.float64],
    dt: float,
    analysis: PeakAnalysis,
    trough_index: int,
    epsilon: float,
    batch_size: int,
) -> _Candidate:
    band = threshold_band(analysis, epsilon, trough_index)
    breakpoints, dwell_times = segment_by_threshold(times, trace, band)

    labels = states_from_breakpoints(
        len(trace),
        initial_state(trace, band.threshold_centre),
        break_indices_from_breakpoints(breakpoints, dt),
    )
    closed_level, open_level = analysis.peak_levels
    levels = np.where(labels == 1, open_level, closed_level)

    noise = compute_noise(trace, levels)
    score = noise_normality_score(noise, batch_size)

    return _Candidate(
        trough_index=trough_index,
        epsilon=epsilon,
        band=band,
        breakpoints=breakpoints,
        dwell_times=dwell_times,
        labels=labels,
        levels=levels,
        noise=noise,
        score=score,
    )


def _trough_search_range(analysis: PeakAnalysis) -> range:
    """Trough indices to try, walking toward the lighter side of the histogram."""
    weights = analysis.weights
    trough = analysis.pmin_index
    left_mass = float(np.sum(weights[analysis.pmax1_index + 1 : trough + 1]))
    right_mass = float(np.sum(weights[trough : analysis.pmax2_index]))

    if left_mass < right_mass:
        return range(trough - 1, analysis.pmax1_index, -1)
    return range(trough + 1, analysis.pmax2_index)


def _epsilon_grid(config: ThresholdBandConfig) -> NDArray[np.float64]:
    num = int(round(config.epsilon_max / config.epsilon_step))
    return np.round(np.arange(1, num + 1) * config.epsilon_step, 10)


def _flat_result(trace: NDArray[np.float64]) -> ThresholdBandResult:
    """Result for a trace with a single amplitude value."""
    level = float(trace[0])
    levels = np.full(len(trace), level, dtype=np.float64)
    return ThresholdBandResult(
        breakpoints=np.array([], dtype=np.float64),
        dwell_times_approx=np.array([], dtype=np.float64),
        idealized_data=np.zeros(len(trace), dtype=np.int8),
        idealized_levels=levels,
        noise=compute_noise(trace, levels),
        band=ThresholdBand(threshold_centre=level, x1=level, x2=level),
        trough_index=0,
        noise_score=float("nan"),
    )


def run_threshold_optimizer(
    trace: NDArray[np.float32],
    dt: float,
    config: ThresholdBandConfig = ThresholdBandConfig(),
) -> ThresholdBandResult:
    """Idealize a trace with the threshold and band width that maximize noise normality.

    Args:
        trace: Recorded amplitude samples.
        dt: Sample interval in seconds.
        config: Histogram bins, epsilon grid and noise batch size.

    Returns:
        ThresholdBandResult of the best configuration. A constant trace gives
        an empty result in state 0 with a NaN score.

    Raises:
        InsufficientDataError: If the trace is shorter than one noise batch.
        ConfigurationError: If dt is not positive.
    """
    trace = np.asarray(trace, dtype=np.float64)
    if len(trace) < config.batch_size:
        raise InsufficientDataError(
            f"Trace of {len(trace)} samples is shorter than one noise batch ({config.batch_size})"
        )
    times = sample_times(len(trace), dt)

    if np.min(trace) == np.max(trace):
        logger.debug("Constant trace, no transitions")
        return _flat_result(trace)

    analysis = analyze_peaks(amplitude_histogram(trace, config.bins))

    initial = _evaluate(
        trace, times, dt, analysis, analysis.pmin_index, 0.0, config.batch_size
    )
    best = initial
    logger.debug(f"Initial trough {initial.trough_index}: score {initial.score:.4f}")

    for index in _trough_search_range(analysis):
        candidate = _evaluate(trace, times, dt, analysis, index, 0.0, config.batch_size)
        if candidate.rank > best.rank:
            best = candidate
    logger.debug(f"Trough search: best trough {best.trough_index}, score {best.score:.4f}")

    for epsilon in _epsilon_grid(config):
        candidate = _evaluate(
            trace, times, dt, analysis, best.trough_index, float(epsilon), config.batch_size
        )
        if candidate.rank > best.rank:
            best = candidate
    logger.debug(f"Band search: best epsilon {best.epsilon:.2f}, score {best.score:.4f}")

    return ThresholdBandResult(
        breakpoints=best.breakpoints,
        dwell_times_approx=best.dwell_times,
        idealized_data=best.labels,
        idealized_levels=best.levels,
        noise=best.noise,
        band=best.band,
        trough_index=best.trough_index,
        noise_score=best.score,
    )
