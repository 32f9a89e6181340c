"""Idealization methods and their dispatch by configuration type.

Every method takes ``(trace, dt, config)`` and returns a MethodResult whose
``idealized_data`` has one 0/1 label per sample.
"""

import logging
from typing import Callable, Dict, Type

import numpy as np
from numba import jit
from numpy.typing import NDArray

from ionchannel.analysis.histograms import amplitude_histogram
from ionchannel.analysis.mdl import mdl_method
from ionchannel.analysis.optimizer import run_threshold_optimizer
from ionchannel.analysis.peaks import analyze_peaks
from ionchannel.analysis.threshold import (
    break_indices_from_breakpoints,
    extract_transitions,
    initial_state,
    sample_times,
    segment_by_threshold,
    states_from_breakpoints,
)
from ionchannel.errors import ConfigurationError, InvalidInputError
from ionchannel.models.histogram import ThresholdBand
from ionchannel.models.method import (
    ExternalClassifierConfig,
    MDLConfig,
    MeanDeviationConfig,
    MethodResult,
    NaiveConfig,
    ThresholdBandConfig,
    ThresholdBandResult,
)

logger = logging.getLogger(__name__)


def _empty_result(num_samples: int) -> MethodResult:
    return MethodResult(
        breakpoints=np.array([], dtype=np.float64),
        dwell_times_approx=np.array([], dtype=np.float64),
        idealized_data=np.zeros(num_samples, dtype=np.int8),
    )


def _check_dt(dt: float) -> None:
    if dt <= 0:
        raise ConfigurationError(f"dt must be positive, got {dt}")


def _check_trace(trace: NDArray[np.float32]) -> NDArray[np.float64]:
    trace = np.asarray(trace, dtype=np.float64)
    if len(trace) == 0:
        raise InvalidInputError("Cannot idealize an empty trace")
    return trace


def naive_method(
    trace: NDArray[np.float32],
    dt: float,
    config: NaiveConfig = NaiveConfig(),
) -> MethodResult:
    """Idealize by plain crossings of the histogram trough.

    Args:
        trace: Recorded amplitude samples.
        dt: Sample interval in seconds.
        config: Histogram bins.

    Returns:
        MethodResult. A constant trace gives an empty result in state 0.
    """
    trace = _check_trace(trace)
    times = sample_times(len(trace), dt)
    if np.min(trace) == np.max(trace):
        return _empty_result(len(trace))

    analysis = analyze_peaks(amplitude_histogram(trace, config.bins))
    centre = analysis.threshold
    band = ThresholdBand(threshold_centre=centre, x1=centre, x2=centre)

    breakpoints, dwell_times = segment_by_threshold(times, trace, band)
    labels = states_from_breakpoints(
        len(trace),
        initial_state(trace, centre),
        break_indices_from_breakpoints(breakpoints, dt),
    )
    return MethodResult(
        breakpoints=breakpoints,
        dwell_times_approx=dwell_times,
        idealized_data=labels,
    )


def threshold_band_method(
    trace: NDArray[np.float32],
    dt: float,
    config: ThresholdBandConfig = ThresholdBandConfig(),
) -> ThresholdBandResult:
    """Idealize with the optimized threshold and hysteresis band."""
    return run_threshold_optimizer(_check_trace(trace), dt, config)


def classifier_method(
    trace: NDArray[np.float32],
    dt: float,
    config: ExternalClassifierConfig,
) -> MethodResult:
    """Idealize with an externally trained per-sample classifier.

    The trace is min-max scaled to [0, 1] and passed to ``config.model.predict``
    as an (n_samples, 1) array. A 2-D prediction is read as per-class scores
    and reduced with argmax; a 1-D prediction is taken as class labels.

    Args:
        trace: Recorded amplitude samples.
        dt: Sample interval in seconds.
        config: Holds the classifier.

    Returns:
        MethodResult with a breakpoint wherever the predicted class changes.

    Raises:
        InvalidInputError: If the prediction does not have one entry per sample.
    """
    trace = _check_trace(trace)
    _check_dt(dt)

    lo = np.min(trace)
    span = np.max(trace) - lo
    scaled = (trace - lo) / span if span > 0 else np.zeros_like(trace)

    prediction = np.asarray(config.model.predict(scaled.reshape(-1, 1)))
    if prediction.ndim == 2:
        labels = np.argmax(prediction, axis=1)
    else:
        labels = prediction.reshape(-1)
    if len(labels) != len(trace):
        raise InvalidInputError(
            f"Classifier returned {len(labels)} predictions for {len(trace)} samples"
        )

    breakpoints, dwell_times = extract_transitions(labels, dt)
    return MethodResult(
        breakpoints=breakpoints,
        dwell_times_approx=dwell_times,
        idealized_data=labels.astype(np.int8),
    )


@jit(nopython=True, cache=True)
def _mean_deviation_kernel(data: np.ndarray, delta: float, lam: float) -> np.ndarray:
    """JIT-compiled running-mean deviation labelling.

    The running mean is updated only while the signal stays close to it. The
    state flips whenever the signal moves away from the mean by more than
    ``lam`` (after subtracting ``delta``) and again when it comes back.
    """
    n = len(data)
    labels = np.empty(n, dtype=np.int8)
    total = data[0]
    count = 1
    mean = data[0]
    state = 0 if data[0] < np.mean(data) else 1
    labels[0] = state
    away = False

    for t in range(1, n):
        if not away:
            total += data[t]
            count += 1
            mean = total / count

        if abs(data[t] - mean) - delta > lam:
            if not away:
                state = 1 - state
            away = True
        else:
            if away:
                state = 1 - state
            away = False
        labels[t] = state

    return labels


def mean_deviation_method(
    trace: NDArray[np.float32],
    dt: float,
    config: MeanDeviationConfig = MeanDeviationConfig(),
) -> MethodResult:
    """Idealize by deviation from the running mean of the baseline.

    Args:
        trace: Recorded amplitude samples.
        dt: Sample interval in seconds.
        config: Deviation offset and threshold.

    Returns:
        MethodResult with a breakpoint at every state flip.
    """
    trace = _check_trace(trace)
    _check_dt(dt)

    labels = _mean_deviation_kernel(trace, float(config.delta), float(config.lam))
    breakpoints, dwell_times = extract_transitions(labels, dt)
    return MethodResult(
        breakpoints=breakpoints,
        dwell_times_approx=dwell_times,
        idealized_data=labels,
    )


METHODS: Dict[Type, Callable[..., MethodResult]] = {
    NaiveConfig: naive_method,
    ThresholdBandConfig: threshold_band_method,
    MDLConfig: mdl_method,
    ExternalClassifierConfig: classifier_method,
    MeanDeviationConfig: mean_deviation_method,
}


def run_method(trace: NDArray[np.float32], config, dt: float) -> MethodResult:
    """Run the idealization method selected by the configuration type.

    Args:
        trace: Recorded amplitude samples.
        config: One of the method configuration dataclasses.
        dt: Sample interval in seconds.

    Returns:
        The method's result.

    Raises:
        ConfigurationError: If the configuration type is unknown or dt is not positive.
    """
    _check_dt(dt)

    method = METHODS.get(type(config))
    if method is None:
        raise ConfigurationError(f"Unknown method configuration: {type(config).__name__}")

    logger.debug(f"Running {method.__name__} on {len(trace)} samples")
    return method(trace, dt, config)
