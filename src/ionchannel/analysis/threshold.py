"""Threshold-crossing segmentation with a hysteresis band.

Converts a uniformly sampled trace into transition times (breakpoints) and
dwell times, and converts breakpoints back into per-sample state labels.
"""

from typing import Tuple

import numpy as np
from numba import jit
from numpy.typing import NDArray

from ionchannel.errors import ConfigurationError, InvalidInputError
from ionchannel.models.histogram import ThresholdBand


def sample_times(num_samples: int, dt: float) -> NDArray[np.float64]:
    """Timestamps of a uniformly sampled trace, sample i at ``i * dt``.

    Raises:
        ConfigurationError: If dt is not positive.
    """
    if dt <= 0:
        raise ConfigurationError(f"dt must be positive, got {dt}")
    return np.arange(num_samples, dtype=np.float64) * dt


def initial_state(values: NDArray[np.float64], centre: float) -> int:
    """State of the first sample: 0 below the threshold centre, 1 otherwise."""
    if len(values) == 0:
        raise InvalidInputError("Cannot determine the initial state of an empty trace")
    return 0 if values[0] < centre else 1


@jit(nopython=True, cache=True)
def _crossing_kernel(
    times: np.ndarray,
    values: np.ndarray,
    centre: float,
    x1: float,
    x2: float,
) -> np.ndarray:
    """JIT-compiled hysteresis crossing scan.

    Samples strictly inside (x1, x2) are collected as a contiguous run. When
    the signal leaves the band on the side opposite the current state, the
    median time of the run is a breakpoint. Without a run, a breakpoint is
    recorded at the current sample when it and its predecessor straddle the
    band in the direction of the current state. A predecessor lying exactly
    on a band bound counts as outside the band, so a sample sitting on a
    zero-width threshold does not hide the crossing.

    Args:
        times: Sample timestamps.
        values: Sample amplitudes.
        centre: Threshold centre, decides the initial state.
        x1: Lower band bound.
        x2: Upper band bound.

    Returns:
        Array of breakpoint times.
    """
    n = len(values)
    out = np.empty(n, dtype=np.float64)
    count = 0
    if n == 0:
        return out[:0]

    state = 0 if values[0] < centre else 1
    run_start = 0
    run_len = 0

    for i in range(1, n):
        v = values[i]
        if x1 < v < x2:
            if run_len == 0:
                run_start = i
            run_len += 1
        elif run_len > 0:
            if state == 0 and v > x2:
                out[count] = np.median(times[run_start : run_start + run_len])
                count += 1
                state = 1
            elif state == 1 and v < x1:
                out[count] = np.median(times[run_start : run_start + run_len])
                count += 1
                state = 0
            run_len = 0
        else:
            prev = values[i - 1]
            if state == 0 and prev <= x1 and v > x2:
                out[count] = times[i]
                count += 1
                state = 1
            elif state == 1 and v < x1 and prev >= x2:
                out[count] = times[i]
                count += 1
                state = 0

    return out[:count]


def dwell_times_from_breakpoints(breakpoints: NDArray[np.float64]) -> NDArray[np.float64]:
    """Dwell time before each breakpoint; the first equals the first breakpoint."""
    breakpoints = np.asarray(breakpoints, dtype=np.float64)
    if len(breakpoints) == 0:
        return np.array([], dtype=np.float64)
    return np.concatenate(([breakpoints[0]], np.diff(breakpoints)))


def segment_by_threshold(
    times: NDArray[np.float64],
    values: NDArray[np.float64],
    band: ThresholdBand,
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Find state transitions by hysteresis-band threshold crossing.

    A band of zero width reduces to a plain crossing test against the
    threshold. A trace that never crosses gives empty arrays.

    Args:
        times: Sample timestamps in seconds.
        values: Sample amplitudes, same length as times.
        band: Threshold band.

    Returns:
        Tuple of (breakpoints, dwell_times), both in seconds and of equal length.

    Raises:
        InvalidInputError: If times and values differ in length.
    """
    if len(times) != len(values):
        raise InvalidInputError(
            f"times ({len(times)}) and values ({len(values)}) must have the same length"
        )

    breakpoints = _crossing_kernel(
        np.ascontiguousarray(times, dtype=np.float64),
        np.ascontiguousarray(values, dtype=np.float64),
        float(band.threshold_centre),
        float(band.x1),
        float(band.x2),
    )
    return breakpoints, dwell_times_from_breakpoints(breakpoints)


def break_indices_from_breakpoints(
    breakpoints: NDArray[np.float64], dt: float
) -> NDArray[np.int64]:
    """Sample index of each breakpoint, ``round(bp / dt)``."""
    if dt <= 0:
        raise ConfigurationError(f"dt must be positive, got {dt}")
    return np.rint(np.asarray(breakpoints, dtype=np.float64) / dt).astype(np.int64)


def states_from_breakpoints(
    num_samples: int,
    start_state: int,
    break_indices: NDArray[np.int64],
) -> NDArray[np.int8]:
    """Per-sample two-state labels that flip at each break index.

    Args:
        num_samples: Length of the labelled trace.
        start_state: State (0 or 1) of the first sample.
        break_indices: First sample index of each new state. Indices outside
            [0, num_samples] are clipped.

    Returns:
        Array of 0/1 labels of length num_samples.
    """
    flips = np.zeros(num_samples + 1, dtype=np.int64)
    indices = np.clip(np.asarray(break_indices, dtype=np.int64), 0, num_samples)
    np.add.at(flips, indices, 1)
    parity = np.cumsum(flips[:num_samples]) % 2
    return (parity ^ (start_state & 1)).astype(np.int8)


def extract_transitions(
    labels: NDArray[np.integer], dt: float
) -> Tuple[NDArray[np.float64], NDArray[np.float64]]:
    """Breakpoints and dwell times where a per-sample label sequence changes.

    Args:
        labels: Per-sample class labels, e.g. from a classifier.
        dt: Sample interval in seconds.

    Returns:
        Tuple of (breakpoints, dwell_times). The breakpoint of a change between
        sample i - 1 and sample i is ``i * dt``.
    """
    if dt <= 0:
        raise ConfigurationError(f"dt must be positive, got {dt}")
    labels = np.asarray(labels)
    change = np.flatnonzero(labels[1:] != labels[:-1]) + 1
    breakpoints = change.astype(np.float64) * dt
    return breakpoints, dwell_times_from_breakpoints(breakpoints)
