"""Minimum-description-length change point segmentation.

The trace is split recursively. Each region is searched for the single split
that minimizes the within-segment squared error, or for the best pair of
splits if no single split is accepted. A candidate is kept only if it lowers
the description length

    p * log(N) + 0.5 * sum(log(n_i)) + (N / 2) * log(RSS / N)

where p is the number of added breakpoints, n_i the segment lengths and RSS
the total residual sum of squares about the segment means. Breakpoints whose
neighbouring segment means differ by less than a jump threshold are then
discarded.

Indices are 0-based: a breakpoint k splits ``data[:k]`` from ``data[k:]``.
"""

import logging
from typing import Tuple

import numpy as np
from numba import jit
from numpy.typing import NDArray

from ionchannel.analysis.histograms import amplitude_histogram
from ionchannel.analysis.peaks import analyze_peaks
from ionchannel.analysis.threshold import (
    dwell_times_from_breakpoints,
    initial_state,
    states_from_breakpoints,
)
from ionchannel.errors import ConfigurationError, InsufficientDataError
from ionchannel.models.method import MDLConfig, MDLResult

logger = logging.getLogger(__name__)

SINGLE = "single"
DOUBLE = "double"

_EMPTY = np.array([], dtype=np.int64)


def _boundaries(n: int, breakpoints: NDArray[np.int64]) -> NDArray[np.int64]:
    """Sorted unique segment boundaries including 0 and n."""
    inner = np.asarray(breakpoints, dtype=np.int64)
    return np.unique(np.concatenate(([0], inner, [n])))


def mdl_score(segment: NDArray[np.float64], breakpoints: NDArray[np.int64]) -> float:
    """Description length of a segment split at the given breakpoints.

    Args:
        segment: Samples of the region.
        breakpoints: Interior split indices relative to the region start.

    Returns:
        Description length, or +inf if the residual sum of squares is zero.
    """
    segment = np.asarray(segment, dtype=np.float64)
    n = len(segment)
    bounds = _boundaries(n, breakpoints)

    rss = 0.0
    log_lengths = 0.0
    num_segments = 0
    for start, stop in zip(bounds[:-1], bounds[1:]):
        if stop <= start:
            continue
        part = segment[start:stop]
        rss += float(np.sum((part - np.mean(part)) ** 2))
        log_lengths += np.log(stop - start)
        num_segments += 1

    if rss <= 0:
        return float("inf")

    p = num_segments - 1
    return float(p * np.log(n) + 0.5 * log_lengths + (n / 2) * np.log(rss / n))


def accept_breakpoints(segment: NDArray[np.float64], candidate: NDArray[np.int64]) -> bool:
    """Whether splitting at the candidate breakpoints shortens the description.

    A split that leaves no residual at all is accepted whenever the unsplit
    segment has a finite description length.

    Args:
        segment: Samples of the region.
        candidate: Proposed interior split indices. Empty is never accepted.

    Returns:
        True if the candidate is accepted.
    """
    if len(candidate) == 0:
        return False

    without = mdl_score(segment, _EMPTY)
    with_breaks = mdl_score(segment, candidate)
    if np.isinf(with_breaks) and np.isfinite(without):
        return True
    return without > with_breaks


@jit(nopython=True, cache=True)
def _split_costs(data: np.ndarray) -> np.ndarray:
    """JIT-compiled squared error of every two-way split.

    Running means and sums of squares are updated one sample at a time from
    both ends, so every split is scored in a single O(n) sweep.

    Args:
        data: Mean-centred samples.

    Returns:
        Array of length n + 1 where element k is SSE(data[:k]) + SSE(data[k:]).
    """
    n = len(data)
    left = np.zeros(n + 1, dtype=np.float64)
    right = np.zeros(n + 1, dtype=np.float64)

    mean = 0.0
    m2 = 0.0
    for i in range(n):
        x = data[i]
        delta = x - mean
        mean += delta / (i + 1)
        m2 += delta * (x - mean)
        left[i + 1] = m2

    mean = 0.0
    m2 = 0.0
    for i in range(n - 1, -1, -1):
        x = data[i]
        delta = x - mean
        mean += delta / (n - i)
        m2 += delta * (x - mean)
        right[i] = m2

    return left + right


@jit(nopython=True, cache=True)
def _best_double_split(cs: np.ndarray, cz: np.ndarray, n: int, min_seg: int) -> Tuple[int, int]:
    """JIT-compiled search for the best three-way split.

    Args:
        cs: Prefix sums of the mean-centred samples with a leading zero.
        cz: Prefix sums of their squares with a leading zero.
        n: Number of samples.
        min_seg: Minimum length of each of the three parts.

    Returns:
        Tuple (i, j) of split indices, or (-1, -1) if no split fits.
    """
    best = np.inf
    best_i = -1
    best_j = -1

    for i in range(min_seg, n - 2 * min_seg + 1):
        sse1 = cz[i] - cs[i] * cs[i] / i
        for j in range(i + min_seg, n - min_seg + 1):
            s2 = cs[j] - cs[i]
            sse2 = cz[j] - cz[i] - s2 * s2 / (j - i)
            s3 = cs[n] - cs[j]
            sse3 = cz[n] - cz[j] - s3 * s3 / (n - j)
            total = sse1 + sse2 + sse3
            if total < best:
                best = total
                best_i = i
                best_j = j

    return best_i, best_j


def detect_single_breakpoint(data: NDArray[np.float64], min_seg: int = 300) -> NDArray[np.int64]:
    """Best single split with at least ``min_seg`` samples on each side.

    Args:
        data: Samples of the region.
        min_seg: Minimum segment length.

    Returns:
        One-element index array, or an empty array if ``len(data) < 2 * min_seg``.
    """
    data = np.asarray(data, dtype=np.float64)
    n = len(data)
    if n < 2 * min_seg:
        return _EMPTY.copy()

    costs = _split_costs(data - np.mean(data))
    best = min_seg + int(np.argmin(costs[min_seg : n - min_seg + 1]))
    return np.array([best], dtype=np.int64)


def detect_double_breakpoint(data: NDArray[np.float64], min_seg: int = 300) -> NDArray[np.int64]:
    """Best pair of splits with at least ``min_seg`` samples in each of the three parts.

    Args:
        data: Samples of the region.
        min_seg: Minimum segment length.

    Returns:
        Two-element index array (i < j), or an empty array if
        ``len(data) < 3 * min_seg``.
    """
    data = np.asarray(data, dtype=np.float64)
    n = len(data)
    if n < 3 * min_seg:
        return _EMPTY.copy()

    centred = data - np.mean(data)
    cs = np.concatenate(([0.0], np.cumsum(centred)))
    cz = np.concatenate(([0.0], np.cumsum(centred**2)))

    i, j = _best_double_split(cs, cz, n, min_seg)
    if i < 0:
        return _EMPTY.copy()
    return np.array([i, j], dtype=np.int64)


def detect_breaks(segment: NDArray[np.float64], variant: str, min_seg: int = 300) -> NDArray[np.int64]:
    """Search a region for breakpoints and keep them only if MDL accepts them.

    Args:
        segment: Samples of the region.
        variant: ``"single"`` or ``"double"``.
        min_seg: Minimum segment length.

    Returns:
        Accepted split indices relative to the region start, possibly empty.

    Raises:
        ConfigurationError: If variant is unknown.
    """
    if variant == SINGLE:
        candidate = detect_single_breakpoint(segment, min_seg)
    elif variant == DOUBLE:
        candidate = detect_double_breakpoint(segment, min_seg)
    else:
        raise ConfigurationError(f"Unknown breakpoint search variant: {variant}")

    if accept_breakpoints(segment, candidate):
        return candidate
    return _EMPTY.copy()


def find_breakpoints(data: NDArray[np.float64], min_seg: int = 300) -> NDArray[np.int64]:
    """Recursively segment a trace into MDL-accepted regions.

    Regions are processed depth first, left region before right. Each region
    is tried with a single split and, if that is rejected and the region is
    longer than ``3 * min_seg``, with a double split. Every region created by
    an accepted split is searched again.

    Args:
        data: Trace samples.
        min_seg: Minimum segment length.

    Returns:
        Sorted array of breakpoint indices.
    """
    data = np.asarray(data, dtype=np.float64)
    found = []
    stack = [(0, len(data))]

    while stack:
        start, stop = stack.pop()
        segment = data[start:stop]

        breaks = detect_breaks(segment, SINGLE, min_seg)
        if len(breaks) == 0 and len(segment) > 3 * min_seg:
            breaks = detect_breaks(segment, DOUBLE, min_seg)
        if len(breaks) == 0:
            continue

        absolute = [start + int(b) for b in breaks]
        logger.debug(f"Accepted breaks {absolute} in region [{start}, {stop})")
        found.extend(absolute)

        bounds = [start] + absolute + [stop]
        for region in reversed(list(zip(bounds[:-1], bounds[1:]))):
            stack.append(region)

    return np.array(sorted(found), dtype=np.int64)


def filter_by_jump(
    data: NDArray[np.float64],
    breakpoints: NDArray[np.int64],
    jump_threshold: float = 0.8,
) -> Tuple[NDArray[np.int64], NDArray[np.float64]]:
    """Drop breakpoints whose neighbouring segment means differ too little.

    Segment means are taken with one sample trimmed from each end, or over
    the whole segment if trimming would leave nothing.

    Args:
        data: Trace samples.
        breakpoints: Sorted breakpoint indices.
        jump_threshold: Minimum absolute difference of neighbouring means.

    Returns:
        Tuple of (kept_breakpoints, step_values) where step_values holds the
        mean of every segment before filtering.
    """
    data = np.asarray(data, dtype=np.float64)
    breakpoints = np.asarray(breakpoints, dtype=np.int64)
    bounds = np.concatenate(([0], breakpoints, [len(data)]))

    step_values = np.empty(len(bounds) - 1, dtype=np.float64)
    for k in range(len(bounds) - 1):
        start = bounds[k] + 1
        stop = bounds[k + 1] - 1
        if stop <= start:
            start, stop = bounds[k], max(bounds[k + 1], bounds[k] + 1)
        step_values[k] = np.mean(data[start:stop])

    jumps = np.abs(np.diff(step_values))
    return breakpoints[jumps > jump_threshold], step_values


def mdl_method(
    trace: NDArray[np.float32],
    dt: float,
    config: MDLConfig = MDLConfig(),
) -> MDLResult:
    """Idealize a trace by MDL segmentation.

    The state of the first sample is decided by the histogram trough and the
    state flips at every surviving breakpoint.

    Args:
        trace: Recorded amplitude samples.
        dt: Sample interval in seconds.
        config: Minimum segment length, jump threshold and histogram bins.

    Returns:
        MDLResult with breakpoints at ``index * dt``.

    Raises:
        InsufficientDataError: If the trace is shorter than ``2 * min_seg``.
        ConfigurationError: If dt is not positive.
    """
    trace = np.asarray(trace, dtype=np.float64)
    n = len(trace)
    if n < 2 * config.min_seg:
        raise InsufficientDataError(
            f"Trace of {n} samples is shorter than twice min_seg ({config.min_seg})"
        )
    if dt <= 0:
        raise ConfigurationError(f"dt must be positive, got {dt}")

    if np.min(trace) == np.max(trace):
        return MDLResult(
            breakpoints=np.array([], dtype=np.float64),
            dwell_times_approx=np.array([], dtype=np.float64),
            idealized_data=np.zeros(n, dtype=np.int8),
            break_indices=_EMPTY.copy(),
            step_values=np.array([trace[0]], dtype=np.float64),
        )

    breaks = find_breakpoints(trace, config.min_seg)
    kept, step_values = filter_by_jump(trace, breaks, config.jump_threshold)
    logger.debug(f"MDL: {len(breaks)} breaks found, {len(kept)} above jump threshold")

    analysis = analyze_peaks(amplitude_histogram(trace, config.bins))
    labels = states_from_breakpoints(n, initial_state(trace, analysis.threshold), kept)

    breakpoints = kept.astype(np.float64) * dt
    return MDLResult(
        breakpoints=breakpoints,
        dwell_times_approx=dwell_times_from_breakpoints(breakpoints),
        idealized_data=labels,
        break_indices=kept,
        step_values=step_values,
    )
