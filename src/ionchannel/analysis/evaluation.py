"""Evaluation of idealizations against annotated ground truth.

Ground-truth labels are rebuilt from the annotated dwell times, and each
method is scored by per-sample accuracy and by the mean squared difference
between the true and found dwell-time histograms.
"""

import logging
from typing import Callable, Iterable, Optional

import numpy as np
from numpy.typing import NDArray

from ionchannel.analysis.methods import run_method
from ionchannel.analysis.noise import mean_squared_error
from ionchannel.config import Settings, get_settings
from ionchannel.errors import ConfigurationError, InvalidInputError
from ionchannel.io.text_reader import normalize_trace, truncate_record
from ionchannel.models.evaluation import EvaluationSummary, TraceEvaluation, TraceRecord
from ionchannel.workers.pool import AnalysisPool, map_in_process
from ionchannel.workers.tasks import run_evaluation_task

logger = logging.getLogger(__name__)


def reconstruct_ground_truth(
    dwell_times: NDArray[np.float64],
    initial_state: int,
    trace_length: int,
    dt: float,
) -> NDArray[np.int8]:
    """Rebuild per-sample labels from annotated dwell times.

    Each dwell covers ``round(dwell / dt)`` samples, at least one, and the
    state alternates from ``initial_state``. The result is truncated to
    ``trace_length`` or padded with the state that follows the last dwell.

    Args:
        dwell_times: Annotated dwell times in seconds.
        initial_state: State (0 or 1) of the first dwell.
        trace_length: Number of samples of the trace.
        dt: Sample interval in seconds.

    Returns:
        Array of 0/1 labels of length trace_length.

    Raises:
        ConfigurationError: If dt is not positive.
    """
    if dt <= 0:
        raise ConfigurationError(f"dt must be positive, got {dt}")

    dwell_times = np.asarray(dwell_times, dtype=np.float64)
    counts = np.maximum(np.rint(dwell_times / dt).astype(np.int64), 1)
    states = (initial_state + np.arange(len(dwell_times))) % 2
    labels = np.repeat(states, counts).astype(np.int8)

    if len(labels) >= trace_length:
        return labels[:trace_length]

    next_state = (initial_state + len(dwell_times)) % 2
    padding = np.full(trace_length - len(labels), next_state, dtype=np.int8)
    return np.concatenate((labels, padding))


def accuracy(ground_truth: NDArray[np.integer], approx: NDArray[np.integer]) -> float:
    """Fraction of samples whose labels agree.

    Label assignment of a method is arbitrary, so ``approx`` is inverted
    first if its first label differs from the ground truth's.

    Raises:
        InvalidInputError: If the sequences are empty or differ in length.
    """
    ground_truth = np.asarray(ground_truth)
    approx = np.asarray(approx)
    if len(ground_truth) != len(approx):
        raise InvalidInputError(
            f"ground truth ({len(ground_truth)}) and approximation ({len(approx)}) "
            f"must have the same length"
        )
    if len(ground_truth) == 0:
        raise InvalidInputError("Cannot compute the accuracy of empty sequences")

    if ground_truth[0] != approx[0]:
        approx = 1 - approx
    return float(np.mean(ground_truth == approx))


def prepare_record(
    record: TraceRecord,
    dt: float,
    data_size: int = 0,
    normalize: bool = True,
) -> TraceRecord:
    """Truncate and z-score a record before analysis.

    Args:
        record: Trace with its annotation.
        dt: Sample interval in seconds.
        data_size: Number of leading samples to keep, 0 for all.
        normalize: Whether to z-score the trace.

    Returns:
        New TraceRecord.
    """
    trace, dwell_times = truncate_record(record.trace, record.dwell_times, dt, data_size)
    if normalize:
        trace = normalize_trace(trace)
    return TraceRecord(
        name=record.name,
        trace=trace,
        dwell_times=dwell_times,
        initial_state=record.initial_state,
    )


def evaluate_trace(record: TraceRecord, config, dt: float, dwell_bins: int = 100) -> TraceEvaluation:
    """Idealize one trace and score it against its annotation.

    Args:
        record: Trace with its annotation.
        config: Method configuration.
        dt: Sample interval in seconds.
        dwell_bins: Bins of the dwell-time histograms.

    Returns:
        TraceEvaluation of the trace.
    """
    result = run_method(record.trace, config, dt)
    ground_truth = reconstruct_ground_truth(
        record.dwell_times, record.initial_state, record.num_samples, dt
    )
    mse, _, _ = mean_squared_error(record.dwell_times, result.dwell_times_approx, dwell_bins)

    return TraceEvaluation(
        name=record.name,
        mean_squared_error=mse,
        accuracy=accuracy(ground_truth, result.idealized_data),
        num_transitions=result.num_transitions,
    )


def batch_evaluate(
    records: Iterable[TraceRecord],
    config,
    dt: float,
    dwell_bins: int = 100,
    pool: Optional[AnalysisPool] = None,
    data_size: int = 0,
    normalize: bool = True,
    on_progress: Optional[Callable[[int, int], None]] = None,
) -> EvaluationSummary:
    """Evaluate a method on a batch of annotated traces.

    A trace that raises during analysis is reported in the summary with its
    error and left out of the averages.

    Args:
        records: Traces with their annotations.
        config: Method configuration.
        dt: Sample interval in seconds.
        dwell_bins: Bins of the dwell-time histograms.
        pool: Process pool to spread traces over. None runs in this process.
        data_size: Number of leading samples of each trace to use, 0 for all.
        normalize: Whether to z-score each trace.
        on_progress: Called with (completed, total) after each trace.

    Returns:
        EvaluationSummary with per-trace results in input order.
    """
    params = []
    for record in records:
        prepared = prepare_record(record, dt, data_size, normalize)
        params.append({
            "name": prepared.name,
            "trace": prepared.trace,
            "dwell_times": prepared.dwell_times,
            "initial_state": prepared.initial_state,
            "config": config,
            "dt": dt,
            "dwell_bins": dwell_bins,
        })

    if pool is None:
        results = map_in_process(run_evaluation_task, params, on_progress)
    else:
        results = pool.map_with_progress(run_evaluation_task, params, on_progress)

    evaluations = []
    for item, result in zip(params, results):
        if result.success:
            evaluations.append(TraceEvaluation(**result.value))
        else:
            logger.warning(f"Skipping {item['name']}: {result.error}")
            evaluations.append(TraceEvaluation.failure(item["name"], result.error))

    summary = EvaluationSummary.from_traces(evaluations)
    logger.info(
        f"Evaluated {len(summary.succeeded)}/{len(evaluations)} traces: "
        f"MSE {summary.mean_squared_error:.4g}, accuracy {summary.mean_accuracy:.4f}"
    )
    return summary


def evaluate_with_settings(
    records: Iterable[TraceRecord],
    kind: str,
    settings: Optional[Settings] = None,
    on_progress: Optional[Callable[[int, int], None]] = None,
) -> EvaluationSummary:
    """Evaluate a method on a batch of traces with parameters from settings.

    The method configuration comes from ``settings.method_config(kind)`` and
    the sample interval, dwell-time bins, truncation and normalization from
    ``settings.evaluation``. A process pool is used when
    ``settings.evaluation.max_workers`` is set.

    Args:
        records: Traces with their annotations.
        kind: Method kind understood by ``Settings.method_config``.
        settings: Settings to use. Defaults to the global settings.
        on_progress: Called with (completed, total) after each trace.

    Returns:
        EvaluationSummary with per-trace results in input order.

    Raises:
        ConfigurationError: If kind is unknown or a setting is invalid.
    """
    if settings is None:
        settings = get_settings()

    config = settings.method_config(kind)
    ev = settings.evaluation
    kwargs = dict(
        dwell_bins=ev.dwell_bins,
        data_size=ev.data_size,
        normalize=ev.normalize,
        on_progress=on_progress,
    )

    if ev.max_workers is None:
        return batch_evaluate(records, config, ev.dt, **kwargs)

    with AnalysisPool(max_workers=ev.max_workers) as pool:
        return batch_evaluate(records, config, ev.dt, pool=pool, **kwargs)
