"""Picklable task functions for parallel processing.

These functions are mapped over the workers of an AnalysisPool and run in
separate processes, so they must be module-level functions to be picklable.

Each task function takes a parameters dictionary and returns a result
dictionary. Exceptions propagate to the pool, which wraps them in a
TaskResult.

Usage:
    from ionchannel.workers import AnalysisPool
    from ionchannel.workers.tasks import run_evaluation_task

    with AnalysisPool() as pool:
        params = {
            "name": "trace_01.txt",
            "trace": trace,
            "dwell_times": dwell_times,
            "initial_state": 0,
            "config": MDLConfig(min_seg=200),
            "dt": 1e-4,
        }
        [result] = pool.map_with_progress(run_evaluation_task, [params])
        if result.success:
            evaluation = result.value
"""

from __future__ import annotations

from typing import Any

import numpy as np


def run_evaluation_task(params: dict[str, Any]) -> dict[str, Any]:
    """Idealize one trace and compare it with its ground truth.

    Parameters:
        params: Dictionary containing:
            - name (str): Trace identifier.
            - trace (NDArray[np.float32]): Recorded samples.
            - dwell_times (NDArray[np.float64]): Annotated dwell times in seconds.
            - initial_state (int): State of the first annotated dwell.
            - config: Method configuration dataclass.
            - dt (float): Sample interval in seconds.
            - dwell_bins (int, optional): Dwell-time histogram bins (default 100).

    Returns:
        Dictionary containing:
            - name (str): Trace identifier.
            - mean_squared_error (float): Dwell-time histogram MSE.
            - accuracy (float): Fraction of correctly labelled samples.
            - num_transitions (int): Number of transitions found.
    """
    from ionchannel.analysis.evaluation import evaluate_trace
    from ionchannel.models.evaluation import TraceRecord

    record = TraceRecord(
        name=params["name"],
        trace=np.asarray(params["trace"], dtype=np.float32),
        dwell_times=np.asarray(params["dwell_times"], dtype=np.float64),
        initial_state=int(params["initial_state"]),
    )

    evaluation = evaluate_trace(
        record,
        params["config"],
        params["dt"],
        dwell_bins=params.get("dwell_bins", 100),
    )

    return {
        "name": evaluation.name,
        "mean_squared_error": evaluation.mean_squared_error,
        "accuracy": evaluation.accuracy,
        "num_transitions": evaluation.num_transitions,
    }
