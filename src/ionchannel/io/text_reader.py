"""Plain-text reader for recorded traces and their dwell-time annotations.

Each trace is stored as two text files with one number per line: the raw
amplitudes and the annotated dwell times in seconds. The state of the first
annotated dwell of every trace is kept in a separate ``filename,state`` file.
"""

import logging
from pathlib import Path
from typing import Dict, Tuple

import numpy as np
from numpy.typing import NDArray

from ionchannel.errors import InvalidInputError
from ionchannel.models.evaluation import TraceRecord

logger = logging.getLogger(__name__)


def _read_column(path: Path | str, dtype: type) -> NDArray:
    """Read a file of one number per line, ignoring blank lines."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    values = []
    with open(path, "r") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                values.append(float(line))
            except ValueError as e:
                raise InvalidInputError(f"{path}:{line_number}: not a number: {line!r}") from e

    return np.array(values, dtype=dtype)


def read_trace(path: Path | str) -> NDArray[np.float32]:
    """Read raw amplitude samples.

    Args:
        path: Text file with one amplitude per line.

    Returns:
        Float32 array of samples.

    Raises:
        FileNotFoundError: If the file does not exist.
        InvalidInputError: If a line is not a number.
    """
    return _read_column(path, np.float32)


def read_dwell_times(path: Path | str) -> NDArray[np.float64]:
    """Read annotated dwell times in seconds, one per line."""
    return _read_column(path, np.float64)


def read_data(
    trace_path: Path | str, dwell_path: Path | str
) -> Tuple[NDArray[np.float32], NDArray[np.float64]]:
    """Read a trace and its dwell-time annotation.

    Returns:
        Tuple of (trace, dwell_times).
    """
    return read_trace(trace_path), read_dwell_times(dwell_path)


def read_initial_states(path: Path | str) -> Dict[str, int]:
    """Read the initial state of every annotated trace.

    Args:
        path: Text file of ``filename,state`` lines with state 0 or 1.

    Returns:
        Mapping from file name to initial state.

    Raises:
        FileNotFoundError: If the file does not exist.
        InvalidInputError: If a line is malformed or a state is not 0 or 1.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    states: Dict[str, int] = {}
    with open(path, "r") as f:
        for line_number, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            name, sep, state = line.rpartition(",")
            if not sep or not name:
                raise InvalidInputError(f"{path}:{line_number}: expected 'filename,state'")
            try:
                value = int(state.strip())
            except ValueError as e:
                raise InvalidInputError(f"{path}:{line_number}: invalid state {state!r}") from e
            if value not in (0, 1):
                raise InvalidInputError(f"{path}:{line_number}: state must be 0 or 1, got {value}")
            states[name.strip()] = value

    logger.debug(f"Read {len(states)} initial states from {path}")
    return states


def load_record(
    trace_path: Path | str,
    dwell_path: Path | str,
    initial_states: Dict[str, int],
    name: str | None = None,
) -> TraceRecord:
    """Load a trace with its ground truth as a TraceRecord.

    Args:
        trace_path: Raw amplitude file.
        dwell_path: Dwell-time file.
        initial_states: Mapping from file name to initial state.
        name: Key into initial_states. Defaults to the trace file name.

    Returns:
        TraceRecord named after the trace.

    Raises:
        InvalidInputError: If no initial state is recorded for the trace.
    """
    name = name if name is not None else Path(trace_path).name
    if name not in initial_states:
        raise InvalidInputError(f"No initial state recorded for {name}")

    trace, dwell_times = read_data(trace_path, dwell_path)
    return TraceRecord(
        name=name,
        trace=trace,
        dwell_times=dwell_times,
        initial_state=initial_states[name],
    )


def normalize_trace(trace: NDArray[np.float32]) -> NDArray[np.float32]:
    """Z-score a trace; a constant trace is only centred."""
    trace = np.asarray(trace, dtype=np.float64)
    centred = trace - np.mean(trace)
    std = np.std(trace)
    if std > 0:
        centred = centred / std
    return centred.astype(np.float32)


def truncate_record(
    trace: NDArray[np.float32],
    dwell_times: NDArray[np.float64],
    dt: float,
    data_size: int,
) -> Tuple[NDArray[np.float32], NDArray[np.float64]]:
    """Keep the first data_size samples and the dwell times that fit in them.

    The dwell that straddles the cut is shortened to end at the cut.

    Args:
        trace: Recorded samples.
        dwell_times: Annotated dwell times in seconds.
        dt: Sample interval in seconds.
        data_size: Number of samples to keep. Zero or a value not below the
            trace length keeps everything.

    Returns:
        Tuple of (trace, dwell_times).
    """
    if data_size <= 0 or data_size >= len(trace):
        return trace, dwell_times

    duration = data_size * dt
    ends = np.cumsum(dwell_times)
    inside = int(np.searchsorted(ends, duration, side="left"))
    kept = np.array(dwell_times[:inside], dtype=np.float64)
    start = float(ends[inside - 1]) if inside > 0 else 0.0
    if inside < len(dwell_times) and duration - start > 0:
        kept = np.append(kept, duration - start)

    return trace[:data_size], kept
