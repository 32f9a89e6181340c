"""Data models for ground-truth records and evaluation summaries."""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from numpy.typing import NDArray

from ionchannel.errors import InvalidInputError


@dataclass(frozen=True)
class TraceRecord:
    """A recorded trace together with its ground-truth annotation.

    Attributes:
        name: Identifier of the trace, usually its file name.
        trace: Raw amplitude samples.
        dwell_times: Annotated dwell times in seconds, alternating states.
        initial_state: State (0 or 1) of the first annotated dwell.
    """

    name: str
    trace: NDArray[np.float32]
    dwell_times: NDArray[np.float64]
    initial_state: int

    def __post_init__(self) -> None:
        if self.initial_state not in (0, 1):
            raise InvalidInputError(
                f"initial_state must be 0 or 1, got {self.initial_state}"
            )

    @property
    def num_samples(self) -> int:
        """Number of samples in the trace."""
        return len(self.trace)


@dataclass(frozen=True)
class TraceEvaluation:
    """Evaluation of one idealized trace.

    Attributes:
        name: Identifier of the trace.
        mean_squared_error: Dwell-time histogram MSE, NaN if the trace failed.
        accuracy: Fraction of correctly labelled samples, NaN if the trace failed.
        num_transitions: Number of transitions found by the method.
        error: Description of the failure, None on success.
    """

    name: str
    mean_squared_error: float
    accuracy: float
    num_transitions: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        """Whether the trace was evaluated without error."""
        return self.error is None

    @classmethod
    def failure(cls, name: str, error: BaseException) -> "TraceEvaluation":
        """Create an evaluation entry for a trace that raised.

        Args:
            name: Identifier of the trace.
            error: The exception raised while analysing it.

        Returns:
            TraceEvaluation with NaN metrics and the error message.
        """
        return cls(
            name=name,
            mean_squared_error=float("nan"),
            accuracy=float("nan"),
            error=f"{type(error).__name__}: {error}",
        )


@dataclass(frozen=True)
class EvaluationSummary:
    """Aggregate evaluation across a batch of traces.

    Averages are taken over successfully evaluated traces only.

    Attributes:
        mean_squared_error: Mean dwell-time histogram MSE.
        mean_accuracy: Mean per-sample accuracy.
        traces: Per-trace results in input order.
    """

    mean_squared_error: float
    mean_accuracy: float
    traces: Tuple[TraceEvaluation, ...]

    @property
    def succeeded(self) -> Tuple[TraceEvaluation, ...]:
        """Traces that were evaluated."""
        return tuple(t for t in self.traces if t.succeeded)

    @property
    def failed(self) -> Tuple[TraceEvaluation, ...]:
        """Traces that raised during analysis."""
        return tuple(t for t in self.traces if not t.succeeded)

    @classmethod
    def from_traces(cls, traces: list[TraceEvaluation]) -> "EvaluationSummary":
        """Aggregate per-trace evaluations.

        Args:
            traces: Per-trace results, successful or failed.

        Returns:
            EvaluationSummary with NaN averages if no trace succeeded.
        """
        ok = [t for t in traces if t.succeeded]
        if ok:
            mse = float(np.mean([t.mean_squared_error for t in ok]))
            acc = float(np.mean([t.accuracy for t in ok]))
        else:
            mse = float("nan")
            acc = float("nan")
        return cls(mean_squared_error=mse, mean_accuracy=acc, traces=tuple(traces))
