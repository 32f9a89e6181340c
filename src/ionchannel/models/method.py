"""Method configurations and the results they produce.

Each configuration is a pure parameter holder; the algorithm that consumes it
is selected by ``ionchannel.analysis.methods.run_method``.
"""

from dataclasses import dataclass
from typing import Any, Optional

import numpy as np
from numpy.typing import NDArray

from ionchannel.errors import ConfigurationError, InvalidInputError
from ionchannel.models.histogram import ThresholdBand
from ionchannel.models.noise import Noise


def _check_bins(bins: Optional[int]) -> None:
    if bins is not None and bins <= 0:
        raise ConfigurationError(f"bins must be positive or None, got {bins}")


@dataclass(frozen=True)
class NaiveConfig:
    """Plain threshold crossing at the histogram trough.

    Attributes:
        bins: Amplitude histogram bins. None selects Freedman-Diaconis.
    """

    bins: Optional[int] = 100

    def __post_init__(self) -> None:
        _check_bins(self.bins)


@dataclass(frozen=True)
class ThresholdBandConfig:
    """Threshold crossing with a hysteresis band tuned by the optimizer.

    Attributes:
        bins: Amplitude histogram bins. None selects Freedman-Diaconis.
        epsilon_step: Step of the band-width sweep.
        epsilon_max: Largest band width tried.
        batch_size: Residual batch size for the normality score.
    """

    bins: Optional[int] = 100
    epsilon_step: float = 0.01
    epsilon_max: float = 0.20
    batch_size: int = 50

    def __post_init__(self) -> None:
        _check_bins(self.bins)
        if self.epsilon_step <= 0:
            raise ConfigurationError(f"epsilon_step must be positive, got {self.epsilon_step}")
        if not 0 <= self.epsilon_max <= 1:
            raise ConfigurationError(f"epsilon_max must be in [0, 1], got {self.epsilon_max}")
        if self.batch_size < 3:
            raise ConfigurationError(f"batch_size must be at least 3, got {self.batch_size}")


@dataclass(frozen=True)
class MDLConfig:
    """Minimum-description-length segmentation.

    Attributes:
        min_seg: Minimum segment length in samples.
        jump_threshold: Minimum absolute step between neighbouring segment means.
        bins: Amplitude histogram bins used to pick the initial state.
    """

    min_seg: int = 300
    jump_threshold: float = 0.8
    bins: Optional[int] = 100

    def __post_init__(self) -> None:
        _check_bins(self.bins)
        if self.min_seg < 1:
            raise ConfigurationError(f"min_seg must be at least 1, got {self.min_seg}")
        if self.jump_threshold < 0:
            raise ConfigurationError(
                f"jump_threshold must be non-negative, got {self.jump_threshold}"
            )


@dataclass(frozen=True)
class ExternalClassifierConfig:
    """Idealization by an externally trained per-sample classifier.

    Attributes:
        model: Object with a ``predict(samples)`` method returning either one
            class label per sample or an (n_samples, n_classes) score array.
    """

    model: Any

    def __post_init__(self) -> None:
        if not callable(getattr(self.model, "predict", None)):
            raise ConfigurationError("model must provide a predict() method")


@dataclass(frozen=True)
class MeanDeviationConfig:
    """Deviation from the running mean.

    Attributes:
        delta: Offset subtracted from the absolute deviation.
        lam: Deviation above which the sample is taken to be in the other state.
    """

    delta: float = 0.0
    lam: float = 0.5

    def __post_init__(self) -> None:
        if self.lam < 0:
            raise ConfigurationError(f"lam must be non-negative, got {self.lam}")


@dataclass(frozen=True)
class MethodResult:
    """Common output of every idealization method.

    Attributes:
        breakpoints: Transition times in seconds, strictly increasing.
        dwell_times_approx: Dwell time preceding each breakpoint, in seconds.
        idealized_data: Per-sample state labels (0 or 1).
    """

    breakpoints: NDArray[np.float64]
    dwell_times_approx: NDArray[np.float64]
    idealized_data: NDArray[np.int8]

    def __post_init__(self) -> None:
        if len(self.breakpoints) != len(self.dwell_times_approx):
            raise InvalidInputError(
                f"breakpoints ({len(self.breakpoints)}) and dwell times "
                f"({len(self.dwell_times_approx)}) must have the same length"
            )

    @property
    def num_transitions(self) -> int:
        """Number of detected state transitions."""
        return len(self.breakpoints)

    def complete_dwell_times(self, trace_duration: float) -> NDArray[np.float64]:
        """Dwell times including the final dwell, which is cut off by the end of the trace.

        Args:
            trace_duration: Length of the analysed trace in seconds.

        Returns:
            Observed dwell times followed by the censored final dwell.
        """
        last = float(self.breakpoints[-1]) if len(self.breakpoints) else 0.0
        tail = trace_duration - last
        if tail <= 0:
            return self.dwell_times_approx.copy()
        return np.append(self.dwell_times_approx, tail)


@dataclass(frozen=True)
class ThresholdBandResult(MethodResult):
    """Output of the band-optimized threshold method.

    Attributes:
        idealized_levels: Per-sample amplitude of the assigned state.
        noise: Residuals of the trace against ``idealized_levels``.
        band: Threshold band that produced the idealization.
        trough_index: Histogram bin used as the threshold.
        noise_score: Mean Shapiro-Wilk p-value of the residuals.
    """

    idealized_levels: NDArray[np.float64]
    noise: Noise
    band: ThresholdBand
    trough_index: int
    noise_score: float


@dataclass(frozen=True)
class MDLResult(MethodResult):
    """Output of the MDL segmentation.

    Attributes:
        break_indices: Sample index of each surviving breakpoint.
        step_values: Mean of every segment before jump filtering.
    """

    break_indices: NDArray[np.int64]
    step_values: NDArray[np.float64]
