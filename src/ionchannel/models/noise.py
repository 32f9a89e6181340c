"""Data model for residual noise between a trace and its idealization."""

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray


@dataclass(frozen=True)
class Noise:
    """Residuals of an idealization.

    Attributes:
        residuals: Raw minus idealized signal, one value per sample.
        mean: Mean of the residuals.
        std: Sample standard deviation of the residuals.
    """

    residuals: NDArray[np.float64]
    mean: float
    std: float

    @property
    def num_samples(self) -> int:
        """Number of residual samples."""
        return len(self.residuals)
