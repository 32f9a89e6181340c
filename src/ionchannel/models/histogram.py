"""Data models for amplitude histograms, their peak analysis and threshold bands."""

from dataclasses import dataclass, replace

import numpy as np
from numpy.typing import NDArray

from ionchannel.errors import ConfigurationError, InvalidInputError


@dataclass(frozen=True)
class Histogram:
    """Histogram of amplitude (or dwell time) samples.

    Attributes:
        edges: Bin edges, length num_bins + 1, uniformly spaced.
        weights: Per-bin counts or probabilities, length num_bins.
    """

    edges: NDArray[np.float64]
    weights: NDArray[np.float64]

    def __post_init__(self) -> None:
        """Validate histogram shape."""
        if len(self.edges) != len(self.weights) + 1:
            raise InvalidInputError(
                f"edges ({len(self.edges)}) must have one more element than "
                f"weights ({len(self.weights)})"
            )
        if len(self.weights) == 0:
            raise InvalidInputError("Histogram must have at least one bin")

    @property
    def num_bins(self) -> int:
        """Number of bins."""
        return len(self.weights)

    @property
    def bin_width(self) -> float:
        """Width of a single bin."""
        return float(self.edges[1] - self.edges[0])

    @property
    def centres(self) -> NDArray[np.float64]:
        """Bin centre values."""
        return (self.edges[:-1] + self.edges[1:]) / 2

    @property
    def total(self) -> float:
        """Sum of all bin weights."""
        return float(np.sum(self.weights))


@dataclass(frozen=True)
class PeakAnalysis:
    """Two dominant modes of a probability histogram and the trough between them.

    Peaks are stored in canonical order so that ``pmax1_index`` is the
    left-most peak. Indices refer to bins; the amplitude of a bin is taken as
    its left edge, ``edges[index]``.

    Attributes:
        edges: Bin edges of the analysed histogram.
        weights: Bin weights of the analysed histogram.
        pmax1: Weight of the left peak.
        pmax1_index: Bin index of the left peak.
        pmax2: Weight of the right peak.
        pmax2_index: Bin index of the right peak.
        midpoint: Bin index separating the half searched for the second peak.
        pmin: Weight of the trough.
        pmin_index: Bin index of the trough.
    """

    edges: NDArray[np.float64]
    weights: NDArray[np.float64]
    pmax1: float
    pmax1_index: int
    pmax2: float
    pmax2_index: int
    midpoint: int
    pmin: float
    pmin_index: int

    def __post_init__(self) -> None:
        """Validate peak ordering."""
        if self.pmax1_index > self.pmax2_index:
            raise InvalidInputError(
                f"pmax1_index ({self.pmax1_index}) must not exceed "
                f"pmax2_index ({self.pmax2_index})"
            )

    @property
    def threshold(self) -> float:
        """Amplitude of the trough bin."""
        return float(self.edges[self.pmin_index])

    @property
    def centres(self) -> NDArray[np.float64]:
        """Bin centre values."""
        return (self.edges[:-1] + self.edges[1:]) / 2

    @property
    def peak_levels(self) -> tuple[float, float]:
        """Centre amplitudes of the left and right peak bins."""
        centres = self.centres
        return float(centres[self.pmax1_index]), float(centres[self.pmax2_index])

    def amplitude(self, index: int) -> float:
        """Amplitude (left bin edge) for a bin index."""
        return float(self.edges[index])

    def with_trough(self, index: int) -> "PeakAnalysis":
        """Return a copy with the trough moved to another bin.

        Args:
            index: New trough bin index, must lie within [pmax1_index, pmax2_index].

        Returns:
            New PeakAnalysis sharing edges and weights with this one.
        """
        if not self.pmax1_index <= index <= self.pmax2_index:
            raise InvalidInputError(
                f"Trough index {index} outside peak range "
                f"[{self.pmax1_index}, {self.pmax2_index}]"
            )
        return replace(self, pmin=float(self.weights[index]), pmin_index=int(index))


@dataclass(frozen=True)
class ThresholdBand:
    """Discrimination threshold with a hysteresis band around it.

    Attributes:
        threshold_centre: Amplitude separating the closed and open state.
        x1: Lower bound of the band.
        x2: Upper bound of the band.
    """

    threshold_centre: float
    x1: float
    x2: float

    def __post_init__(self) -> None:
        """Validate band ordering."""
        if not np.all(np.isfinite([self.threshold_centre, self.x1, self.x2])):
            raise ConfigurationError(
                f"Band values must be finite, got ({self.x1}, {self.threshold_centre}, {self.x2})"
            )
        if not self.x1 <= self.threshold_centre <= self.x2:
            raise ConfigurationError(
                f"Band bounds must satisfy x1 <= centre <= x2, got "
                f"({self.x1}, {self.threshold_centre}, {self.x2})"
            )

    @property
    def width(self) -> float:
        """Total width of the band."""
        return self.x2 - self.x1

    @property
    def is_degenerate(self) -> bool:
        """Whether the band has collapsed onto the threshold."""
        return self.x1 == self.x2

    @classmethod
    def from_bounds(cls, threshold_centre: float, x1: float, x2: float) -> "ThresholdBand":
        """Create a band, swapping the bounds if they are given in reverse.

        Args:
            threshold_centre: Threshold amplitude.
            x1: One band bound.
            x2: The other band bound.

        Returns:
            ThresholdBand with ordered bounds.
        """
        lower, upper = (x1, x2) if x1 <= x2 else (x2, x1)
        return cls(threshold_centre=float(threshold_centre), x1=float(lower), x2=float(upper))
