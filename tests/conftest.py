"""Pytest configuration and fixtures."""

from typing import Sequence, Tuple

import numpy as np
import pytest


def make_two_state_trace(
    dwell_samples: Sequence[int],
    initial_state: int = 0,
    low: float = 0.0,
    high: float = 1.0,
    noise_std: float = 0.0,
    seed: int = 0,
) -> Tuple[np.ndarray, np.ndarray]:
    """Helper to create a two-state trace and its true labels.

    The state alternates from initial_state, staying in each state for the
    given number of samples. Gaussian noise with noise_std is added.

    Returns:
        Tuple of (trace as float32, labels as int8).
    """
    states = (initial_state + np.arange(len(dwell_samples))) % 2
    labels = np.repeat(states, dwell_samples).astype(np.int8)
    trace = np.where(labels == 1, high, low).astype(np.float64)
    if noise_std > 0:
        rng = np.random.default_rng(seed)
        trace = trace + rng.normal(0.0, noise_std, size=len(trace))
    return trace.astype(np.float32), labels


def random_dwell_samples(count: int, low: int, high: int, seed: int = 0) -> np.ndarray:
    """Helper to draw dwell lengths in samples, uniform in [low, high)."""
    rng = np.random.default_rng(seed)
    return rng.integers(low, high, size=count)


@pytest.fixture
def rng() -> np.random.Generator:
    """Seeded random generator."""
    return np.random.default_rng(42)


@pytest.fixture
def step_trace() -> np.ndarray:
    """Noiseless step of 50 closed then 50 open samples."""
    return np.array([0.0] * 50 + [1.0] * 50, dtype=np.float32)


@pytest.fixture
def noisy_two_state():
    """Noisy two-state trace of about 10000 samples with its true labels and dwell lengths."""
    dwells = random_dwell_samples(24, 200, 600, seed=3)
    trace, labels = make_two_state_trace(dwells, noise_std=0.1, seed=4)
    return trace, labels, dwells
