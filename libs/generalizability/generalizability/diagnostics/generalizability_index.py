"""Tipton generalizability index.

The index is the Bhattacharyya coefficient between the kernel density of
participation probabilities among trial members and among population
members (Tipton, 2014). It is 1 when the two distributions coincide and
falls towards 0 as their supports separate.
"""

from __future__ import annotations

import logging
import warnings
from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy import integrate, stats

from ..core.base import ComputationWarning, InputValidationError

logger = logging.getLogger(__name__)

MIN_BANDWIDTH = 0.001
GRID_PADDING = 6.0
_CHUNK_SIZE = 1024


def kernel_bandwidth(values: NDArray[Any]) -> float:
    """Normal-reference bandwidth ``(4 sd^5 / 3n)^(1/5)``, floored at 0.001."""
    n = len(values)
    if n < 2:
        return MIN_BANDWIDTH
    sd = float(np.std(values, ddof=1))
    bandwidth = (4 * sd**5 / (3 * n)) ** 0.2
    if not np.isfinite(bandwidth) or bandwidth < MIN_BANDWIDTH:
        return MIN_BANDWIDTH
    return float(bandwidth)


def gaussian_kde_on_grid(
    values: NDArray[Any], grid: NDArray[Any], bandwidth: float
) -> NDArray[Any]:
    """Gaussian kernel density of ``values`` evaluated at ``grid``."""
    density = np.zeros_like(grid, dtype=np.float64)
    # Chunked to keep the grid-by-sample matrix small for large populations
    for start in range(0, len(values), _CHUNK_SIZE):
        chunk = values[start : start + _CHUNK_SIZE]
        density += stats.norm.pdf((grid[:, None] - chunk[None, :]) / bandwidth).sum(
            axis=1
        )
    return density / (len(values) * bandwidth)


def generalizability_index(
    trial_probs: NDArray[Any] | list[float],
    population_probs: NDArray[Any] | list[float],
    grid_size: int = 2048,
    near_disjoint_threshold: float = 0.1,
) -> float:
    """Compute the Tipton generalizability index.

    Args:
        trial_probs: Participation probabilities of trial members
        population_probs: Participation probabilities of population members
        grid_size: Minimum number of grid points for the integral
        near_disjoint_threshold: Index below which a ComputationWarning is issued

    Returns:
        Index in [0, 1]

    Raises:
        InputValidationError: If either group is empty or non-finite
    """
    trial_values = np.asarray(trial_probs, dtype=np.float64)
    pop_values = np.asarray(population_probs, dtype=np.float64)

    if len(trial_values) == 0 or len(pop_values) == 0:
        raise InputValidationError(
            "Both trial and population probabilities are required for the index"
        )
    if not (np.all(np.isfinite(trial_values)) and np.all(np.isfinite(pop_values))):
        raise InputValidationError("Participation probabilities must be finite")

    h_trial = kernel_bandwidth(trial_values)
    h_pop = kernel_bandwidth(pop_values)

    lower = min(
        trial_values.min() - GRID_PADDING * h_trial,
        pop_values.min() - GRID_PADDING * h_pop,
    )
    upper = max(
        trial_values.max() + GRID_PADDING * h_trial,
        pop_values.max() + GRID_PADDING * h_pop,
    )

    # Spacing no coarser than a fifth of the narrower kernel
    step = min(h_trial, h_pop) / 5
    n_points = max(grid_size, int(np.ceil((upper - lower) / step)) + 1)
    grid = np.linspace(lower, upper, n_points)

    f_trial = gaussian_kde_on_grid(trial_values, grid, h_trial)
    f_pop = gaussian_kde_on_grid(pop_values, grid, h_pop)

    index = float(integrate.trapezoid(np.sqrt(f_trial * f_pop), grid))
    index = float(np.clip(index, 0.0, 1.0))

    if index < near_disjoint_threshold:
        message = (
            f"Generalizability index {index:.4f} indicates near-disjoint trial and "
            "population participation probabilities; the TATE relies on extrapolation"
        )
        logger.warning(message)
        warnings.warn(message, ComputationWarning, stacklevel=2)

    return index


def interpret_generalizability_index(index: float) -> str:
    """Tipton (2014) category for an index value."""
    if index >= 0.9:
        return "very high"
    elif index >= 0.8:
        return "high"
    elif index >= 0.5:
        return "medium"
    else:
        return "low"
