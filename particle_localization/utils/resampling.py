"""
Resampling algorithms for particle filters.

All resamplers take *unnormalized*, non-negative weights and return [N]
particle indices drawn with replacement. Infinite weights take the whole
probability mass, shared uniformly. A population whose weights are all
zero (or NaN) is resampled uniformly.
"""

import warnings

import numpy as np
from numpy.random import Generator


def normalize_weights(weights: np.ndarray) -> tuple:
    """
    Normalize non-negative weights.

    If any weight is +inf, the +inf entries share the mass uniformly and
    every finite weight gets zero.

    Args:
        weights: [N] Unnormalized weights

    Returns:
        weights: [N] Normalized weights (uniform if all are zero or any is NaN)
        valid: False if the uniform fallback was used
    """
    weights = np.asarray(weights, dtype=np.float64)
    N = len(weights)

    if np.any(np.isnan(weights)):
        return np.full(N, 1.0 / N), False

    infinite = np.isposinf(weights)
    if np.any(infinite):
        return infinite / np.sum(infinite), True

    max_weight = np.max(weights) if N > 0 else 0.0
    if not np.isfinite(max_weight) or max_weight <= 0.0:
        return np.full(N, 1.0 / N), False

    # Scale by the maximum first so the sum cannot overflow
    weights = weights / max_weight
    return weights / np.sum(weights), True


def _warn_uniform_fallback(method: str):
    warnings.warn(
        f"Particle weights are all zero or non-finite; {method} resampling "
        "falls back to uniform selection.",
        RuntimeWarning,
        stacklevel=3,
    )


def resampling_wheel(weights: np.ndarray, rng: Generator) -> np.ndarray:
    """
    Resampling wheel.

    Start at a uniform random index and walk around the wheel of weights:
    for every output slot advance beta by U[0, 2 * max_weight), then step
    forward while beta exceeds the current weight, subtracting it.

    Sequential in beta, so not parallel across output slots; the prefix-sum
    resamplers below are the parallel-friendly equivalents.

    Args:
        weights: [N] Unnormalized weights
        rng: NumPy random generator

    Returns:
        indices: [N] Resampled particle indices
    """
    weights = np.asarray(weights, dtype=np.float64)
    N = len(weights)
    max_weight = np.max(weights) if N > 0 else 0.0
    if np.isposinf(max_weight):
        weights = np.isposinf(weights).astype(np.float64)
        max_weight = 1.0

    if not np.isfinite(max_weight) or max_weight <= 0.0:
        _warn_uniform_fallback("wheel")
        return rng.integers(0, N, size=N)

    indices = np.empty(N, dtype=int)
    index = int(rng.integers(0, N))
    beta = 0.0

    for i in range(N):
        beta += rng.uniform(0.0, 2.0 * max_weight)
        while beta > weights[index]:
            beta -= weights[index]
            index = (index + 1) % N
        indices[i] = index

    return indices


def systematic_resample(weights: np.ndarray, rng: Generator) -> np.ndarray:
    """
    Systematic resampling.

    Deterministic spacing with single random offset. Low variance.

    Args:
        weights: [N] Unnormalized weights
        rng: NumPy random generator

    Returns:
        indices: [N] Resampled particle indices
    """
    weights, valid = normalize_weights(weights)
    if not valid:
        _warn_uniform_fallback("systematic")
    N = len(weights)

    cdf = np.cumsum(weights)
    cdf[-1] = 1.0  # Ensure exactly 1.0 to avoid numerical issues

    u0 = rng.uniform(0.0, 1.0 / N)
    u = u0 + np.arange(N) / N

    indices = np.searchsorted(cdf, u, side='left')
    return np.minimum(indices, N - 1)


def stratified_resample(weights: np.ndarray, rng: Generator) -> np.ndarray:
    """
    Stratified resampling.

    Independent random draw within each stratum [i/N, (i+1)/N).

    Args:
        weights: [N] Unnormalized weights
        rng: NumPy random generator

    Returns:
        indices: [N] Resampled particle indices
    """
    weights, valid = normalize_weights(weights)
    if not valid:
        _warn_uniform_fallback("stratified")
    N = len(weights)

    cdf = np.cumsum(weights)
    cdf[-1] = 1.0

    u = (np.arange(N) + rng.uniform(0.0, 1.0, N)) / N

    indices = np.searchsorted(cdf, u, side='left')
    return np.minimum(indices, N - 1)


def multinomial_resample(weights: np.ndarray, rng: Generator) -> np.ndarray:
    """
    Multinomial resampling: N independent categorical draws.

    Args:
        weights: [N] Unnormalized weights
        rng: NumPy random generator

    Returns:
        indices: [N] Resampled particle indices
    """
    weights, valid = normalize_weights(weights)
    if not valid:
        _warn_uniform_fallback("multinomial")
    N = len(weights)
    return rng.choice(N, size=N, replace=True, p=weights)


def residual_resample(weights: np.ndarray, rng: Generator) -> np.ndarray:
    """
    Residual resampling.

    Deterministic replication of floor(N * w_i), then multinomial on residuals.

    Args:
        weights: [N] Unnormalized weights
        rng: NumPy random generator

    Returns:
        indices: [N] Resampled particle indices
    """
    weights, valid = normalize_weights(weights)
    if not valid:
        _warn_uniform_fallback("residual")
    N = len(weights)

    n_copies = np.floor(N * weights).astype(int)
    indices = np.repeat(np.arange(N), n_copies)

    n_residual = N - len(indices)
    if n_residual > 0:
        residual_weights = N * weights - n_copies
        residual_weights = residual_weights / residual_weights.sum()
        residual_indices = rng.choice(N, size=n_residual, replace=True, p=residual_weights)
        indices = np.concatenate([indices, residual_indices])

    return indices.astype(int)


def effective_sample_size(weights: np.ndarray) -> float:
    """
    Compute effective sample size (ESS).

    ESS = 1 / sum(w_i^2) of the normalized weights.

    Args:
        weights: [N] Unnormalized weights

    Returns:
        ESS value in [1, N], or 0.0 if every weight is zero
    """
    weights, valid = normalize_weights(weights)
    if not valid:
        return 0.0
    return 1.0 / np.sum(weights ** 2)


RESAMPLERS = {
    "wheel": resampling_wheel,
    "systematic": systematic_resample,
    "stratified": stratified_resample,
    "multinomial": multinomial_resample,
    "residual": residual_resample,
}
