"""
Evaluation metrics for pose estimates.
"""

import numpy as np
from typing import Optional, Tuple

from .resampling import normalize_weights


def wrap_angle(a: np.ndarray) -> np.ndarray:
    """Wrap angle to [-pi, pi)."""
    return (a + np.pi) % (2.0 * np.pi) - np.pi


def pose_error(estimate: np.ndarray, truth: np.ndarray) -> np.ndarray:
    """
    Absolute pose error.

    Args:
        estimate: [3] or [T, 3] estimated poses (x, y, theta)
        truth: [3] or [T, 3] true poses

    Returns:
        error: same shape, |dx|, |dy| and the heading error in [0, pi]
    """
    estimate = np.asarray(estimate, dtype=np.float64)
    truth = np.asarray(truth, dtype=np.float64)

    error = np.abs(estimate - truth)
    error[..., 2] = np.abs(wrap_angle(estimate[..., 2] - truth[..., 2]))
    return error


def compute_pose_rmse(
    poses_true: np.ndarray,
    poses_est: np.ndarray,
) -> Tuple[np.ndarray, float]:
    """
    Position error per time step.

    Args:
        poses_true: [T+1, 3] True poses
        poses_est: [T+1, 3] or [T, 3] Estimated poses

    Returns:
        error_per_step: [T] Euclidean position error at each time step
        rmse: Root mean square of the per-step errors
    """
    # Handle estimates that skip the initial pose
    if poses_est.shape[0] == poses_true.shape[0] - 1:
        poses_true = poses_true[1:]

    T = min(poses_true.shape[0], poses_est.shape[0])
    diff = poses_true[:T, :2] - poses_est[:T, :2]
    error_per_step = np.sqrt(np.sum(diff ** 2, axis=1))

    return error_per_step, float(np.sqrt(np.mean(error_per_step ** 2)))


def weighted_mean_pose(
    states: np.ndarray,
    weights: Optional[np.ndarray] = None,
) -> np.ndarray:
    """
    Weighted mean of a set of poses.

    Heading is averaged on the circle (atan2 of the mean sine and cosine),
    so the result lies in [-pi, pi].

    Args:
        states: [N, 3] poses
        weights: [N] non-negative weights (uniform if None, all zero or NaN;
            +inf entries share the mass)

    Returns:
        mean: [3] mean pose
    """
    states = np.asarray(states, dtype=np.float64)
    N = states.shape[0]

    if weights is None:
        w = np.full(N, 1.0 / N)
    else:
        w, _ = normalize_weights(weights)

    mean = np.empty(3)
    mean[0] = np.sum(w * states[:, 0])
    mean[1] = np.sum(w * states[:, 1])
    mean[2] = np.arctan2(np.sum(w * np.sin(states[:, 2])), np.sum(w * np.cos(states[:, 2])))
    return mean
