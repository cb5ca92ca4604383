"""
Constant Turn Rate and Velocity (CTRV) motion model.

State: [x, y, theta] - planar position and heading (radians, unwrapped)
Control: (velocity, yaw_rate) applied for delta_t
"""

import numpy as np
from numpy.random import Generator


# Below this yaw rate the closed form divides by ~0; use straight-line motion.
YAW_RATE_EPS = 1e-5


def ctrv_motion(
    states: np.ndarray,
    delta_t: float,
    velocity: float,
    yaw_rate: float,
) -> np.ndarray:
    """
    Noise-free CTRV prediction.

    For |yaw_rate| > YAW_RATE_EPS:
        x' = x + v/w (sin(theta + w dt) - sin(theta))
        y' = y + v/w (cos(theta) - cos(theta + w dt))
        theta' = theta + w dt
    Otherwise:
        x' = x + v dt cos(theta)
        y' = y + v dt sin(theta)
        theta' = theta

    Args:
        states: [N, 3] or [3] poses
        delta_t: Elapsed time
        velocity: Commanded velocity
        yaw_rate: Commanded yaw rate

    Returns:
        next_states: same shape as states
    """
    states = np.asarray(states, dtype=np.float64)
    single = states.ndim == 1
    if single:
        states = states[None, :]

    x, y, theta = states[:, 0], states[:, 1], states[:, 2]
    next_states = np.empty_like(states)

    if abs(yaw_rate) > YAW_RATE_EPS:
        theta_new = theta + yaw_rate * delta_t
        ratio = velocity / yaw_rate
        next_states[:, 0] = x + ratio * (np.sin(theta_new) - np.sin(theta))
        next_states[:, 1] = y + ratio * (np.cos(theta) - np.cos(theta_new))
        next_states[:, 2] = theta_new
    else:
        next_states[:, 0] = x + velocity * delta_t * np.cos(theta)
        next_states[:, 1] = y + velocity * delta_t * np.sin(theta)
        next_states[:, 2] = theta

    if single:
        return next_states[0]
    return next_states


def add_motion_noise(
    states: np.ndarray,
    std: np.ndarray,
    rng: Generator,
) -> np.ndarray:
    """
    Add independent zero-mean Gaussian noise to x, y and theta.

    Args:
        states: [N, 3] poses
        std: [3] standard deviations for (x, y, theta)
        rng: NumPy random generator

    Returns:
        noisy_states: [N, 3]
    """
    std = np.asarray(std, dtype=np.float64)
    noise = rng.normal(0.0, 1.0, size=states.shape) * std
    return states + noise
