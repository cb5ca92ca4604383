"""
Landmark observation model.

Observations are 2D points of landmarks measured in the vehicle frame.
Given a particle pose they are mapped into the map frame, associated with
the nearest map landmark and scored with an uncorrelated bivariate Gaussian.
"""

import numpy as np
from scipy import stats
from scipy.spatial.distance import cdist


def transform_to_map(pose: np.ndarray, observations: np.ndarray) -> np.ndarray:
    """
    Transform vehicle-frame points into the map frame.

    Rotation by the pose heading followed by translation by the pose
    position (no scaling):
        x_m = x_p + cos(theta) x_v - sin(theta) y_v
        y_m = y_p + sin(theta) x_v + cos(theta) y_v

    Args:
        pose: [3] pose (x, y, theta)
        observations: [K, 2] vehicle-frame points

    Returns:
        points: [K, 2] map-frame points
    """
    observations = np.asarray(observations, dtype=np.float64).reshape(-1, 2)
    x_p, y_p, theta = pose[0], pose[1], pose[2]
    c, s = np.cos(theta), np.sin(theta)

    points = np.empty_like(observations)
    points[:, 0] = x_p + c * observations[:, 0] - s * observations[:, 1]
    points[:, 1] = y_p + s * observations[:, 0] + c * observations[:, 1]
    return points


def transform_to_vehicle(pose: np.ndarray, points: np.ndarray) -> np.ndarray:
    """
    Inverse of transform_to_map: map-frame points into the vehicle frame.

    Args:
        pose: [3] pose (x, y, theta)
        points: [K, 2] map-frame points

    Returns:
        observations: [K, 2] vehicle-frame points
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    dx = points[:, 0] - pose[0]
    dy = points[:, 1] - pose[1]
    c, s = np.cos(pose[2]), np.sin(pose[2])

    return np.stack([c * dx + s * dy, -s * dx + c * dy], axis=-1)


def nearest_landmark(points: np.ndarray, landmark_positions: np.ndarray) -> np.ndarray:
    """
    Index of the nearest landmark for each point.

    Uses squared Euclidean distance; on exact ties the lowest landmark
    index wins.

    Args:
        points: [K, 2] map-frame points
        landmark_positions: [M, 2] candidate landmark positions, M >= 1

    Returns:
        indices: [K] indices into landmark_positions
    """
    points = np.asarray(points, dtype=np.float64).reshape(-1, 2)
    landmark_positions = np.asarray(landmark_positions, dtype=np.float64).reshape(-1, 2)
    if points.shape[0] == 0:
        return np.zeros(0, dtype=int)

    sq_dist = cdist(points, landmark_positions, metric="sqeuclidean")  # [K, M]
    return np.argmin(sq_dist, axis=1)


def multivariate_gaussian_prob(
    x: np.ndarray,
    y: np.ndarray,
    mu_x: np.ndarray,
    mu_y: np.ndarray,
    std_x: float,
    std_y: float,
) -> np.ndarray:
    """
    Bivariate Gaussian density with diagonal covariance.

        p = 1 / (2 pi sx sy) * exp(-(dx^2 / (2 sx^2) + dy^2 / (2 sy^2)))

    Args:
        x, y: Observed position(s)
        mu_x, mu_y: Mean position(s)
        std_x, std_y: Per-axis standard deviations

    Returns:
        prob: Density value(s), broadcast over the inputs
    """
    return (
        stats.norm.pdf(x, loc=mu_x, scale=std_x)
        * stats.norm.pdf(y, loc=mu_y, scale=std_y)
    )


def multivariate_gaussian_log_prob(
    x: np.ndarray,
    y: np.ndarray,
    mu_x: np.ndarray,
    mu_y: np.ndarray,
    std_x: float,
    std_y: float,
) -> np.ndarray:
    """
    Log of multivariate_gaussian_prob.

    Stays finite where the density itself would overflow (tiny std) or
    underflow (far from the mean).
    """
    return (
        stats.norm.logpdf(x, loc=mu_x, scale=std_x)
        + stats.norm.logpdf(y, loc=mu_y, scale=std_y)
    )
