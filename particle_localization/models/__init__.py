"""
Map, motion and observation models.
"""

from .landmark_map import (
    Landmark,
    LandmarkMap,
    as_landmark_map,
    make_landmark_map,
    make_random_landmark_map,
    load_landmark_map,
    save_landmark_map,
)
from .motion import YAW_RATE_EPS, ctrv_motion, add_motion_noise
from .observation import (
    transform_to_map,
    transform_to_vehicle,
    nearest_landmark,
    multivariate_gaussian_prob,
    multivariate_gaussian_log_prob,
)

__all__ = [
    "Landmark",
    "LandmarkMap",
    "as_landmark_map",
    "make_landmark_map",
    "make_random_landmark_map",
    "load_landmark_map",
    "save_landmark_map",
    "YAW_RATE_EPS",
    "ctrv_motion",
    "add_motion_noise",
    "transform_to_map",
    "transform_to_vehicle",
    "nearest_landmark",
    "multivariate_gaussian_prob",
    "multivariate_gaussian_log_prob",
]
