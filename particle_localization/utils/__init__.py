"""
Utility functions.
"""

from .resampling import (
    RESAMPLERS,
    resampling_wheel,
    systematic_resample,
    stratified_resample,
    multinomial_resample,
    residual_resample,
    effective_sample_size,
    normalize_weights,
)

from .metrics import (
    wrap_angle,
    pose_error,
    compute_pose_rmse,
    weighted_mean_pose,
)

__all__ = [
    "RESAMPLERS",
    "resampling_wheel",
    "systematic_resample",
    "stratified_resample",
    "multinomial_resample",
    "residual_resample",
    "effective_sample_size",
    "normalize_weights",
    "wrap_angle",
    "pose_error",
    "compute_pose_rmse",
    "weighted_mean_pose",
]
