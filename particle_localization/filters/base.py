"""
Particle and observation records, and the localization result container.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional

from ..utils.metrics import pose_error, compute_pose_rmse


@dataclass
class Particle:
    """
    One pose hypothesis.

    Snapshots of the filter population are handed out as Particle records.
    The association fields are diagnostics only: the driver fills them in
    (see ParticleFilter.set_associations) and the filter never reads them.

    Attributes:
        id: Particle id, copied by resampling (may repeat across a generation)
        x, y: Map-frame position
        theta: Heading in radians (not wrapped)
        weight: Relative likelihood from the latest weighting pass
        associations: Landmark id matched to each observation
        sense_x, sense_y: Map-frame coordinates of each observation
    """
    id: int
    x: float
    y: float
    theta: float
    weight: float = 1.0
    associations: List[int] = field(default_factory=list)
    sense_x: List[float] = field(default_factory=list)
    sense_y: List[float] = field(default_factory=list)

    @property
    def pose(self) -> np.ndarray:
        """[3] pose (x, y, theta)."""
        return np.array([self.x, self.y, self.theta])


@dataclass
class LandmarkObs:
    """
    Point observation of a landmark.

    Vehicle-frame when it comes from the sensor, map-frame once transformed.

    Attributes:
        x, y: Observed position
        id: Associated landmark id (-1 when unmatched)
    """
    x: float
    y: float
    id: int = -1


@dataclass
class LocalizationResult:
    """
    Container for the outputs of a full localization run.

    Attributes:
        best_poses: [T+1, 3] Pose of the maximum-weight particle per step
        mean_poses: [T+1, 3] Weighted mean pose per step
        ess: [T+1] Effective sample size before resampling

        # Optional history
        particles: [T+1, N, 3] Particle states after resampling
        weights: [T+1, N] Weights before resampling

        # Diagnostics
        best_particles: Best particle of each step with its associations
    """
    best_poses: np.ndarray
    mean_poses: np.ndarray
    ess: np.ndarray

    particles: Optional[np.ndarray] = None
    weights: Optional[np.ndarray] = None

    best_particles: Optional[List[Particle]] = None

    @property
    def T(self) -> int:
        """Number of time steps (controls)."""
        return self.best_poses.shape[0] - 1

    def pose_errors(self, true_poses: np.ndarray, use_mean: bool = False) -> np.ndarray:
        """
        Absolute per-step error against the true poses.

        Args:
            true_poses: [T+1, 3] True poses
            use_mean: Score the weighted mean instead of the best particle

        Returns:
            errors: [T+1, 3] |dx|, |dy|, |dtheta|
        """
        estimates = self.mean_poses if use_mean else self.best_poses
        return pose_error(estimates, true_poses)

    def position_rmse(self, true_poses: np.ndarray, use_mean: bool = False) -> float:
        """Root mean square position error over all steps."""
        estimates = self.mean_poses if use_mean else self.best_poses
        return compute_pose_rmse(true_poses, estimates)[1]

    def average_ess(self) -> float:
        """Return average ESS."""
        return float(np.mean(self.ess))
