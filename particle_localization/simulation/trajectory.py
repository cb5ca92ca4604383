"""
Trajectory simulation and storage.
"""

import numpy as np
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence
from numpy.random import Generator, default_rng

from ..models.landmark_map import LandmarkMap
from ..models.motion import ctrv_motion
from ..models.observation import transform_to_vehicle


@dataclass
class Trajectory:
    """
    Container for simulated or recorded localization data.

    Attributes:
        poses: [T+1, 3] True poses (p_0, p_1, ..., p_T)
        controls: [T, 2] (velocity, yaw_rate) moving p_{t} to p_{t+1}
        observations: T+1 arrays [K_t, 2] of vehicle-frame landmark points
        delta_t: Time between steps
        initial_estimate: [3] Noisy estimate of p_0 (e.g. GPS)
        metadata: Optional dictionary for additional info
    """
    poses: np.ndarray
    controls: np.ndarray
    observations: List[np.ndarray]
    delta_t: float
    initial_estimate: np.ndarray
    metadata: Optional[Dict[str, Any]] = None

    @property
    def T(self) -> int:
        """Number of time steps (controls)."""
        return self.controls.shape[0]

    def subset(self, start: int, end: int) -> "Trajectory":
        """
        Extract a subset of the trajectory.

        The initial estimate of the subset is the true pose at `start`.

        Args:
            start: Start step (inclusive)
            end: End step (exclusive, in controls)

        Returns:
            New Trajectory with steps start..end
        """
        return Trajectory(
            poses=self.poses[start:end+1].copy(),
            controls=self.controls[start:end].copy(),
            observations=[obs.copy() for obs in self.observations[start:end+1]],
            delta_t=self.delta_t,
            initial_estimate=self.poses[start].copy(),
            metadata=self.metadata,
        )

    def save(self, path: str):
        """Save trajectory to .npz file."""
        counts = np.array([obs.shape[0] for obs in self.observations], dtype=int)
        np.savez(
            path,
            poses=self.poses,
            controls=self.controls,
            observations=np.concatenate(self.observations, axis=0).reshape(-1, 2),
            observation_counts=counts,
            delta_t=self.delta_t,
            initial_estimate=self.initial_estimate,
            metadata=self.metadata,
        )

    @classmethod
    def load(cls, path: str) -> "Trajectory":
        """Load trajectory from .npz file."""
        data = np.load(path, allow_pickle=True)
        metadata = data['metadata'].item() if 'metadata' in data else None
        splits = np.cumsum(data['observation_counts'])[:-1]
        return cls(
            poses=data['poses'],
            controls=data['controls'],
            observations=np.split(data['observations'], splits),
            delta_t=float(data['delta_t']),
            initial_estimate=data['initial_estimate'],
            metadata=metadata,
        )


def observe_landmarks(
    pose: np.ndarray,
    landmark_map: LandmarkMap,
    sensor_range: float,
    std_landmark: Sequence[float],
    rng: Generator,
) -> np.ndarray:
    """
    Noisy vehicle-frame observations of all landmarks within range.

    Args:
        pose: [3] true pose
        landmark_map: Landmark map
        sensor_range: Maximum sensing distance
        std_landmark: [2] measurement noise standard deviations
        rng: NumPy random generator

    Returns:
        observations: [K, 2] vehicle-frame points
    """
    visible = landmark_map.positions[landmark_map.within_range(pose[0], pose[1], sensor_range)]
    observations = transform_to_vehicle(pose, visible)
    return observations + rng.normal(0.0, 1.0, size=observations.shape) * np.asarray(std_landmark)


def simulate_scenario(
    landmark_map: LandmarkMap,
    T: int = 100,
    delta_t: float = 0.1,
    velocity: float = 10.0,
    yaw_rate_amplitude: float = 0.3,
    sensor_range: float = 50.0,
    std_pos: Sequence[float] = (0.3, 0.3, 0.01),
    std_landmark: Sequence[float] = (0.3, 0.3),
    initial_pose: Sequence[float] = (0.0, 0.0, 0.0),
    seed: Optional[int] = None,
    rng: Optional[Generator] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Trajectory:
    """
    Simulate a vehicle driving a smooth CTRV path through a landmark map.

    The yaw rate follows yaw_rate_amplitude * sin(2 pi t / T) and velocity is
    constant. Controls are exact; observations and the initial estimate are
    noisy.

    Args:
        landmark_map: Landmark map
        T: Number of time steps
        delta_t: Time between steps
        velocity: Constant forward velocity
        yaw_rate_amplitude: Peak yaw rate
        sensor_range: Maximum sensing distance
        std_pos: [3] noise of the initial estimate (x, y, theta)
        std_landmark: [2] measurement noise standard deviations
        initial_pose: True starting pose
        seed: Random seed (ignored if rng is provided)
        rng: NumPy random generator (optional)
        metadata: Optional metadata to attach

    Returns:
        Trajectory object
    """
    if rng is None:
        rng = default_rng(seed)

    steps = np.arange(T)
    controls = np.zeros((T, 2))
    controls[:, 0] = velocity
    controls[:, 1] = yaw_rate_amplitude * np.sin(2.0 * np.pi * steps / max(T, 1))

    poses = np.zeros((T + 1, 3))
    poses[0] = np.asarray(initial_pose, dtype=np.float64)
    for t in range(T):
        poses[t + 1] = ctrv_motion(poses[t], delta_t, controls[t, 0], controls[t, 1])

    observations = [
        observe_landmarks(poses[t], landmark_map, sensor_range, std_landmark, rng)
        for t in range(T + 1)
    ]

    initial_estimate = poses[0] + rng.normal(0.0, 1.0, size=3) * np.asarray(std_pos)

    return Trajectory(
        poses=poses,
        controls=controls,
        observations=observations,
        delta_t=delta_t,
        initial_estimate=initial_estimate,
        metadata=metadata,
    )
