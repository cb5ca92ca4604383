"""
Particle filter for landmark-map localization (Monte Carlo localization).

Each particle is a pose hypothesis (x, y, theta). One filter cycle is
prediction (CTRV motion + Gaussian noise), weighting (nearest-landmark
association + bivariate Gaussian likelihood) and resampling.
"""

import numpy as np
from typing import List, Literal, Optional, Sequence, Tuple, Union
from numpy.random import Generator, default_rng

from .base import Particle, LandmarkObs, LocalizationResult
from ..models.landmark_map import LandmarkMap, MapLike, as_landmark_map
from ..models.motion import ctrv_motion, add_motion_noise
from ..models.observation import (
    transform_to_map,
    nearest_landmark,
    multivariate_gaussian_log_prob,
)
from ..simulation.trajectory import Trajectory
from ..utils.resampling import RESAMPLERS, effective_sample_size
from ..utils.metrics import weighted_mean_pose


ObservationsLike = Union[Sequence[LandmarkObs], np.ndarray]

# Largest log-weight whose exponential is still a finite float64
MAX_LOG_WEIGHT = np.log(np.finfo(np.float64).max)


def _as_std(std, size: int, name: str, allow_zero: bool = True) -> np.ndarray:
    """Validate a vector of standard deviations."""
    std = np.asarray(std, dtype=np.float64).reshape(-1)
    if std.shape != (size,):
        raise ValueError(f"{name} must have {size} entries, got {std.shape[0]}")
    if np.any(std < 0.0) or (not allow_zero and np.any(std == 0.0)):
        bound = ">= 0" if allow_zero else "> 0"
        raise ValueError(f"{name} entries must be {bound}, got {std.tolist()}")
    return std


def _observation_array(observations: ObservationsLike) -> np.ndarray:
    """Stack observations into a [K, 2] array."""
    if isinstance(observations, np.ndarray):
        if observations.size == 0:
            return np.zeros((0, 2))
        if observations.ndim != 2 or observations.shape[1] != 2:
            raise ValueError(
                f"observations must have shape [K, 2], got {observations.shape}"
            )
        return observations.astype(np.float64)
    return np.array(
        [[obs.x, obs.y] for obs in observations], dtype=np.float64
    ).reshape(-1, 2)


def _format_values(values: Sequence, fmt) -> str:
    return " ".join(fmt(v) for v in values)


class ParticleFilter:
    """
    Monte Carlo localization on a known landmark map.

    The population lives in arrays:
        ids: [N] particle ids
        states: [N, 3] poses (x, y, theta)
        weights: [N] unnormalized weights

    `init` is one-shot: once the filter is initialized further calls are
    no-ops. The random generator is owned by the instance.
    """

    def __init__(
        self,
        n_particles: int = 100,
        resample_method: Literal["wheel", "systematic", "stratified", "multinomial", "residual"] = "wheel",
        seed: Optional[int] = None,
        rng: Optional[Generator] = None,
    ):
        """
        Args:
            n_particles: Number of particles created by `init`
            resample_method: Resampling algorithm
            seed: Random seed (ignored if rng is provided)
            rng: NumPy random generator
        """
        if n_particles < 1:
            raise ValueError(f"n_particles must be >= 1, got {n_particles}")
        if resample_method not in RESAMPLERS:
            raise ValueError(
                f"Unknown resample method: {resample_method} "
                f"(expected one of {sorted(RESAMPLERS)})"
            )

        self.n_particles = n_particles
        self.resample_method = resample_method
        self.seed = seed
        self.rng = rng if rng is not None else default_rng(seed)

        self.num_particles = 0
        self.is_initialized = False
        self.ids = np.zeros(0, dtype=int)
        self.states = np.zeros((0, 3))
        self.weights = np.zeros(0)

    def _require_initialized(self):
        if not self.is_initialized:
            raise RuntimeError("ParticleFilter not initialized via .init()")

    # -------------------------------------------------------------------------
    # Filter cycle
    # -------------------------------------------------------------------------

    def init(self, x: float, y: float, theta: float, std: Sequence[float]):
        """
        Seed the population around an initial pose estimate.

        Each particle draws x, y and theta independently from a Gaussian
        centred on the estimate. Weights start at 1.0 and ids at 0..N-1.
        Does nothing if the filter is already initialized.

        Args:
            x, y, theta: Initial pose estimate (e.g. from GPS)
            std: [3] standard deviations of x, y and theta
        """
        if self.is_initialized:
            return

        std = _as_std(std, 3, "std")
        N = self.n_particles

        self.num_particles = N
        self.ids = np.arange(N)
        self.states = self.rng.normal(
            loc=np.array([x, y, theta], dtype=np.float64), scale=std, size=(N, 3)
        )
        self.weights = np.ones(N)
        self.is_initialized = True

    def prediction(
        self,
        delta_t: float,
        std_pos: Sequence[float],
        velocity: float,
        yaw_rate: float,
    ):
        """
        Move every particle with the CTRV model and add process noise.

        Straight-line motion is used when |yaw_rate| <= YAW_RATE_EPS.
        Heading is not wrapped.

        Args:
            delta_t: Elapsed time
            std_pos: [3] process noise standard deviations (x, y, theta)
            velocity: Commanded velocity
            yaw_rate: Commanded yaw rate
        """
        self._require_initialized()
        std_pos = _as_std(std_pos, 3, "std_pos")

        states = ctrv_motion(self.states, delta_t, velocity, yaw_rate)
        self.states = add_motion_noise(states, std_pos, self.rng)

    def data_association(
        self,
        predicted: Sequence[LandmarkObs],
        observations: List[LandmarkObs],
    ) -> List[LandmarkObs]:
        """
        Nearest-neighbour association, in place.

        Each observation gets the id of the predicted landmark with the
        smallest squared distance (lowest index on ties). With no predicted
        landmarks the observation ids are left untouched.

        Args:
            predicted: Landmarks (anything with id, x, y) in the map frame
            observations: Map-frame observations to label

        Returns:
            The same observations list
        """
        if len(predicted) == 0 or len(observations) == 0:
            return observations

        positions = np.array([[lm.x, lm.y] for lm in predicted], dtype=np.float64)
        indices = nearest_landmark(_observation_array(observations), positions)

        for obs, k in zip(observations, indices):
            obs.id = predicted[k].id
        return observations

    def _associate(
        self,
        pose: np.ndarray,
        obs_xy: np.ndarray,
        landmark_map: LandmarkMap,
        sensor_range: float,
    ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """
        Map observations into the map frame and match them to landmarks.

        Returns:
            points: [K, 2] map-frame observations
            ids: [K] matched landmark ids (-1 if nothing is in range)
            matched: [K, 2] matched landmark positions (origin if nothing is in range)
        """
        K = obs_xy.shape[0]
        points = transform_to_map(pose, obs_xy)

        in_range = landmark_map.within_range(pose[0], pose[1], sensor_range)
        if not np.any(in_range):
            return points, np.full(K, -1, dtype=int), np.zeros((K, 2))

        candidates = landmark_map.positions[in_range]
        idx = nearest_landmark(points, candidates)
        return points, landmark_map.ids[in_range][idx], candidates[idx]

    def update_weights(
        self,
        sensor_range: float,
        std_landmark: Sequence[float],
        observations: ObservationsLike,
        map_landmarks: MapLike,
    ):
        """
        Weight every particle by the likelihood of the observations.

        For each particle the vehicle-frame observations are transformed
        into the map frame with the particle pose, each one is matched to
        the nearest landmark within sensor range (inclusive), and the weight
        becomes the product of the bivariate Gaussian densities of the
        matches. A particle with no landmark in range scores every
        observation against the origin, which drives its weight to ~0.
        Underflow to 0.0 is possible and accepted. The product is summed in
        log space, and if it would overflow every weight is divided by the
        largest one so the proportions survive.

        Args:
            sensor_range: Maximum sensing distance
            std_landmark: [2] measurement standard deviations (x, y)
            observations: Vehicle-frame observations, LandmarkObs list or [K, 2]
            map_landmarks: LandmarkMap or sequence of Landmark
        """
        self._require_initialized()
        std_landmark = _as_std(std_landmark, 2, "std_landmark", allow_zero=False)
        obs_xy = _observation_array(observations)
        landmark_map = as_landmark_map(map_landmarks)

        log_weights = np.zeros(self.num_particles)
        for i in range(self.num_particles):
            points, _, matched = self._associate(
                self.states[i], obs_xy, landmark_map, sensor_range
            )
            log_weights[i] = np.sum(multivariate_gaussian_log_prob(
                points[:, 0], points[:, 1],
                matched[:, 0], matched[:, 1],
                std_landmark[0], std_landmark[1],
            ))

        # Rescale by the best particle when the raw product would overflow
        max_log = np.max(log_weights)
        if max_log > MAX_LOG_WEIGHT:
            log_weights = log_weights - max_log
        self.weights = np.exp(log_weights)

    def resample(self):
        """
        Draw a new generation with replacement, proportional to weight.

        Selected particles are value copies, ids and weights included, so
        ids may repeat. All-zero weights degrade to uniform selection.
        """
        self._require_initialized()
        resample_fn = RESAMPLERS[self.resample_method]
        indices = resample_fn(self.weights, self.rng)

        self.ids = self.ids[indices]
        self.states = self.states[indices]
        self.weights = self.weights[indices]

    # -------------------------------------------------------------------------
    # Diagnostics
    # -------------------------------------------------------------------------

    def set_associations(
        self,
        particle: Particle,
        associations: Sequence[int],
        sense_x: Sequence[float],
        sense_y: Sequence[float],
    ) -> Particle:
        """
        Attach landmark associations and map-frame sense coordinates.

        Args:
            particle: Particle snapshot to annotate
            associations: Landmark id for each observation
            sense_x: Map-frame x of each observation
            sense_y: Map-frame y of each observation

        Returns:
            The annotated particle
        """
        particle.associations = list(associations)
        particle.sense_x = list(sense_x)
        particle.sense_y = list(sense_y)
        return particle

    def get_associations(self, particle: Particle) -> str:
        """Space-separated landmark ids."""
        return _format_values(particle.associations, lambda v: str(int(v)))

    def get_sense_coord(self, particle: Particle, coord: str) -> str:
        """Space-separated sense coordinates; "X" selects x, anything else y."""
        values = particle.sense_x if coord == "X" else particle.sense_y
        return _format_values(values, lambda v: f"{float(np.float32(v)):g}")

    @property
    def particles(self) -> List[Particle]:
        """Snapshot of the population as Particle records."""
        return [
            Particle(
                id=int(self.ids[i]),
                x=float(self.states[i, 0]),
                y=float(self.states[i, 1]),
                theta=float(self.states[i, 2]),
                weight=float(self.weights[i]),
            )
            for i in range(self.num_particles)
        ]

    def best_particle(self) -> Particle:
        """Snapshot of the maximum-weight particle (first one on ties)."""
        self._require_initialized()
        i = int(np.argmax(self.weights))
        return Particle(
            id=int(self.ids[i]),
            x=float(self.states[i, 0]),
            y=float(self.states[i, 1]),
            theta=float(self.states[i, 2]),
            weight=float(self.weights[i]),
        )

    def weighted_mean(self) -> np.ndarray:
        """[3] weighted mean pose; heading averaged on the circle."""
        self._require_initialized()
        return weighted_mean_pose(self.states, self.weights)

    def effective_sample_size(self) -> float:
        """ESS of the current weights (0.0 if all are zero)."""
        self._require_initialized()
        return effective_sample_size(self.weights)

    def associate_best(
        self,
        observations: ObservationsLike,
        map_landmarks: MapLike,
        sensor_range: float,
    ) -> Particle:
        """
        Best particle annotated with its observation associations.

        Args:
            observations: Vehicle-frame observations
            map_landmarks: LandmarkMap or sequence of Landmark
            sensor_range: Maximum sensing distance

        Returns:
            Best particle with associations, sense_x and sense_y set
        """
        best = self.best_particle()
        points, ids, _ = self._associate(
            best.pose,
            _observation_array(observations),
            as_landmark_map(map_landmarks),
            sensor_range,
        )
        return self.set_associations(
            best, ids.tolist(), points[:, 0].tolist(), points[:, 1].tolist()
        )

    # -------------------------------------------------------------------------
    # Full run
    # -------------------------------------------------------------------------

    def filter(
        self,
        trajectory: Trajectory,
        landmark_map: MapLike,
        sensor_range: float,
        std_landmark: Sequence[float],
        std_pos: Sequence[float],
        std_init: Optional[Sequence[float]] = None,
        return_particles: bool = False,
    ) -> LocalizationResult:
        """
        Run the filter over a recorded or simulated trajectory.

        Step 0 initializes from the trajectory's initial estimate (if the
        filter is not initialized yet); step t > 0 predicts with control
        t-1. Every step then weights with observations t and resamples.

        Args:
            trajectory: Trajectory with controls and vehicle-frame observations
            landmark_map: Landmark map
            sensor_range: Maximum sensing distance
            std_landmark: [2] measurement standard deviations
            std_pos: [3] process noise standard deviations
            std_init: [3] initialization standard deviations (default: std_pos)
            return_particles: If True, store particle and weight history

        Returns:
            LocalizationResult
        """
        landmark_map = as_landmark_map(landmark_map)
        if std_init is None:
            std_init = std_pos

        T = trajectory.T
        best_poses = np.zeros((T + 1, 3))
        mean_poses = np.zeros((T + 1, 3))
        ess_history = np.zeros(T + 1)
        best_particles = []

        if return_particles:
            particles_history = np.zeros((T + 1, self.n_particles, 3))
            weights_history = np.zeros((T + 1, self.n_particles))

        for t in range(T + 1):
            if t == 0:
                self.init(*trajectory.initial_estimate, std=std_init)
            else:
                velocity, yaw_rate = trajectory.controls[t - 1]
                self.prediction(trajectory.delta_t, std_pos, velocity, yaw_rate)

            observations = trajectory.observations[t]
            self.update_weights(sensor_range, std_landmark, observations, landmark_map)

            ess_history[t] = self.effective_sample_size()
            mean_poses[t] = self.weighted_mean()
            best = self.associate_best(observations, landmark_map, sensor_range)
            best_poses[t] = best.pose
            best_particles.append(best)

            if return_particles:
                weights_history[t] = self.weights

            self.resample()

            if return_particles:
                particles_history[t] = self.states

        result = LocalizationResult(
            best_poses=best_poses,
            mean_poses=mean_poses,
            ess=ess_history,
            best_particles=best_particles,
        )

        if return_particles:
            result.particles = particles_history
            result.weights = weights_history

        return result
