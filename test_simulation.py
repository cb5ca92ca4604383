"""
Tests for scenario simulation and trajectory storage.

Run: pytest test_simulation.py -v
"""

import numpy as np
from numpy.random import default_rng

from particle_localization.models import make_landmark_map, make_random_landmark_map, transform_to_map
from particle_localization.simulation import Trajectory, observe_landmarks, simulate_scenario


def make_trajectory(T=25, seed=0):
    landmark_map = make_random_landmark_map(30, extent=50.0, seed=seed)
    return landmark_map, simulate_scenario(landmark_map, T=T, sensor_range=40.0, seed=seed + 1)


def test_simulated_shapes():
    _, traj = make_trajectory(T=25)

    assert traj.T == 25
    assert traj.poses.shape == (26, 3)
    assert traj.controls.shape == (25, 2)
    assert len(traj.observations) == 26
    assert all(obs.ndim == 2 and obs.shape[1] == 2 for obs in traj.observations)
    assert traj.initial_estimate.shape == (3,)


def test_simulation_is_reproducible():
    _, a = make_trajectory(seed=3)
    _, b = make_trajectory(seed=3)
    np.testing.assert_array_equal(a.poses, b.poses)
    np.testing.assert_array_equal(a.initial_estimate, b.initial_estimate)
    for obs_a, obs_b in zip(a.observations, b.observations):
        np.testing.assert_array_equal(obs_a, obs_b)


def test_observes_exactly_landmarks_in_range():
    landmark_map, traj = make_trajectory(T=10)
    for t in range(traj.T + 1):
        pose = traj.poses[t]
        visible = landmark_map.within_range(pose[0], pose[1], 40.0).sum()
        assert traj.observations[t].shape[0] == visible


def test_noise_free_observations_land_on_landmarks():
    landmark_map = make_landmark_map([[3.0, 4.0], [10.0, 0.0], [100.0, 100.0]])
    pose = np.array([1.0, 1.0, 0.8])

    obs = observe_landmarks(pose, landmark_map, 20.0, (0.0, 0.0), default_rng(0))

    assert obs.shape == (2, 2)
    np.testing.assert_allclose(transform_to_map(pose, obs), [[3.0, 4.0], [10.0, 0.0]], atol=1e-12)


def test_straight_run_without_yaw():
    landmark_map = make_landmark_map([[0.0, 0.0]])
    traj = simulate_scenario(
        landmark_map, T=10, delta_t=0.5, velocity=2.0, yaw_rate_amplitude=0.0, seed=0
    )
    np.testing.assert_allclose(traj.poses[-1], [10.0, 0.0, 0.0], atol=1e-12)


def test_save_and_load(tmp_path):
    _, traj = make_trajectory(T=8)
    traj.metadata = {"scenario": "unit"}
    path = str(tmp_path / "traj.npz")

    traj.save(path)
    loaded = Trajectory.load(path)

    np.testing.assert_array_equal(loaded.poses, traj.poses)
    np.testing.assert_array_equal(loaded.controls, traj.controls)
    assert loaded.delta_t == traj.delta_t
    assert loaded.metadata == {"scenario": "unit"}
    assert len(loaded.observations) == len(traj.observations)
    for a, b in zip(loaded.observations, traj.observations):
        np.testing.assert_array_equal(a, b)


def test_subset():
    _, traj = make_trajectory(T=20)
    sub = traj.subset(5, 12)

    assert sub.T == 7
    np.testing.assert_array_equal(sub.poses, traj.poses[5:13])
    np.testing.assert_array_equal(sub.initial_estimate, traj.poses[5])
    assert len(sub.observations) == 8
