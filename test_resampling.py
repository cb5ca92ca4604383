"""
Tests for the resampling algorithms.

Run: pytest test_resampling.py -v
"""

import warnings

import pytest
import numpy as np
from numpy.random import default_rng

from particle_localization.utils.resampling import (
    RESAMPLERS,
    resampling_wheel,
    systematic_resample,
    normalize_weights,
    effective_sample_size,
)


METHODS = sorted(RESAMPLERS)


def empirical_class_frequency(resample_fn, weights, classes, n_classes, reps, seed=0):
    """Frequency with which each weight class is selected over many resamples."""
    rng = default_rng(seed)
    counts = np.zeros(n_classes)
    for _ in range(reps):
        indices = resample_fn(weights, rng)
        counts += np.bincount(classes[indices], minlength=n_classes)
    return counts / counts.sum()


@pytest.mark.parametrize("method", METHODS)
def test_returns_n_valid_indices(method):
    rng = default_rng(1)
    weights = rng.uniform(0.0, 5.0, size=37)

    indices = RESAMPLERS[method](weights, rng)

    assert indices.shape == (37,)
    assert np.issubdtype(indices.dtype, np.integer)
    assert indices.min() >= 0 and indices.max() < 37


@pytest.mark.parametrize("method", METHODS)
def test_selection_proportional_to_weight(method):
    # 4 weight classes tiled over 400 particles
    classes = np.tile(np.arange(4), 100)
    weights = (classes + 1).astype(float) * 1e-3   # unnormalized

    freq = empirical_class_frequency(RESAMPLERS[method], weights, classes, 4, reps=50)

    np.testing.assert_allclose(freq, [0.1, 0.2, 0.3, 0.4], atol=0.02)


@pytest.mark.parametrize("method", METHODS)
def test_zero_weight_among_nonzero_is_not_selected(method):
    rng = default_rng(2)
    weights = np.ones(20)
    weights[[0, 13]] = 0.0

    for _ in range(100):
        indices = RESAMPLERS[method](weights, rng)
        assert not np.isin(indices, [0, 13]).any()


@pytest.mark.parametrize("method", METHODS)
def test_all_zero_weights_uniform_fallback(method):
    rng = default_rng(3)
    weights = np.zeros(10)

    with pytest.warns(RuntimeWarning):
        indices = RESAMPLERS[method](weights, rng)

    assert indices.shape == (10,)
    assert indices.min() >= 0 and indices.max() < 10


def test_wheel_uniform_fallback_covers_population():
    rng = default_rng(4)
    seen = set()
    with pytest.warns(RuntimeWarning):
        for _ in range(50):
            seen.update(resampling_wheel(np.zeros(8), rng).tolist())
    assert seen == set(range(8))


def test_wheel_single_nonzero_weight():
    weights = np.zeros(15)
    weights[4] = 0.7
    indices = resampling_wheel(weights, default_rng(5))
    assert np.all(indices == 4)


def test_wheel_is_reproducible_with_seed():
    weights = default_rng(0).uniform(size=30)
    a = resampling_wheel(weights, default_rng(9))
    b = resampling_wheel(weights, default_rng(9))
    assert np.array_equal(a, b)


def test_systematic_equal_weights_selects_each_once():
    indices = systematic_resample(np.full(25, 3.0), default_rng(6))
    assert np.array_equal(np.sort(indices), np.arange(25))


def test_normalize_weights():
    w, valid = normalize_weights(np.array([1.0, 3.0]))
    assert valid
    np.testing.assert_allclose(w, [0.25, 0.75])

    w, valid = normalize_weights(np.zeros(4))
    assert not valid
    np.testing.assert_allclose(w, np.full(4, 0.25))

    w, valid = normalize_weights(np.array([1.0, np.inf, 2.0, np.inf]))
    assert valid
    np.testing.assert_allclose(w, [0.0, 0.5, 0.0, 0.5])

    w, valid = normalize_weights(np.array([1.0, np.nan]))
    assert not valid

    # sum of the raw weights overflows
    w, valid = normalize_weights(np.array([1e308, 1e308]))
    assert valid
    np.testing.assert_allclose(w, [0.5, 0.5])


def test_effective_sample_size():
    assert effective_sample_size(np.full(10, 2.0)) == pytest.approx(10.0)
    assert effective_sample_size(np.array([0.0, 0.0, 5.0])) == pytest.approx(1.0)
    assert effective_sample_size(np.zeros(5)) == 0.0


@pytest.mark.parametrize("method", METHODS)
def test_infinite_weights_take_all_mass(method):
    rng = default_rng(7)
    weights = np.zeros(12)
    weights[[3, 8]] = np.inf
    weights[5] = 1e300

    with warnings.catch_warnings():
        warnings.simplefilter("error", RuntimeWarning)
        for _ in range(20):
            indices = RESAMPLERS[method](weights, rng)
            assert np.isin(indices, [3, 8]).all()


@pytest.mark.parametrize("method", METHODS)
def test_nan_weights_uniform_fallback(method):
    weights = np.ones(6)
    weights[2] = np.nan

    with pytest.warns(RuntimeWarning, match="zero or non-finite"):
        indices = RESAMPLERS[method](weights, default_rng(8))

    assert indices.shape == (6,)


def test_effective_sample_size_infinite_weights():
    assert effective_sample_size(np.array([np.inf, 0.0, np.inf, 3.0])) == pytest.approx(2.0)
