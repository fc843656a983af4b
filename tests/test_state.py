import numpy as np
import pytest

from pcatracker.state import (NUM_STATES, ParticleState, DynamicsSpec, Ensemble, configure, initEnsemble,
                              getState, setState, resample, predict, applyBounds, applyAdditionalBound)

IMSIZE = (100, 80)


def makeEnsemble(columns, previous=None):
    current = np.array(columns, dtype = np.float64).T
    prev = None if previous is None else np.array(previous, dtype = np.float64).T
    return Ensemble(current, prev)


def test_configure_bounds_table():
    spec = configure(IMSIZE, ParticleState(1, 2, 3, 4, 5))
    assert np.array_equal(spec.bounds, [
        [0, 99, 0],
        [0, 79, 0],
        [1, 100, 0],
        [1, 80, 0],
        [0, 360, 1],
    ])
    assert np.array_equal(spec.noiseStd, [1, 2, 3, 4, 5])
    assert np.array_equal(spec.dynamics, 2 * np.eye(NUM_STATES))


def test_spec_is_read_only():
    spec = configure(IMSIZE, np.ones(NUM_STATES))
    with pytest.raises(ValueError):
        spec.noiseStd[0] = 10
    with pytest.raises(ValueError):
        DynamicsSpec(np.eye(3), np.ones(NUM_STATES), spec.bounds)


def test_angle_wraps():
    spec = configure(IMSIZE, np.zeros(NUM_STATES))
    ens = makeEnsemble([[10, 10, 5, 5, 370], [10, 10, 5, 5, -10], [10, 10, 5, 5, 360], [10, 10, 5, 5, 725]])
    applyBounds(ens, spec)
    assert np.allclose(ens.current[4], [10, 350, 0, 5])


def test_position_and_extent_clamp():
    spec = configure(IMSIZE, np.zeros(NUM_STATES))
    ens = makeEnsemble([[-5, 200, 0.5, 150, 0]])
    applyBounds(ens, spec)
    assert np.allclose(ens.current[:, 0], [0, 79, 1, 80, 0])


def test_unbounded_dimension_is_left_alone():
    bounds = np.zeros((NUM_STATES, 3))
    spec = DynamicsSpec(2 * np.eye(NUM_STATES), np.zeros(NUM_STATES), bounds)
    ens = makeEnsemble([[-50, 1e6, -3, 0, 1000]])
    applyBounds(ens, spec)
    assert np.array_equal(ens.current[:, 0], [-50, 1e6, -3, 0, 1000])


def test_apply_bounds_is_idempotent():
    rng = np.random.default_rng(3)
    spec = configure(IMSIZE, np.zeros(NUM_STATES))
    ens = Ensemble(rng.uniform(-800, 800, (NUM_STATES, 500)))
    applyBounds(ens, spec)
    once = ens.current.copy()
    applyBounds(ens, spec)
    assert np.array_equal(ens.current, once)
    assert np.all(ens.current[4] >= 0) and np.all(ens.current[4] < 360)


def test_additional_bound_uses_bounded_position():
    ens = makeEnsemble([[90, 70, 30, 30, 0], [10, 10, 20, 20, 0], [99, 79, 50, 50, 0]])
    applyAdditionalBound(ens, IMSIZE)
    assert np.allclose(ens.current[2], [10, 20, 1])
    assert np.allclose(ens.current[3], [10, 20, 1])
    # position is not re-derived
    assert np.allclose(ens.current[0], [90, 10, 99])


def test_additional_bound_floors_extent():
    ens = makeEnsemble([[10, 10, 0.2, -3, 0]])
    applyAdditionalBound(ens, IMSIZE)
    assert np.allclose(ens.current[2:4, 0], [1, 1])


def test_predict_constant_velocity_without_noise():
    spec = configure(IMSIZE, np.zeros(NUM_STATES))
    ens = makeEnsemble([[10, 20, 30, 40, 5]], previous = [[8, 21, 30, 38, 0]])
    nxt = predict(ens, spec)
    assert np.allclose(nxt.current[:, 0], [12, 19, 30, 42, 10])
    assert np.array_equal(nxt.previous, ens.current)
    assert nxt.current is not ens.current


def test_predict_random_walk_dynamics():
    spec = configure(IMSIZE, np.zeros(NUM_STATES), dynamics = np.eye(NUM_STATES))
    ens = makeEnsemble([[10, 20, 30, 40, 5]], previous = [[0, 0, 0, 0, 0]])
    assert np.allclose(predict(ens, spec).current, ens.current)


def test_predict_noise_has_configured_stdev():
    std = np.array([1.0, 2.0, 0.5, 0.0, 3.0])
    spec = configure(IMSIZE, std)
    ens = initEnsemble(ParticleState(50, 40, 20, 10, 0), 20000)
    nxt = predict(ens, spec, np.random.default_rng(0))
    deviation = nxt.current - ens.current
    assert np.allclose(np.std(deviation, axis = 1), std, atol = 0.05)
    assert np.allclose(np.mean(deviation, axis = 1), 0, atol = 0.1)


def test_resample_keeps_previous_with_current():
    ens = makeEnsemble([[1, 1, 1, 1, 1], [2, 2, 2, 2, 2]], previous = [[-1, -1, -1, -1, -1], [-2, -2, -2, -2, -2]])
    out = resample(ens, [1, 1, 0])
    assert np.array_equal(out.current[0], [2, 2, 1])
    assert np.array_equal(out.previous[0], [-2, -2, -1])
    assert len(out) == 3


def test_state_accessors():
    ens = initEnsemble(ParticleState(1, 2, 3, 4, 5), 3)
    setState(ens, 1, ParticleState(6, 7, 8, 9, 10))
    assert getState(ens, 1) == ParticleState(6, 7, 8, 9, 10)
    assert getState(ens, 0) == ParticleState(1, 2, 3, 4, 5)
    assert np.array_equal(ens.previous[:, 1], [1, 2, 3, 4, 5])
    box = getState(ens, 1).toBox()
    assert (box.cx, box.cy, box.width, box.height, box.angle) == (6, 7, 8, 9, 10)


def test_ensemble_shape_is_checked():
    with pytest.raises(ValueError):
        Ensemble(np.zeros((4, 10)))
    with pytest.raises(ValueError):
        Ensemble(np.zeros((NUM_STATES, 10)), np.zeros((NUM_STATES, 9)))
    with pytest.raises(ValueError):
        ParticleState.fromArray([1, 2, 3])
