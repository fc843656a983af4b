"""Rotated rectangle particle state and its constant velocity dynamics.

The ensemble of particles is kept column-wise: one column per particle and
one row per state dimension (x, y, width, height, angle). Both the current
and the previous ensemble are stored so that the linear transition can
extrapolate velocity:

    current  := current + (current - previous) + noise
    previous := current
"""
from dataclasses import dataclass
import numpy as np
from .geometry import Box32f
from .model_specific import MIN_EXTENT

NUM_STATES = 5

# new = dynamics * current + (I - dynamics) * previous + noise
DYNAMICS = 2 * np.eye(NUM_STATES, dtype=np.float64)


@dataclass
class ParticleState:
    """State of one particle.

        Attributes
        ----------
        x, y : float
            center coord of a rectangle
        width, height : float
            extent of a rectangle
        angle : float
            rotation around center in degrees
    """
    x: float
    y: float
    width: float
    height: float
    angle: float = 0.0

    def toArray(self):
        return np.array([self.x, self.y, self.width, self.height, self.angle], dtype=np.float64)

    @classmethod
    def fromArray(cls, arr):
        if len(arr) != NUM_STATES:
            raise ValueError('state must have %d elements, got %d' % (NUM_STATES, len(arr)))
        return cls(*(float(v) for v in arr))

    def toBox(self):
        return Box32f(self.x, self.y, self.width, self.height, self.angle)


@dataclass(frozen=True, eq=False)
class DynamicsSpec:
    """Linear dynamics, noise and bounds of the state. Immutable once configured.

        Attributes
        ----------
        dynamics : ndarray
            matrix of size (NUM_STATES, NUM_STATES) applied to the current state
        noiseStd : ndarray
            stdev of gaussian noise per state dimension
        bounds : ndarray
            (lower, upper, circular) per state dimension of size (NUM_STATES, 3).
            lower == upper means no bounding
    """
    dynamics: np.ndarray
    noiseStd: np.ndarray
    bounds: np.ndarray

    def __post_init__(self):
        for name, shape in (('dynamics', (NUM_STATES, NUM_STATES)), ('noiseStd', (NUM_STATES,)), ('bounds', (NUM_STATES, 3))):
            arr = np.array(getattr(self, name), dtype=np.float64)
            if arr.shape != shape:
                raise ValueError('%s must be of shape %s, got %s' % (name, shape, arr.shape))
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

    @property
    def transition(self):
        """Matrix of size (NUM_STATES, 2*NUM_STATES) applied to the stacked [current; previous]."""
        return np.hstack((self.dynamics, np.eye(NUM_STATES) - self.dynamics))


class Ensemble():
    """Particles of the current and the previous time step.

        Attributes
        ----------
        current : ndarray
            states of size (NUM_STATES, nparticles)
        previous : ndarray
            states of one step before, same size
    """

    def __init__(self, current, previous=None):
        current = np.array(current, dtype=np.float64)
        previous = current.copy() if previous is None else np.array(previous, dtype=np.float64)
        if current.ndim != 2 or current.shape[0] != NUM_STATES:
            raise ValueError('ensemble must have %d rows, got shape %s' % (NUM_STATES, current.shape))
        if previous.shape != current.shape:
            raise ValueError('previous ensemble of shape %s does not match %s' % (previous.shape, current.shape))
        self.current = current
        self.previous = previous

    @property
    def nparticles(self):
        return self.current.shape[1]

    def __len__(self):
        return self.nparticles


def initEnsemble(state, nparticles):
    """All particles start at state with zero velocity."""
    column = np.expand_dims(state.toArray(), axis = 1)
    return Ensemble(np.tile(column, (1, nparticles)))


def getState(ensemble, pid):
    return ParticleState.fromArray(ensemble.current[:, pid])


def setState(ensemble, pid, state):
    ensemble.current[:, pid] = state.toArray()


def resample(ensemble, indices):
    """Pick particles by indices, keeping each particle's previous state along."""
    indices = np.asarray(indices, dtype=np.intp)
    return Ensemble(ensemble.current[:, indices], ensemble.previous[:, indices])


def configure(imageSize, noiseStd, dynamics=DYNAMICS):
    """Configuration of the particle state model.

        Attributes
        ----------
        imageSize : tuple
            (width, height) of frames
        noiseStd : ParticleState or array-like
            stdev of the dynamics noise per state dimension
        dynamics : ndarray
            2*I for constant velocity, I for a random walk

        Return
        ----------
        spec : DynamicsSpec
    """
    width, height = imageSize
    if isinstance(noiseStd, ParticleState):
        noiseStd = noiseStd.toArray()
    # lowerbound, upperbound, circular flag (useful for degree)
    bounds = np.array([
        [0, width - 1, False],
        [0, height - 1, False],
        [1, width, False],
        [1, height, False],
        [0, 360, True],
    ], dtype=np.float64)
    return DynamicsSpec(dynamics, noiseStd, bounds)


def predict(ensemble, spec, rng=np.random):
    """Apply the linear transition plus gaussian noise to every particle.

        rng is anything with numpy's normal(loc, scale, size), e.g. the
        np.random module or a np.random.Generator.
    """
    stacked = np.vstack((ensemble.current, ensemble.previous))
    noise = rng.normal(0.0, np.expand_dims(spec.noiseStd, axis = 1), ensemble.current.shape)
    return Ensemble(spec.transition @ stacked + noise, ensemble.current.copy())


def applyBounds(ensemble, spec):
    """Clamp or wrap the current states into their bounds (in-place)."""
    states = ensemble.current
    for d in range(NUM_STATES):
        lower, upper, circular = spec.bounds[d]
        if lower == upper:
            continue
        row = states[d]
        if circular:
            outside = (row < lower) | (row >= upper)
            wrapped = lower + np.mod(row[outside] - lower, upper - lower)
            wrapped[wrapped >= upper] = lower
            row[outside] = wrapped
        else:
            np.clip(row, lower, upper, out = row)


def applyAdditionalBound(ensemble, imageSize, minExtent=MIN_EXTENT):
    """Keep the rectangle's right and bottom edges inside the image (in-place).

        Call after applyBounds. The already bounded x and y are used as is and
        are not re-derived from the tightened width and height.
    """
    states = ensemble.current
    width, height = imageSize
    states[2] = np.maximum(np.minimum(states[2], width - states[0]), minExtent) # another state x is used
    states[3] = np.maximum(np.minimum(states[3], height - states[1]), minExtent) # another state y is used
