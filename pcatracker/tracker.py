import logging
import numpy as np
from .state import (ParticleState, DYNAMICS, configure, initEnsemble, resample, predict,
                    applyBounds, applyAdditionalBound, getState)
from .model_specific import NPARTICLES, NOISE_STD

logger = logging.getLogger(__name__)


class ParticleTracker():
    """Particle filter tracking one rotated rectangle.

        Attributes
        ----------
        observer : PcaDiffsObserver or TemplateObserver
            observation model, anything with likelihood(ensemble, frame, preFrame, probs)
        noiseStd : ParticleState or ndarray
            stdevs of dynamic process
        nparticles : int
            number of particles
        dynamics : ndarray
            dynamics matrix applied to the current state
        rng : np.random.Generator or module
            random source for resampling and dynamics noise
    """

    def __init__(self, observer, noiseStd=NOISE_STD, nparticles=NPARTICLES, dynamics=DYNAMICS, rng=np.random):
        if nparticles < 1:
            raise ValueError('nparticles must be positive')
        self.observer = observer
        self.noiseStd = noiseStd
        self.nparticles = nparticles
        self.dynamics = dynamics
        self.rng = rng

        self.trackerInitialized = False
        self.spec = None
        self.imageSize = None
        self.ensemble = None
        self.preFrame = None
        self.param = {}

    def init(self, frame, initialState):
        """Initialize tracker."""

        if self.trackerInitialized:
            return

        self.imageSize = (frame.shape[1], frame.shape[0])
        self.spec = configure(self.imageSize, self.noiseStd, self.dynamics)
        self.ensemble = initEnsemble(initialState, self.nparticles)
        self.param['est'] = initialState
        self.param['conf'] = np.full(self.nparticles, 1. / self.nparticles, dtype = np.float64)
        self.param['probs'] = np.zeros(self.nparticles, dtype = np.float64)
        self.trackerInitialized = True
        logger.info('tracker initialized at %s with %d particles', initialState, self.nparticles)

    def track(self, frame, initialState = None):
        """Track object location on given frame."""

        # Initialize tracker when the first object state is given
        if not self.trackerInitialized:
            if initialState is None:
                raise ValueError('tracker needs an initial state on the first frame')
            self.init(frame, initialState)

        self.estimateCondensation(frame)
        self.preFrame = frame
        return self.param['est']

    def estimateCondensation(self, frame):
        """CONDENSATION estimator. It looks for the most likely particle"""

        # Propagate density
        cumconf = self.param['conf'].cumsum(axis = 0)
        cumconf = np.expand_dims(cumconf, axis = 1)
        uniformNN = np.tile(self.rng.random((1, self.nparticles)), (self.nparticles, 1))
        cumconfNN = np.tile(cumconf, (1, self.nparticles))
        cdfIds = np.sum(uniformNN > cumconfNN, axis = 0)
        cdfIds = np.minimum(cdfIds, self.nparticles - 1)
        self.ensemble = resample(self.ensemble, cdfIds)

        # Apply dynamical model
        self.ensemble = predict(self.ensemble, self.spec, self.rng)
        applyBounds(self.ensemble, self.spec)
        applyAdditionalBound(self.ensemble, self.imageSize)

        # Apply observation model
        probs = self.param['probs']
        self.observer.likelihood(self.ensemble, frame, self.preFrame, probs)

        # Normalize log likelihoods into weights
        finite = np.isfinite(probs)
        if not np.any(finite):
            logger.warning('no particle could be scored, falling back to uniform weights')
            conf = np.full(self.nparticles, 1. / self.nparticles, dtype = np.float64)
        else:
            conf = np.zeros(self.nparticles, dtype = np.float64)
            conf[finite] = np.exp(probs[finite] - np.max(probs[finite]))
            conf = conf / np.sum(conf)
        self.param['conf'] = conf

        # Store most likely particle
        maxidx = int(np.argmax(conf))
        self.param['maxidx'] = maxidx
        self.param['est'] = getState(self.ensemble, maxidx)

    def getMeanState(self):
        """Weighted mean of the particles, circular mean for the angle."""
        conf = self.param['conf']
        states = self.ensemble.current
        mean = states[0:4] @ conf
        rad = np.radians(states[4])
        angle = np.degrees(np.arctan2(np.sin(rad) @ conf, np.cos(rad) @ conf)) % 360.0
        return ParticleState(float(mean[0]), float(mean[1]), float(mean[2]), float(mean[3]), float(angle))

    def getParam(self):
        return self.param

    def getEnsemble(self):
        return self.ensemble
