"""Template matching observation model for the particle filter."""
import numpy as np
from .patch import extractNormalizedPatch, extractNormalizedPatches, preprocess
from .model_specific import FEATURE_SIZE


class TemplateObserver():
    """Negative L2 distance between each particle's patch and a reference.

        log likelihood of a gaussian model, exp( -d^2 / sigma^2 ). sigma is
        omitted because a common parameter does not change the ML estimate.

        Attributes
        ----------
        reference : ndarray
            grayscale reference patch of size (featureSize[1], featureSize[0])
        featureSize : tuple
            (width, height) patches are sampled at
    """

    def __init__(self, reference, featureSize=FEATURE_SIZE):
        self.featureSize = tuple(featureSize)
        self.reference = preprocess(reference, self.featureSize, normalize=False)
        self.reference.setflags(write=False)

    @classmethod
    def fromFrame(cls, frame, state, featureSize=FEATURE_SIZE):
        """Take the reference from the particle state's rectangle on frame."""
        return cls(extractNormalizedPatch(frame, state.toBox(), featureSize, normalize=False), featureSize)

    def likelihood(self, ensemble, frame, preFrame=None, probs=None):
        if self.reference is None:
            raise RuntimeError('observation model has been finalized')
        patches, failed = extractNormalizedPatches(frame, ensemble.current, self.featureSize, normalize=False)
        diff = patches - self.reference
        scores = -np.sqrt(np.sum(np.power(diff, 2), axis = (1, 2)))
        scores[failed] = -np.inf
        if probs is None:
            return scores
        probs[:] = scores
        return probs

    def finalize(self):
        self.reference = None
