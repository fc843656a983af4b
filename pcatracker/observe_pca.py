"""Moghaddam's PCA DIFS + DFFS observation model for the particle filter.

A particle is scored by how well its normalized patch is explained by a
precomputed principal component subspace:

    DIFS = sum_i y_i^2 / lambda_i        (distance in feature space)
    DFFS = ||(I - mu) - U y||^2 / rho    (distance from feature space)
    score = -(DIFS + DFFS)

where y = U^T (I - mu) are the coefficients of the mean subtracted
feature vector on the retained eigenvectors U.
"""
import os
import logging
from dataclasses import dataclass
import numpy as np
import cv2 as cv
from .patch import extractNormalizedPatches
from .model_specific import FEATURE_SIZE, DATA_DIR, DATA_PCAVAL, DATA_PCAVEC, DATA_PCAAVG

logger = logging.getLogger(__name__)


def loadTensor(path):
    """Load one numeric tensor from OpenCV FileStorage (first top-level node) or .npy."""
    if not os.path.isfile(path):
        raise IOError('%s is not loadable.' % path)
    if path.endswith('.npy'):
        return np.load(path)
    try:
        fs = cv.FileStorage(path, cv.FILE_STORAGE_READ)
        try:
            if not fs.isOpened():
                raise IOError('%s is not loadable.' % path)
            mat = fs.getFirstTopLevelNode().mat()
        finally:
            fs.release()
    except cv.error as e:
        raise IOError('%s is not loadable: %s' % (path, e)) from e
    if mat is None:
        raise IOError('%s does not hold a matrix.' % path)
    return mat


@dataclass(eq=False)
class SubspaceModel:
    """Precomputed PCA subspace. Read-only once constructed.

        Attributes
        ----------
        eigenvalues : ndarray
            eigenvalues of size (M,), or (K,) with K > M when trailing
            eigenvalues of the discarded components are also known
        eigenvectors : ndarray
            retained basis of size (M, D), one eigenvector per row
        mean : ndarray
            mean feature vector of size (D,)
    """
    eigenvalues: np.ndarray
    eigenvectors: np.ndarray
    mean: np.ndarray

    def __post_init__(self):
        self.eigenvalues = np.array(self.eigenvalues, dtype=np.float64).flatten()
        self.eigenvectors = np.array(self.eigenvectors, dtype=np.float64)
        self.mean = np.array(self.mean, dtype=np.float64).flatten()
        if self.eigenvectors.ndim != 2:
            raise ValueError('eigenvectors must be a matrix, got shape %s' % (self.eigenvectors.shape,))
        if self.eigenvalues.size < self.ncomponents:
            raise ValueError('%d eigenvalues for %d eigenvectors' % (self.eigenvalues.size, self.ncomponents))
        if self.mean.size != self.featureLength:
            raise ValueError('mean of length %d does not match eigenvectors of length %d' % (self.mean.size, self.featureLength))
        if np.any(self.eigenvalues[:self.ncomponents] <= 0):
            raise ValueError('retained eigenvalues must be positive')
        for arr in (self.eigenvalues, self.eigenvectors, self.mean):
            arr.setflags(write=False)

    @classmethod
    def load(cls, valPath, vecPath, avgPath):
        """Load eigenvalues, eigenvectors and mean. All three are required."""
        model = cls(loadTensor(valPath), loadTensor(vecPath), loadTensor(avgPath))
        logger.info('loaded subspace of %d components, feature length %d', model.ncomponents, model.featureLength)
        return model

    @property
    def ncomponents(self):
        return self.eigenvectors.shape[0]

    @property
    def featureLength(self):
        return self.eigenvectors.shape[1]

    @property
    def rho(self):
        """Residual variance per discarded dimension.

            Mean of the trailing eigenvalues when they are known, otherwise the
            smallest retained eigenvalue.
        """
        trailing = self.eigenvalues[self.ncomponents:]
        if trailing.size > 0 and np.mean(trailing) > 0:
            return float(np.mean(trailing))
        return float(self.eigenvalues[self.ncomponents - 1])

    def validate(self, featureLength):
        if featureLength != self.featureLength:
            raise ValueError('feature length %d does not match subspace of length %d' % (featureLength, self.featureLength))

    def release(self):
        self.eigenvalues = None
        self.eigenvectors = None
        self.mean = None


def pcaDiffs(features, model):
    """DIFS and DFFS of every column of features.

        Attributes
        ----------
        features : ndarray
            feature vectors of size (D, N)
        model : SubspaceModel

        Return
        ----------
        difs : ndarray
            distance in feature space of size (N,)
        dffs : ndarray
            squared reconstruction residual of size (N,), not yet divided by rho
    """
    if features.shape[0] != model.featureLength:
        raise ValueError('features of length %d do not match subspace of length %d' % (features.shape[0], model.featureLength))
    U = model.eigenvectors
    diff = (features.T - model.mean).T

    # Compute y = U(I - mu) and (I - mu) - U.T y
    coef = U @ diff
    residual = diff - (U.T @ coef)

    eigval = np.expand_dims(model.eigenvalues[:model.ncomponents], axis = 1)
    difs = np.sum(np.power(coef, 2) / eigval, axis = 0)
    dffs = np.sum(np.power(residual, 2), axis = 0)
    return difs, dffs


def pcaDiffsScore(features, model):
    """Log-likelihood surrogate, -(DIFS + DFFS / rho), per column."""
    difs, dffs = pcaDiffs(features, model)
    return -(difs + dffs / model.rho)


class PcaDiffsObserver():
    """PCA DIFS + DFFS likelihood of particles.

        Attributes
        ----------
        model : SubspaceModel
            subspace shared read-only by all evaluations
        featureSize : tuple
            (width, height) patches are sampled at
    """

    def __init__(self, model, featureSize=FEATURE_SIZE):
        model.validate(featureSize[0] * featureSize[1])
        self.model = model
        self.featureSize = tuple(featureSize)

    def getFeatures(self, ensemble, frame):
        """Feature matrix of size (D, nparticles) and the mask of particles that failed."""
        patches, failed = extractNormalizedPatches(frame, ensemble.current, self.featureSize)
        # vectorize column-major, one column per particle
        features = np.reshape(np.transpose(patches, (2, 1, 0)), (-1, ensemble.nparticles))
        return features, failed

    def likelihood(self, ensemble, frame, preFrame=None, probs=None):
        """Score every particle of ensemble on frame.

            preFrame is accepted for interface compatibility and unused.
            Scores are written into probs when given, else a new array.
        """
        if self.model is None:
            raise RuntimeError('observation model has been finalized')
        features, failed = self.getFeatures(ensemble, frame)
        scores = pcaDiffsScore(features, self.model)
        scores[failed] = -np.inf
        if probs is None:
            return scores
        probs[:] = scores
        return probs

    def finalize(self):
        if self.model is not None:
            self.model.release()
        self.model = None


def initialize(dataDir=DATA_DIR, valFile=DATA_PCAVAL, vecFile=DATA_PCAVEC, avgFile=DATA_PCAAVG, featureSize=FEATURE_SIZE):
    """Load the subspace from dataDir and build the observer."""
    model = SubspaceModel.load(os.path.join(dataDir, valFile), os.path.join(dataDir, vecFile), os.path.join(dataDir, avgFile))
    return PcaDiffsObserver(model, featureSize)
