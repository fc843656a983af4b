import logging
import numpy as np
import cv2 as cv
from .geometry import Box32f, rotationMatrix, rect32fFromBox32f
from .model_specific import FEATURE_SIZE

logger = logging.getLogger(__name__)


def cropImageROI(image, rect, shear=(0, 0)):
    """Crop a rotated rectangle into an upright patch.

        The patch has round(width) x round(height) pixels and is sampled
        with bilinear interpolation. Pixels falling outside of the image are
        filled with 0; callers are expected to bound the rectangle first.

        Attributes
        ----------
        image : ndarray
            source image, gray or BGR. Never modified
        rect : Rect32f
            region of interest
        shear : tuple
            shear deformation of the affine transform

        Return
        ----------
        patch : ndarray
            patch of size (round(height), round(width)[, channels])
    """
    pw = int(round(rect.width))
    ph = int(round(rect.height))
    if pw < 1 or ph < 1:
        raise ValueError('degenerate rectangle (width=%g, height=%g)' % (rect.width, rect.height))

    # patch pixel (u, v) -> image pixel
    S = np.array([[1.0, shear[0]], [shear[1], 1.0]])
    M = np.zeros((2, 3), dtype=np.float64)
    M[:, 0:2] = rotationMatrix(rect.angle) @ S @ np.diag([rect.width / pw, rect.height / ph])
    M[:, 2] = (rect.x, rect.y)
    return cv.warpAffine(image, M, (pw, ph), None, cv.INTER_LINEAR | cv.WARP_INVERSE_MAP, cv.BORDER_CONSTANT, 0)


def toGray(patch):
    if patch.ndim < 3:
        return patch
    if patch.shape[2] == 1:
        return patch[:, :, 0]
    # cvtColor takes 8U, 16U and 32F only
    if patch.dtype not in (np.uint8, np.uint16, np.float32):
        patch = patch.astype(np.float32)
    if patch.shape[2] == 4:
        return cv.cvtColor(patch, cv.COLOR_BGRA2GRAY)
    return cv.cvtColor(patch, cv.COLOR_BGR2GRAY)


def gaussNorm(mat):
    """Normalize to zero mean and unit variance.

        A constant patch has no variance to scale and is only mean-subtracted.
    """
    mat = mat - np.mean(mat)
    std = np.std(mat)
    if std > 0:
        mat = mat / std
    return mat


def preprocess(patch, featureSize=FEATURE_SIZE, normalize=True):
    """Grayscale, resize to featureSize (width, height) and normalize as when training the subspace."""
    gray = toGray(patch)
    resized = cv.resize(gray, featureSize, None, 0, 0, cv.INTER_LINEAR)
    mat = resized.astype(np.float64)
    if normalize:
        mat = gaussNorm(mat)
    return mat


def extractNormalizedPatch(image, box, outSize=FEATURE_SIZE, normalize=True):
    """Crop the oriented box from image and preprocess it into an outSize patch.

        The box must lie inside the image and have positive extents.
    """
    patch = cropImageROI(image, rect32fFromBox32f(box))
    return preprocess(patch, outSize, normalize)


def featureVector(mat):
    # column-major, as subspaces trained with matlab's reshape expect
    return mat.flatten('F')


def extractNormalizedPatches(image, states, outSize=FEATURE_SIZE, normalize=True):
    """extractNormalizedPatch for every particle column of states (x, y, width, height, angle).

        A particle whose patch cannot be extracted is reported in failed and
        left as zeros, the others are still processed.

        Return
        ----------
        patches : ndarray
            patches of size (nparticles, outSize[1], outSize[0])
        failed : ndarray
            bool mask of size (nparticles,)
    """
    nparticles = states.shape[1]
    patches = np.zeros((nparticles, outSize[1], outSize[0]), dtype=np.float64)
    failed = np.zeros(nparticles, dtype=bool)
    for n in range(nparticles):
        box = Box32f(*(float(v) for v in states[:, n]))
        try:
            patches[n] = extractNormalizedPatch(image, box, outSize, normalize)
        except (ValueError, cv.error) as e:
            logger.warning('particle %d: patch extraction failed for %s: %s', n, box, e)
            failed[n] = True
    return patches, failed
