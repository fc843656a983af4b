import numpy as np
import cv2 as cv
import pytest

from pcatracker.geometry import Rect32f, Box32f
from pcatracker.patch import (cropImageROI, toGray, gaussNorm, preprocess, extractNormalizedPatch,
                              extractNormalizedPatches, featureVector)


def randomImage(shape=(100, 100), seed=0):
    return np.random.default_rng(seed).integers(0, 256, shape, dtype = np.uint8)


def test_normalized_patch_has_zero_mean_unit_variance():
    image = randomImage()
    patch = extractNormalizedPatch(image, Box32f(50, 50, 20, 20, 0), (24, 24))
    assert patch.shape == (24, 24)
    assert abs(np.mean(patch)) < 1e-9
    assert np.std(patch) == pytest.approx(1.0)


def test_out_size_is_width_height():
    patch = extractNormalizedPatch(randomImage(), Box32f(50, 50, 20, 10, 0), (16, 8))
    assert patch.shape == (8, 16)


def test_unrotated_crop_equals_slice():
    image = np.arange(100 * 100, dtype = np.float32).reshape((100, 100))
    patch = cropImageROI(image, Rect32f(10, 20, 15, 12, 0))
    assert patch.shape == (12, 15)
    assert np.allclose(patch, image[20:32, 10:25], atol = 1e-3)


def test_rotated_crop_is_derotated():
    # intensity grows with x only
    image = np.tile(np.arange(100, dtype = np.float32), (100, 1))
    patch = extractNormalizedPatch(image, Box32f(50, 50, 20, 20, 90), (20, 20), normalize = False)
    # after a quarter turn the gradient runs down the rows
    assert np.allclose(patch - patch[:, 0:1], 0, atol = 1e-3)
    assert np.all(np.diff(patch[:, 0]) > 0)


def test_degenerate_rectangle_is_rejected():
    with pytest.raises(ValueError):
        cropImageROI(randomImage(), Rect32f(10, 10, 0.2, 5, 0))
    with pytest.raises(ValueError):
        extractNormalizedPatch(randomImage(), Box32f(10, 10, 5, -4, 0))


def test_color_input_is_converted_to_gray():
    gray = randomImage()
    color = cv.cvtColor(gray, cv.COLOR_GRAY2BGR)
    box = Box32f(40, 60, 30, 20, 15)
    assert np.allclose(extractNormalizedPatch(color, box), extractNormalizedPatch(gray, box))
    assert toGray(color).ndim == 2
    assert toGray(gray) is gray


def test_source_image_is_not_modified():
    image = randomImage()
    original = image.copy()
    extractNormalizedPatch(image, Box32f(50, 50, 30, 30, 20))
    assert np.array_equal(image, original)


def test_gauss_norm_of_constant_patch():
    assert np.array_equal(gaussNorm(np.full((4, 4), 7.0)), np.zeros((4, 4)))


def test_preprocess_without_normalization_keeps_intensities():
    mat = preprocess(np.full((10, 10), 42, dtype = np.uint8), (5, 5), normalize = False)
    assert mat.dtype == np.float64
    assert np.allclose(mat, 42)


def test_feature_vector_is_column_major():
    assert np.array_equal(featureVector(np.array([[1, 2], [3, 4]])), [1, 3, 2, 4])


def test_failed_particle_does_not_abort_others():
    states = np.array([
        [50, 50, 20, 20, 0],
        [50, 50, 0.2, 20, 0],
        [30, 30, 10, 10, 45],
    ], dtype = np.float64).T
    patches, failed = extractNormalizedPatches(randomImage(), states, (24, 24))
    assert patches.shape == (3, 24, 24)
    assert list(failed) == [False, True, False]
    assert np.array_equal(patches[1], np.zeros((24, 24)))
    assert np.std(patches[2]) == pytest.approx(1.0)


def test_float64_color_frame_matches_its_gray_version():
    gray = np.random.default_rng(4).random((100, 100))
    box = Box32f(50, 50, 20, 20, 10)
    expected = extractNormalizedPatch(gray, box)
    for color in (np.dstack((gray, gray, gray)), np.dstack((gray, gray, gray, np.ones_like(gray)))):
        assert color.dtype == np.float64
        assert np.allclose(extractNormalizedPatch(color, box), expected, atol = 1e-4)
    assert toGray(np.dstack((gray, gray, gray))).ndim == 2


def test_sheared_crop_samples_parallelogram():
    # intensity equals x
    image = np.tile(np.arange(100, dtype = np.float32), (100, 1))
    patch = cropImageROI(image, Rect32f(20, 20, 10, 10, 0), shear = (0.5, 0))
    v, u = np.mgrid[0:10, 0:10]
    assert patch.shape == (10, 10)
    assert np.allclose(patch, 20 + u + 0.5 * v, atol = 1e-3)
    # intensity equals y
    patch = cropImageROI(image.T.copy(), Rect32f(20, 20, 10, 10, 0), shear = (0, 0.25))
    assert np.allclose(patch, 20 + v + 0.25 * u, atol = 1e-3)
