import math
from dataclasses import dataclass
import numpy as np
import cv2 as cv

# Corners of the unit square in the rectangle's own frame:
# top-left, top-right, bottom-right, bottom-left
UNIT_SQUARE = np.array([[0, 0], [1, 0], [1, 1], [0, 1]], dtype=np.float64)


@dataclass(frozen=True)
class Rect32f:
    """Floating point rectangle rotated about its top-left corner.

        Attributes
        ----------
        x, y : float
            top-left corner
        width, height : float
            extent
        angle : float
            rotation around (x, y) in degrees
    """
    x: float
    y: float
    width: float
    height: float
    angle: float = 0.0


@dataclass(frozen=True)
class Box32f:
    """Floating point rectangle rotated about its center."""
    cx: float
    cy: float
    width: float
    height: float
    angle: float = 0.0


def rotationMatrix(angle):
    """2x2 rotation of angle degrees, same direction as cv.getRotationMatrix2D."""
    rad = math.radians(angle)
    c = math.cos(rad)
    s = math.sin(rad)
    return np.array([[c, s], [-s, c]], dtype=np.float64)


def box32fFromRect32f(rect):
    R = rotationMatrix(rect.angle)
    c = np.array([rect.x, rect.y]) + R @ np.array([rect.width / 2.0, rect.height / 2.0])
    return Box32f(float(c[0]), float(c[1]), rect.width, rect.height, rect.angle)


def rect32fFromBox32f(box):
    R = rotationMatrix(box.angle)
    tl = np.array([box.cx, box.cy]) - R @ np.array([box.width / 2.0, box.height / 2.0])
    return Rect32f(float(tl[0]), float(tl[1]), box.width, box.height, box.angle)


def rect32fFromRect(rect):
    """Axis aligned (x, y, width, height) to Rect32f."""
    x, y, width, height = rect
    return Rect32f(float(x), float(y), float(width), float(height), 0.0)


def rectFromRect32f(rect):
    """Axis aligned integer bounding rectangle (x, y, width, height) of a Rect32f."""
    points = rectPoints(rect)
    x1, y1 = np.floor(points.min(axis=0))
    x2, y2 = np.ceil(points.max(axis=0))
    return int(x1), int(y1), int(x2 - x1), int(y2 - y1)


def createAffine(rect, shear=(0, 0)):
    """Affine transform mapping the unit square onto rect.

        A = translate(x, y) * rotate(angle) * shear(shx, shy) * scale(width, height)

        Return
        ----------
        A : ndarray
            matrix of size (2,3)
    """
    S = np.array([[1.0, shear[0]], [shear[1], 1.0]])
    A = np.zeros((2, 3), dtype=np.float64)
    A[:, 0:2] = rotationMatrix(rect.angle) @ S @ np.diag([rect.width, rect.height])
    A[:, 2] = (rect.x, rect.y)
    return A


def rectPoints(rect, shear=(0, 0)):
    """Find 4 corners of rectangle.

        Corners are ordered as the unit square (0,0), (1,0), (1,1), (0,1)
        in the rectangle's own frame, i.e. top-left, top-right,
        bottom-right, bottom-left before rotation.

        Return
        ----------
        pt : ndarray
            corners of size (4,2)
    """
    if shear[0] == 0 and shear[1] == 0:
        box = box32fFromRect32f(rect)
        halfw = box.width / 2.0
        halfh = box.height / 2.0
        offsets = np.array([[-halfw, -halfh], [halfw, -halfh], [halfw, halfh], [-halfw, halfh]])
        return np.array([box.cx, box.cy]) + offsets @ rotationMatrix(box.angle).T

    A = createAffine(rect, shear)
    return UNIT_SQUARE @ A[:, 0:2].T + A[:, 2]


def boxPoints(box, shear=(0, 0)):
    return rectPoints(rect32fFromBox32f(box), shear)


def pointRectTest(rect, pt, measureDist=False, shear=(0, 0)):
    """Point in rectangle test.

        Attributes
        ----------
        rect : Rect32f
            rectangle, rotated if angle != 0
        pt : tuple
            the point tested against the rectangle
        measureDist : bool
            False - return positive, negative, 0 if inside, outside, on the boundary
            True - return signed distance to the nearest rectangle edge
        shear : tuple
            shear deformation of the affine transform

        Return
        ----------
        test : float
    """
    contour = rectPoints(rect, shear).astype(np.float32).reshape((-1, 1, 2))
    return float(cv.pointPolygonTest(contour, (float(pt[0]), float(pt[1])), bool(measureDist)))


def pointBoxTest(box, pt, measureDist=False, shear=(0, 0)):
    return pointRectTest(rect32fFromBox32f(box), pt, measureDist, shear)
