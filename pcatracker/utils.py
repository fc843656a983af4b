import math
import numpy as np
import cv2 as cv
import matplotlib.pyplot as plt
from .geometry import Box32f, boxPoints
from .patch import extractNormalizedPatch
colorMap = plt.get_cmap('jet')


def convert(img, target_type_min, target_type_max, target_type):
    imin = np.min(img)
    imax = np.max(img)
    if imax == imin:
        return np.full(img.shape, target_type_min, dtype = target_type)

    a = (target_type_max - target_type_min) / (imax - imin)
    b = target_type_max - a * imax
    new_img = (a * img + b).astype(target_type)
    return new_img


def drawBox(img, box, color = (0, 0, 255), thickness = 2):
    """Draw a rotated rectangle (Box32f or ParticleState) on img (in-place)."""
    if not isinstance(box, Box32f):
        box = box.toBox()
    rrectBox = np.round(boxPoints(box)).astype(np.int32)
    cv.drawContours(img, [rrectBox], 0, color, thickness)


def drawParticles(img, ensemble, conf, maxRects = 0):
    """Draw particle centers colorized by weight and the rectangles of the maxRects heaviest (in-place)."""
    states = ensemble.current
    cmax = np.max(conf) if np.max(conf) > 0 else 1.0
    for i in range(states.shape[1]):
        prob = conf[i] / cmax
        if math.isnan(prob):
            prob = 0.0
        colorizedProb = np.array( colorMap( int(prob * 255) )[:-1][::-1] ) * 255
        cv.circle(img, (int(round(states[0, i])), int(round(states[1, i]))), 1, colorizedProb.tolist())
    for i in np.argsort(conf)[::-1][:maxRects]:
        drawBox(img, Box32f(*(float(v) for v in states[:, i])), (255, 127, 0), 1)


def makeDetailedFrame(fno, frame, tracker, featureSize, timeElapsed = 0.0):

    param = tracker.getParam()
    originalFrame = frame.copy()
    detailedFrame = np.zeros(frame.shape, dtype = np.uint8)
    if tracker.getEnsemble() is not None:
        drawParticles(detailedFrame, tracker.getEnsemble(), param['conf'])
    hOffset = 20
    cv.putText(originalFrame, str(frame.shape[1]) + 'x' + str(frame.shape[0]), (10, 1*hOffset), cv.FONT_HERSHEY_PLAIN, 1.2, (0, 0, 255))
    cv.putText(detailedFrame, "frame no: " + str(fno), (10, 1*hOffset), cv.FONT_HERSHEY_PLAIN, 1.2, (255, 127, 0))
    cv.putText(detailedFrame, "time (ms): " + str(round(timeElapsed)), (10, 2*hOffset), cv.FONT_HERSHEY_PLAIN, 1.2, (255, 127, 0))
    cv.putText(detailedFrame, "particles: " + str(tracker.nparticles), (10, 3*hOffset), cv.FONT_HERSHEY_PLAIN, 1.2, (255, 127, 0))

    est = param['est']
    drawBox(originalFrame, est, (0, 0, 255), 2)
    drawBox(detailedFrame, est, (255, 127, 0), 2)

    # what the observation model sees at the estimate
    wimg = extractNormalizedPatch(frame, est.toBox(), featureSize)
    wimg = convert(wimg, 0, 255, np.uint8)
    stacked = cv.cvtColor(wimg, cv.COLOR_GRAY2BGR)
    stacked = cv.resize(stacked, (0, 0), None, 3, 3)

    frameH, frameW = frame.shape[0], frame.shape[1]
    finalFrameW = max(frameW*2, stacked.shape[1])
    finalFrameH = frameH + stacked.shape[0]
    finalFrame = np.zeros((finalFrameH, finalFrameW, 3), dtype = np.uint8)
    finalFrame[0:frameH, 0:frameW, :] = toBGR(originalFrame)
    finalFrame[0:frameH, frameW:frameW*2, :] = toBGR(detailedFrame)
    finalFrame[frameH:frameH+stacked.shape[0], 0:stacked.shape[1], :] = stacked

    return finalFrame


def toBGR(img):
    if img.ndim == 2:
        return cv.cvtColor(img, cv.COLOR_GRAY2BGR)
    return img
