import os
import numpy as np
import cv2 as cv
import time
import argparse
import logging
from pcatracker.tracker import ParticleTracker
from pcatracker.state import ParticleState
from pcatracker.observe_pca import initialize
from pcatracker.observe_template import TemplateObserver
from pcatracker.utils import makeDetailedFrame, drawBox
from pcatracker.model_specific import *

if not os.path.exists('output'):
    os.makedirs('output')


winName = 'PCA particle tracker demo'
drawnBox = np.zeros(4)
initialBox = np.zeros(4)
mousedown = False
mouseupdown = False
initialize_ = False
def on_mouse(event, x, y, flags, params):
    global mousedown, mouseupdown, drawnBox, initialBox, initialize_
    if event == cv.EVENT_LBUTTONDOWN:
        drawnBox[[0,2]] = x
        drawnBox[[1,3]] = y
        mousedown = True
        mouseupdown = False
    elif mousedown and event == cv.EVENT_MOUSEMOVE:
        drawnBox[2] = x
        drawnBox[3] = y
    elif event == cv.EVENT_LBUTTONUP:
        drawnBox[2] = x
        drawnBox[3] = y
        mousedown = False
        mouseupdown = True
        initialize_ = True
    initialBox = drawnBox.copy()
    initialBox[[0,2]] = np.sort(initialBox[[0,2]])
    initialBox[[1,3]] = np.sort(initialBox[[1,3]])


if __name__ == "__main__":
    print("[INFO] Program started")

    # Parse command line params
    parser = argparse.ArgumentParser(description='Rotated rectangle particle filter tracker.')
    parser.add_argument('-i', '--input', metavar='Input', type=str, help='input file')
    parser.add_argument('-o', '--observer', metavar='Observer', type=str, choices=['pca', 'template'], help='observation model', default = 'pca')
    parser.add_argument('--data-dir', metavar='DataDir', type=str, help='directory of pcaval, pcavec, pcaavg', default = DATA_DIR)
    parser.add_argument('-p', '--particles', metavar='Particles', type=int, help='number of particles', default = NPARTICLES)
    parser.add_argument('-d', '--debug', metavar='Debug', type=int, help='do show debug', default = 0)
    parser.add_argument('-r', '--record', metavar='Record', type=int, help='do record', default = 0)
    args = parser.parse_args()

    logging.basicConfig(level = logging.DEBUG if args.debug else logging.INFO, format = '[%(levelname)s] %(name)s: %(message)s')

    # Init cv-window
    cv.namedWindow(winName, cv.WINDOW_NORMAL)
    cv.setMouseCallback(winName, on_mouse, 0)

    # get first frame
    capture = cv.VideoCapture(args.input)
    ret, frame0 = capture.read()
    if not ret:
        print("[INFO] Can not read " + str(args.input))
        raise SystemExit(1)
    frame0 = cv.resize(frame0, (0, 0), None, RESIZE_RATE, RESIZE_RATE)
    cv.resizeWindow(winName, frame0.shape[1], frame0.shape[0])

    while not initialize_:
        drawImg = frame0.copy()
        cv.putText(drawImg, "Draw box around target object", (10, 20), cv.FONT_HERSHEY_PLAIN, 1.1, (0, 0, 255))
        cv.rectangle(drawImg,
                (int(initialBox[0]), int(initialBox[1])),
                (int(initialBox[2]), int(initialBox[3])),
                [0,0,255], 2)
        cv.imshow(winName, drawImg)
        cv.waitKey(1)

    w = max(initialBox[2] - initialBox[0], MIN_EXTENT)
    h = max(initialBox[3] - initialBox[1], MIN_EXTENT)
    state0 = ParticleState(initialBox[0] + w/2, initialBox[1] + h/2, w, h, 0.0)

    # Create observation model and tracker
    if args.observer == 'pca':
        observer = initialize(args.data_dir, featureSize = FEATURE_SIZE)
    else:
        observer = TemplateObserver.fromFrame(frame0, state0, FEATURE_SIZE)
    tracker = ParticleTracker(observer, NOISE_STD, args.particles)

    writer = None
    frameNum = 0
    frame = frame0
    while ret and capture.isOpened():
        if frameNum > 0:
            ret, frame = capture.read()
            if not ret:
                print("[INFO] Video ended")
                break
            frame = cv.resize(frame, (0, 0), None, RESIZE_RATE, RESIZE_RATE)

        # -------------------- CORE -------------------- #
        startTime = time.time()

        est = tracker.track(frame, state0 if frameNum == 0 else None)

        endTime = (time.time() - startTime) * 1000
        # -------------------- //// -------------------- #

        # --------------------- VIZ -------------------- #
        if args.debug:
            shownFrame = makeDetailedFrame(frameNum, frame, tracker, FEATURE_SIZE, endTime)
        else:
            shownFrame = frame
            drawBox(shownFrame, est, (0, 0, 255), 2)
        cv.resizeWindow(winName, shownFrame.shape[1], shownFrame.shape[0])
        cv.imshow(winName, shownFrame)
        if writer is None and args.record:
            writer = cv.VideoWriter('output/output.avi', cv.VideoWriter_fourcc('M','J','P','G'), 20, (shownFrame.shape[1], shownFrame.shape[0]))
        if args.record:
            writer.write(shownFrame)
        # -------------------- //// -------------------- #

        frameNum += 1
        key = cv.waitKey(30)
        if key & 0xFF == ord('q') or key == 27:
            break

    observer.finalize()
    if writer is not None:
        writer.release()
    capture.release()
    cv.destroyAllWindows()
    print("[INFO] Program successfully finished")
