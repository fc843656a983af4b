import numpy as np

# -------------------- Model parameters --------------------

# NPARTICLES. The number of particles used in the condensation
# algorithm/particle filter.  Increasing this will likely improve the
# results, but make the tracker slower.
NPARTICLES = 200

# FEATURE_SIZE. The resolution (width, height) at which every particle's
# rectangle is sampled before scoring. It must match the resolution the
# PCA subspace was trained at, 24-by-24 pixels by default.
FEATURE_SIZE = (24, 24)

# NOISE_STD. These are the standard deviations of the dynamics distribution,
# that is how much we expect the target object might move from one frame to the next.
# The meaning of each number is as follows:
#    NOISE_STD(0) = x center (pixels)
#    NOISE_STD(1) = y center (pixels)
#    NOISE_STD(2) = width (pixels)
#    NOISE_STD(3) = height (pixels)
#    NOISE_STD(4) = rotation angle (degrees)
NOISE_STD = np.array([3.0, 3.0, 2.0, 2.0, 1.0], dtype=np.float64)

# MIN_EXTENT. Smallest width and height (pixels) a particle may take after
# bounding. Anything smaller cannot be cropped into a patch.
MIN_EXTENT = 1.0

# DATA_DIR, DATA_PCAVAL, DATA_PCAVEC, DATA_PCAAVG. Location of the
# precomputed PCA subspace: eigenvalues, eigenvectors (one per row) and
# the mean feature vector. OpenCV FileStorage (.xml, .yml) or numpy .npy.
DATA_DIR = ''
DATA_PCAVAL = 'pcaval.xml'
DATA_PCAVEC = 'pcavec.xml'
DATA_PCAAVG = 'pcaavg.xml'

# RESIZE_RATE. Of input frames.
RESIZE_RATE = 1.0
