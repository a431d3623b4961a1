"""Fixed-level thresholding of grey-scale images."""

import numpy as np

DEFAULT_THRESHOLD = 75


def binarise(image, threshold=DEFAULT_THRESHOLD):
    """Return a copy of ``image`` with pixels above ``threshold`` set to 255 and the rest to 0.

    A pixel equal to the threshold becomes 0.
    """
    pixels = np.asarray(image)
    return np.where(pixels > threshold, 255, 0).astype(np.uint8)