"""Median filtering and 3x3 convolution sharpening for grey-scale images."""

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

SHARPEN_KERNEL = (0, -1, 0, -1, 5, -1, 0, -1, 0)


def median_filter(image, k_width=3, k_height=3):
    """Median-filter ``image`` over a ``k_width`` x ``k_height`` window.

    ``k_width`` spans rows and ``k_height`` spans columns.  Only windows that
    lie wholly inside the image are used, so the result is smaller than the
    input by the kernel size minus one in each direction.  For even-sized
    windows the upper of the two middle values is taken.
    """
    pixels = np.asarray(image)
    if pixels.ndim != 2:
        raise ValueError("median_filter expects a single-channel image")
    if k_width < 1 or k_height < 1:
        raise ValueError("kernel dimensions must be positive")
    rows, cols = pixels.shape
    if rows < k_width or cols < k_height:
        raise ValueError("image is smaller than the kernel")
    windows = sliding_window_view(pixels, (k_width, k_height))
    flat = windows.reshape(windows.shape[0], windows.shape[1], -1)
    middle = flat.shape[-1] // 2
    return np.partition(flat, middle, axis=-1)[..., middle].astype(np.uint8)


def sharpen_edges(image, kernel=SHARPEN_KERNEL):
    """Convolve ``image`` with a 3x3 ``kernel`` and clip the result to 0..255.

    ``kernel`` holds nine weights, column by column: the weight at index
    ``3 * (dy + 1) + (dx + 1)`` applies to the pixel at row offset ``dx`` and
    column offset ``dy``.  The one-pixel border of the result is 0.
    """
    pixels = np.asarray(image)
    if pixels.ndim != 2:
        raise ValueError("sharpen_edges expects a single-channel image")
    weights = np.asarray(kernel, dtype=np.float64).reshape(-1)
    if weights.size != 9:
        raise ValueError("kernel must hold exactly nine weights")
    weights = weights.reshape(3, 3).T

    rows, cols = pixels.shape
    result = np.zeros((rows, cols), dtype=np.uint8)
    if rows < 3 or cols < 3:
        return result

    source = pixels.astype(np.float64)
    total = np.zeros((rows - 2, cols - 2), dtype=np.float64)
    for (row_offset, col_offset), weight in np.ndenumerate(weights):
        if weight:
            total += weight * source[
                row_offset:rows - 2 + row_offset, col_offset:cols - 2 + col_offset
            ]
    result[1:-1, 1:-1] = np.clip(np.rint(total), 0, 255)
    return result