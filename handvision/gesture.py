"""Hand-gesture features: image loading, largest contour and elliptic Fourier descriptors."""

import numpy as np
from scipy import ndimage

from .imagedir import list_files, load_image

DEFAULT_HARMONICS = 20
DEFAULT_THRESHOLD = 10
LABEL_OFFSET = 7

_GAUSS5 = np.array([1.0, 4.0, 6.0, 4.0, 1.0]) / 16.0
_GREY_WEIGHTS_BGR = (0.114, 0.587, 0.299)
_SQUARE = np.ones((3, 3), dtype=bool)

# (row, column) offsets in clockwise order, starting east.
_NEIGHBOURS = ((0, 1), (1, 1), (1, 0), (1, -1), (0, -1), (-1, -1), (-1, 0), (-1, 1))
_DIRECTION = {offset: index for index, offset in enumerate(_NEIGHBOURS)}
_WEST = 4


def list_png_files(directory):
    """Return sorted paths of the files in ``directory`` whose name contains ``.png``."""
    return list_files(directory, ".png")


def class_label(filename):
    """Return the class character of a gesture file name.

    It is the seventh character after the last ``/`` (the seventh of the
    whole name when there is no ``/``), as in ``hand1_a_bot_seg_1.png``.
    """
    position = filename.rfind("/") + LABEL_OFFSET
    if position >= len(filename):
        raise ValueError(f"file name {filename!r} carries no class label")
    return filename[position]


def _to_grey(image):
    pixels = np.asarray(image)
    if pixels.ndim == 2:
        return pixels.astype(np.uint8)
    grey = pixels[:, :, :3].astype(np.float64) @ np.asarray(_GREY_WEIGHTS_BGR)
    return np.clip(np.rint(grey), 0, 255).astype(np.uint8)


def read_gesture_image(path):
    """Load an image as grey-scale and smooth it with a 5x5 Gaussian."""
    grey = _to_grey(load_image(path)).astype(np.float64)
    blurred = ndimage.correlate1d(grey, _GAUSS5, axis=0, mode="mirror")
    blurred = ndimage.correlate1d(blurred, _GAUSS5, axis=1, mode="mirror")
    return np.clip(np.rint(blurred), 0, 255).astype(np.uint8)


def _trace(foreground, start):
    points = [start]
    current, back = start, _WEST
    first_move = None
    while True:
        for step in range(1, 9):
            direction = (back + step) % 8
            d_row, d_col = _NEIGHBOURS[direction]
            if foreground[current[0] + d_row, current[1] + d_col]:
                break
        else:
            return points
        if current == start and direction == first_move:
            return points[:-1]
        if first_move is None:
            first_move = direction
        p_row, p_col = _NEIGHBOURS[(direction - 1) % 8]
        back = _DIRECTION[(p_row - d_row, p_col - d_col)]
        current = (current[0] + d_row, current[1] + d_col)
        points.append(current)


def _outer_contours(mask):
    padded = np.pad(mask, 1, constant_values=False)
    labels, count = ndimage.label(padded, structure=_SQUARE)
    if count == 0:
        return []
    flat = labels.ravel()
    values, first = np.unique(flat, return_index=True)
    starts = sorted(first[values > 0])
    width = padded.shape[1]
    contours = []
    for index in starts:
        row, col = divmod(int(index), width)
        traced = _trace(padded, (row, col))
        contours.append([(c - 1, r - 1) for r, c in traced])
    return contours


def _polygon_area(contour):
    if len(contour) < 3:
        return 0.0
    points = np.asarray(contour, dtype=np.float64)
    x, y = points[:, 0], points[:, 1]
    return abs(float(np.dot(x, np.roll(y, -1)) - np.dot(y, np.roll(x, -1)))) / 2.0


def largest_contour(image, threshold=DEFAULT_THRESHOLD, erode_iterations=1):
    """Return the outer contour of the largest shape in a grey-scale image.

    Pixels above ``threshold`` are foreground; the mask is dilated once and
    eroded ``erode_iterations`` times with a 3x3 square.  The contour with
    the largest enclosed area wins, ties going to the first found in raster
    order.  Points are ``(x, y)`` tuples along the border.
    """
    pixels = np.asarray(image)
    if pixels.ndim != 2:
        raise ValueError("largest_contour expects a single-channel image")
    if erode_iterations < 0:
        raise ValueError("erode_iterations must not be negative")
    mask = ndimage.binary_dilation(pixels > threshold, _SQUARE, iterations=1, border_value=0)
    if erode_iterations:
        mask = ndimage.binary_erosion(mask, _SQUARE, iterations=erode_iterations, border_value=1)
    contours = _outer_contours(mask)
    if not contours:
        raise ValueError("no contour found in the image")

    best, best_area = contours[0], 0
    for contour in contours:
        area = _polygon_area(contour)
        if area > best_area:
            best, best_area = contour, int(area)
    return best


def elliptic_fourier_descriptors(contour, harmonics=DEFAULT_HARMONICS):
    """Return ``harmonics`` elliptic Fourier descriptors of a closed contour.

    Each descriptor sums the cosine and sine amplitudes of one harmonic,
    each normalised by the first harmonic's, so the first is always 2.
    """
    points = np.asarray(contour, dtype=np.float64).reshape(-1, 2)
    count = len(points)
    if count == 0:
        raise ValueError("contour is empty")
    if harmonics < 1:
        raise ValueError("at least one harmonic is needed")
    x, y = points[:, 0], points[:, 1]
    phase = np.outer(np.arange(1, harmonics + 1), np.arange(count)) * (2 * np.pi / count)
    cosines, sines = np.cos(phase), np.sin(phase)
    ax, bx = cosines @ x / count, sines @ x / count
    ay, by = cosines @ y / count, sines @ y / count

    cos_base = ax[0] ** 2 + ay[0] ** 2
    sin_base = bx[0] ** 2 + by[0] ** 2
    if cos_base == 0 or sin_base == 0:
        raise ValueError("contour is degenerate")
    descriptors = np.sqrt((ax ** 2 + ay ** 2) / cos_base) + np.sqrt((bx ** 2 + by ** 2) / sin_base)
    return descriptors.tolist()