"""Reading the colour barcode: finder circles, rectification and cell decoding."""

import argparse
import math
import sys

import numpy as np
from scipy import ndimage

from .geometry import Vector2D, find_right_angle, missing_corner
from .imagedir import list_files, load_image

ALPHABET = (
    " abcdefghijklmnopqrstuvxywz"
    "ABCDEFGHIJKLMNOPQRSTUVXYWZ"
    "0123456789."
)
GRID_SIZE = 47
CORNER_CELLS = 6
BITS_PER_SYMBOL = 6

CANVAS_SIZE = 1000
BORDER = 30
ORIGIN = (90.0, 90.0)
TARGET_CORNERS = ((90.0, 90.0), (90.0, 910.0), (910.0, 910.0), (910.0, 90.0))
ALIGNED_TOLERANCE = 20

FINDER_MIN_RADIUS = 40
FINDER_MAX_RADIUS = 60

_EDGE_FRACTION = 0.3
_PEAK_FRACTION = 0.3
_MIN_COVERAGE = 0.8
_GREY_WEIGHTS_BGR = (0.114, 0.587, 0.299)


def _data_cells():
    mask = np.ones((GRID_SIZE, GRID_SIZE), dtype=bool)
    far = GRID_SIZE - CORNER_CELLS
    mask[:CORNER_CELLS, :CORNER_CELLS] = False
    mask[far:, far:] = False
    mask[far:, :CORNER_CELLS] = False
    return mask


DATA_CELLS = _data_cells()


def decode_grid(grid):
    """Decode a 47x47 BGR grid of cells into text.

    The top-left, bottom-left and bottom-right 6x6 corners hold the finder
    marks and carry no data.  Every other cell, in row order, gives three bits
    (red, green, blue, each set when above 127); each run of six bits indexes
    :data:`ALPHABET`.  Bits left over at the end are dropped.
    """
    pixels = np.asarray(grid)
    if (
        pixels.ndim != 3
        or pixels.shape[0] < GRID_SIZE
        or pixels.shape[1] < GRID_SIZE
        or pixels.shape[2] < 3
    ):
        raise ValueError(f"expected a colour grid of at least {GRID_SIZE}x{GRID_SIZE} cells")
    cells = pixels[:GRID_SIZE, :GRID_SIZE, :3][DATA_CELLS]
    bits = (cells[:, ::-1] > 127).astype(np.int64).ravel()
    usable = bits.size - bits.size % BITS_PER_SYMBOL
    groups = bits[:usable].reshape(-1, BITS_PER_SYMBOL)
    weights = 1 << np.arange(BITS_PER_SYMBOL - 1, -1, -1)
    return "".join(ALPHABET[index] for index in groups @ weights)


def _to_grey(image):
    pixels = np.asarray(image)
    if pixels.ndim == 2:
        return pixels.astype(np.uint8)
    if pixels.ndim == 3 and pixels.shape[2] >= 3:
        grey = pixels[:, :, :3].astype(np.float64) @ np.asarray(_GREY_WEIGHTS_BGR)
        return np.clip(np.rint(grey), 0, 255).astype(np.uint8)
    raise ValueError("expected a grey-scale or BGR colour image")


def _best_radius(edges, x, y, radii):
    rows, cols = edges.shape
    reach = int(radii[-1]) + 2
    top, bottom = max(0, int(y) - reach), min(rows, int(y) + reach + 1)
    left, right = max(0, int(x) - reach), min(cols, int(x) + reach + 1)
    window_rows, window_cols = np.nonzero(edges[top:bottom, left:right])
    distances = np.hypot(window_cols + left - x, window_rows + top - y)
    counts = np.array([np.count_nonzero(np.abs(distances - r) < 1.0) for r in radii])
    coverage = counts / (2 * np.pi * radii)
    best = int(np.argmax(coverage))
    if coverage[best] < _MIN_COVERAGE:
        return None
    return float(radii[best])


def find_circles(gray, min_radius=FINDER_MIN_RADIUS, max_radius=FINDER_MAX_RADIUS,
                 min_distance=None):
    """Find circles in a grey-scale image by a gradient Hough transform.

    Returns ``(x, y, radius)`` triples, strongest first.  Centres closer than
    ``min_distance`` (by default a sixteenth of the image height) to a
    stronger circle are dropped, as are candidates whose edge ring is too
    sparse.
    """
    pixels = np.asarray(gray, dtype=np.float64)
    if pixels.ndim != 2:
        raise ValueError("find_circles expects a single-channel image")
    if min_radius < 1 or max_radius < min_radius:
        raise ValueError("radius range must be positive and non-empty")
    rows, cols = pixels.shape
    if min_distance is None:
        min_distance = rows / 16
    if pixels.size == 0:
        return []

    grad_x = ndimage.sobel(pixels, axis=1, mode="nearest")
    grad_y = ndimage.sobel(pixels, axis=0, mode="nearest")
    magnitude = np.hypot(grad_x, grad_y)
    peak = magnitude.max()
    if peak == 0:
        return []
    edges = magnitude > peak * _EDGE_FRACTION
    ys, xs = np.nonzero(edges)
    unit_x = grad_x[ys, xs] / magnitude[ys, xs]
    unit_y = grad_y[ys, xs] / magnitude[ys, xs]

    radii = np.arange(int(min_radius), int(max_radius) + 1)
    accumulator = np.zeros(rows * cols, dtype=np.float64)
    for radius in radii:
        for sign in (1.0, -1.0):
            centre_x = np.rint(xs + sign * radius * unit_x).astype(np.intp)
            centre_y = np.rint(ys + sign * radius * unit_y).astype(np.intp)
            inside = (centre_x >= 0) & (centre_x < cols) & (centre_y >= 0) & (centre_y < rows)
            accumulator += np.bincount(
                centre_y[inside] * cols + centre_x[inside], minlength=rows * cols
            )
    accumulator = ndimage.gaussian_filter(accumulator.reshape(rows, cols), 1.0)
    strongest = accumulator.max()
    if strongest <= 0:
        return []

    local_max = accumulator == ndimage.maximum_filter(accumulator, size=3)
    candidates = local_max & (accumulator >= strongest * _PEAK_FRACTION)
    peak_rows, peak_cols = np.nonzero(candidates)
    order = np.argsort(-accumulator[peak_rows, peak_cols], kind="stable")

    circles = []
    for index in order:
        x, y = float(peak_cols[index]), float(peak_rows[index])
        if any(math.hypot(x - cx, y - cy) < min_distance for cx, cy, _ in circles):
            continue
        radius = _best_radius(edges, x, y, radii)
        if radius is not None:
            circles.append((x, y, radius))
    return circles


def perspective_matrix(source, destination):
    """Return the 3x3 homography taking four ``source`` points to ``destination``."""
    src = np.asarray(source, dtype=np.float64)
    dst = np.asarray(destination, dtype=np.float64)
    if src.shape != (4, 2) or dst.shape != (4, 2):
        raise ValueError("exactly four source and four destination points are needed")
    system = np.zeros((8, 8))
    values = np.zeros(8)
    for row, ((x, y), (u, v)) in enumerate(zip(src, dst)):
        system[row] = (x, y, 1, 0, 0, 0, -u * x, -u * y)
        system[row + 4] = (0, 0, 0, x, y, 1, -v * x, -v * y)
        values[row], values[row + 4] = u, v
    try:
        solution = np.linalg.solve(system, values)
    except np.linalg.LinAlgError as error:
        raise ValueError("points do not define a perspective transform") from error
    return np.append(solution, 1.0).reshape(3, 3)


def _sample(image, sample_rows, sample_cols, mode):
    pixels = np.asarray(image)
    source = pixels.astype(np.float64)
    coords = np.array([sample_rows, sample_cols])
    if pixels.ndim == 2:
        out = ndimage.map_coordinates(source, coords, order=1, mode=mode, cval=0.0)
    elif pixels.ndim == 3:
        out = np.stack(
            [
                ndimage.map_coordinates(source[:, :, channel], coords, order=1, mode=mode, cval=0.0)
                for channel in range(pixels.shape[2])
            ],
            axis=-1,
        )
    else:
        raise ValueError("expected a two- or three-dimensional image")
    return np.clip(np.rint(out), 0, 255).astype(np.uint8)


def warp_perspective(image, matrix, size):
    """Warp ``image`` by ``matrix`` onto a ``(width, height)`` canvas.

    Samples are interpolated bilinearly; places mapping outside the source
    are black.
    """
    width, height = size
    inverse = np.linalg.inv(np.asarray(matrix, dtype=np.float64))
    dest_rows, dest_cols = np.mgrid[0:height, 0:width].astype(np.float64)
    points = np.stack([dest_cols.ravel(), dest_rows.ravel(), np.ones(dest_rows.size)])
    mapped = inverse @ points
    with np.errstate(divide="ignore", invalid="ignore"):
        src_cols = (mapped[0] / mapped[2]).reshape(height, width)
        src_rows = (mapped[1] / mapped[2]).reshape(height, width)
    invalid = ~np.isfinite(src_cols) | ~np.isfinite(src_rows)
    src_cols[invalid] = -10.0
    src_rows[invalid] = -10.0
    return _sample(image, src_rows, src_cols, "constant")


def resize(image, size):
    """Resize ``image`` bilinearly to ``(width, height)``, repeating edge pixels."""
    width, height = size
    if width < 1 or height < 1:
        raise ValueError("size must be positive")
    pixels = np.asarray(image)
    rows, cols = pixels.shape[:2]
    sample_rows = (np.arange(height) + 0.5) * rows / height - 0.5
    sample_cols = (np.arange(width) + 0.5) * cols / width - 0.5
    grid_rows, grid_cols = np.meshgrid(sample_rows, sample_cols, indexing="ij")
    return _sample(pixels, grid_rows, grid_cols, "nearest")


def rectify(image, circles):
    """Straighten a barcode photo using its three finder circles.

    Returns the 940x940 data area of the barcode.  When the right-angle
    circle already sits at its target corner the photo is only scaled;
    otherwise it is warped so the four corners land on their targets.
    """
    pixels = np.asarray(image)
    triangle = find_right_angle(circles)
    missing = missing_corner(triangle)
    rows, cols = pixels.shape[:2]
    centre = Vector2D(cols // 2, rows // 2)
    right = Vector2D(*triangle.right_angle)
    angle = Vector2D.angle(right - centre, Vector2D(*ORIGIN) - centre)

    first_x, second_x, third_x = (float(circle[0]) for circle in circles[:3])
    if first_x > second_x and first_x > third_x and angle > math.pi / 2:
        source = [triangle.other2, triangle.right_angle, triangle.other1, missing]
    else:
        source = [triangle.other1, triangle.right_angle, triangle.other2, missing]

    right_x, right_y = triangle.right_angle
    target_x, target_y = TARGET_CORNERS[1]
    canvas = (CANVAS_SIZE, CANVAS_SIZE)
    if right_x - target_x < ALIGNED_TOLERANCE and right_y - target_y < ALIGNED_TOLERANCE:
        square = resize(pixels, canvas)
    else:
        square = warp_perspective(pixels, perspective_matrix(source, TARGET_CORNERS), canvas)
    far = CANVAS_SIZE - BORDER
    return square[BORDER:far, BORDER:far]


def decode_image(image):
    """Decode the message held by a BGR photo of a colour barcode."""
    pixels = np.asarray(image)
    if pixels.ndim != 3:
        raise ValueError("decode_image expects a colour image")
    grey = ndimage.median_filter(_to_grey(pixels), size=3, mode="nearest")
    circles = find_circles(grey, FINDER_MIN_RADIUS, FINDER_MAX_RADIUS, grey.shape[0] / 16)
    if len(circles) < 3:
        raise ValueError("could not find the three finder circles")
    rectified = rectify(pixels, circles)
    return decode_grid(resize(rectified, (GRID_SIZE, GRID_SIZE)))


def main(argv=None):
    """Decode every ``.jpg`` barcode in a directory."""
    parser = argparse.ArgumentParser(
        prog="handvision-barcode",
        description="Decode the colour barcodes in the .jpg images of a directory.",
    )
    parser.add_argument("directory", help="directory holding the images")
    args = parser.parse_args(argv)

    try:
        paths = list_files(args.directory, ".jpg")
    except OSError as error:
        print(f"could not open directory: {error}", file=sys.stderr)
        return 1

    status = 0
    for path in paths:
        try:
            message = decode_image(load_image(path))
        except (OSError, ValueError) as error:
            print(f"{path}: {error}", file=sys.stderr)
            status = 1
            continue
        print(f"\nMessage:\n{message}")
    return status