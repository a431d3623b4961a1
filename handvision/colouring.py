"""Painting labelled blobs and extracting their border pixels."""

import numpy as np


def _as_colour_image(image):
    pixels = np.asarray(image)
    if pixels.ndim == 2:
        return np.repeat(pixels[:, :, np.newaxis], 3, axis=2).astype(np.uint8)
    if pixels.ndim == 3:
        return pixels.astype(np.uint8, copy=True)
    raise ValueError("expected a two- or three-dimensional image")


def color_blobs(image, blobs, rng=None):
    """Return a colour copy of ``image`` with each blob painted in a random colour.

    Grey-scale images are expanded to three channels first.  ``blobs`` is a
    sequence of point lists of ``(row, column)`` tuples.  ``rng`` may be a seed,
    a ``numpy.random.Generator`` or ``None``; every channel of a blob's colour
    is drawn from 0 to 254.  Raises ``ValueError`` for a point outside the image.
    """
    drawing = _as_colour_image(image)
    generator = np.random.default_rng(rng)
    rows, cols = drawing.shape[:2]
    channels = drawing.shape[2]

    for points in blobs:
        colour = generator.integers(0, 255, size=3)
        fill = np.resize(colour, channels).astype(np.uint8)
        for row, col in points:
            if not (0 <= row < rows and 0 <= col < cols):
                raise ValueError(f"point {(row, col)} lies outside the image")
            drawing[row, col] = fill
    return drawing


def find_borders(image, blobs):
    """Return, for each blob, the points that lie on its border.

    A point is on the border when some but not all of its four neighbours
    (above, below, left, right) are non-zero in ``image``.  Neighbours outside
    the image count as zero; in a colour image a pixel is non-zero when any
    channel is.  The order of points within each blob is kept.
    """
    pixels = np.asarray(image)
    if pixels.ndim == 3:
        foreground = np.any(pixels != 0, axis=2)
    elif pixels.ndim == 2:
        foreground = pixels != 0
    else:
        raise ValueError("expected a two- or three-dimensional image")

    padded = np.pad(foreground, 1, constant_values=False)
    borders = []
    for points in blobs:
        kept = []
        for row, col in points:
            r, c = row + 1, col + 1
            neighbours = (
                padded[r - 1, c],
                padded[r + 1, c],
                padded[r, c - 1],
                padded[r, c + 1],
            )
            set_count = sum(bool(value) for value in neighbours)
            if 0 < set_count < 4:
                kept.append((row, col))
        borders.append(kept)
    return borders