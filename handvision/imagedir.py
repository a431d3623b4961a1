"""Loading images from files and directories."""

import os

import numpy as np
from PIL import Image


def list_files(directory, suffix=".jpg"):
    """Return sorted paths of the files in ``directory`` whose name contains ``suffix``.

    Raises ``OSError`` (e.g. ``FileNotFoundError``) if the directory cannot be read.
    """
    names = sorted(
        entry.name
        for entry in os.scandir(directory)
        if entry.is_file() and suffix in entry.name
    )
    return [f"{directory}/{name}" for name in names]


def load_image(path, grayscale=False):
    """Load an image file as a ``uint8`` array.

    Grey-scale images are two-dimensional; colour images come back with their
    channels in blue, green, red order.  Raises ``OSError`` if the file cannot
    be read as an image.
    """
    with Image.open(path) as picture:
        if grayscale:
            return np.array(picture.convert("L"), dtype=np.uint8)
        rgb = np.array(picture.convert("RGB"), dtype=np.uint8)
    return np.ascontiguousarray(rgb[:, :, ::-1])


def read_images(directory, suffix=".jpg", grayscale=False):
    """Load every image in ``directory`` whose file name contains ``suffix``."""
    return [load_image(path, grayscale) for path in list_files(directory, suffix)]