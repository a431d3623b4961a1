import math

import numpy as np
import pytest
from PIL import Image

from handvision.gesture import (
    class_label,
    elliptic_fourier_descriptors,
    largest_contour,
    list_png_files,
    read_gesture_image,
)


def _shape(count=40):
    points = []
    for i in range(count):
        theta = 2 * math.pi * i / count
        points.append((10 * math.cos(theta) + 3 * math.cos(3 * theta),
                       6 * math.sin(theta) + math.sin(2 * theta)))
    return points


def test_class_label_after_slash():
    assert class_label("dataset/hand1_a_bot_seg_1_cropped.png") == "a"


def test_class_label_without_slash():
    assert class_label("hand2_5_left_seg_3.png") == "5"


def test_class_label_too_short():
    with pytest.raises(ValueError):
        class_label("dir/hand")


def test_list_png_files(tmp_path):
    for name in ("b.png", "a.png", "notes.txt"):
        (tmp_path / name).write_bytes(b"")
    paths = list_png_files(str(tmp_path))
    assert paths == [f"{tmp_path}/a.png", f"{tmp_path}/b.png"]


def test_list_png_files_missing_directory(tmp_path):
    with pytest.raises(OSError):
        list_png_files(str(tmp_path / "absent"))


def test_read_gesture_image_uniform(tmp_path):
    path = tmp_path / "hand1_a.png"
    Image.new("RGB", (12, 9), (100, 100, 100)).save(path)
    grey = read_gesture_image(str(path))
    assert grey.shape == (9, 12)
    assert np.all(grey == 100)


def test_read_gesture_image_smooths_edges(tmp_path):
    pixels = np.zeros((20, 20, 3), dtype=np.uint8)
    pixels[:, 10:] = 255
    path = tmp_path / "hand1_b.png"
    Image.fromarray(pixels).save(path)
    grey = read_gesture_image(str(path))
    assert grey[5, 0] == 0
    assert grey[5, 19] == 255
    assert 0 < grey[5, 9] < grey[5, 10] < 255


def test_largest_contour_follows_rectangle():
    image = np.zeros((50, 60), dtype=np.uint8)
    image[10:30, 15:45] = 200
    contour = largest_contour(image, 10, 1)
    xs = [x for x, _ in contour]
    ys = [y for _, y in contour]
    assert (min(xs), max(xs), min(ys), max(ys)) == (15, 44, 10, 29)
    assert all(x in (15, 44) or y in (10, 29) for x, y in contour)
    assert len(set(contour)) == len(contour)


def test_largest_contour_picks_biggest_shape():
    image = np.zeros((60, 60), dtype=np.uint8)
    image[5:10, 5:10] = 255
    image[20:50, 25:55] = 255
    contour = largest_contour(image)
    xs = [x for x, _ in contour]
    ys = [y for _, y in contour]
    assert min(xs) == 25 and max(xs) == 54
    assert min(ys) == 20 and max(ys) == 49


def test_largest_contour_threshold_excludes_dim_pixels():
    image = np.zeros((40, 40), dtype=np.uint8)
    image[5:35, 5:35] = 10
    image[15:20, 15:20] = 11
    contour = largest_contour(image, 10, 1)
    xs = [x for x, _ in contour]
    assert min(xs) == 15 and max(xs) == 19


def test_largest_contour_empty_image():
    with pytest.raises(ValueError):
        largest_contour(np.zeros((20, 20), dtype=np.uint8))


def test_descriptors_first_is_two():
    descriptors = elliptic_fourier_descriptors(_shape())
    assert len(descriptors) == 20
    assert descriptors[0] == pytest.approx(2.0)


def test_descriptors_invariant_to_translation_and_scale():
    base = elliptic_fourier_descriptors(_shape())
    moved = [(3 * x + 50, 3 * y - 20) for x, y in _shape()]
    assert elliptic_fourier_descriptors(moved) == pytest.approx(base, abs=1e-9)


def test_descriptors_harmonic_count():
    assert len(elliptic_fourier_descriptors(_shape(), 5)) == 5


def test_descriptors_of_traced_contour():
    image = np.zeros((40, 40), dtype=np.uint8)
    image[8:30, 6:34] = 255
    descriptors = elliptic_fourier_descriptors(largest_contour(image))
    assert descriptors[0] == pytest.approx(2.0)
    assert all(math.isfinite(value) and value >= 0 for value in descriptors)


def test_descriptors_empty_contour():
    with pytest.raises(ValueError):
        elliptic_fourier_descriptors([])


def test_descriptors_single_point_is_degenerate():
    with pytest.raises(ValueError):
        elliptic_fourier_descriptors([(4, 4)])