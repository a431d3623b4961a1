import numpy as np
import pytest

from handvision.barcode import (
    ALPHABET,
    decode_grid,
    decode_image,
    find_circles,
    main,
    perspective_matrix,
    rectify,
    resize,
    warp_perspective,
)

SIZE = 47


def _cell_mask():
    mask = np.ones((SIZE, SIZE), dtype=bool)
    mask[:6, :6] = False
    mask[41:, 41:] = False
    mask[41:, :6] = False
    return mask


def _grid_for(text):
    mask = _cell_mask()
    capacity = int(mask.sum()) * 3
    bits = [int(bit) for ch in text for bit in format(ALPHABET.index(ch), "06b")]
    bits += [0] * (capacity - len(bits))
    rgb = np.array(bits, dtype=np.uint8).reshape(-1, 3)
    grid = np.zeros((SIZE, SIZE, 3), dtype=np.uint8)
    grid[mask] = rgb[:, ::-1] * 255
    return grid


def _barcode_image(text):
    grid = _grid_for(text)
    grid[~_cell_mask()] = 255
    image = np.full((1000, 1000, 3), 255, dtype=np.uint8)
    image[30:970, 30:970] = np.repeat(np.repeat(grid, 20, axis=0), 20, axis=1)
    yy, xx = np.mgrid[:1000, :1000]
    for cx, cy in ((90, 90), (90, 910), (910, 910)):
        image[(xx - cx) ** 2 + (yy - cy) ** 2 <= 50 ** 2] = 0
    return image


def test_black_grid_decodes_to_spaces():
    message = decode_grid(np.zeros((SIZE, SIZE, 3), dtype=np.uint8))
    assert message
    assert set(message) == {" "}


def test_white_grid_decodes_to_full_stops():
    message = decode_grid(np.full((SIZE, SIZE, 3), 255, dtype=np.uint8))
    assert set(message) == {"."}


def test_grid_round_trip():
    text = "Hello world 2018."
    message = decode_grid(_grid_for(text))
    assert message.startswith(text)
    assert message[len(text):].strip() == ""


def test_corner_cells_are_ignored():
    grid = np.zeros((SIZE, SIZE, 3), dtype=np.uint8)
    blank = decode_grid(grid)
    grid[~_cell_mask()] = 255
    assert decode_grid(grid) == blank


def test_threshold_is_above_127():
    low = decode_grid(np.full((SIZE, SIZE, 3), 127, dtype=np.uint8))
    high = decode_grid(np.full((SIZE, SIZE, 3), 128, dtype=np.uint8))
    assert set(low) == {" "}
    assert set(high) == {"."}


def test_small_grid_is_rejected():
    with pytest.raises(ValueError):
        decode_grid(np.zeros((10, 10, 3), dtype=np.uint8))


def test_find_circles_locates_disc():
    image = np.zeros((300, 400), dtype=np.uint8)
    yy, xx = np.mgrid[:300, :400]
    image[(xx - 200) ** 2 + (yy - 150) ** 2 <= 50 ** 2] = 255
    circles = find_circles(image, 40, 60)
    assert len(circles) >= 1
    x, y, radius = circles[0]
    assert abs(x - 200) <= 2
    assert abs(y - 150) <= 2
    assert abs(radius - 50) <= 3


def test_find_circles_blank_image():
    assert find_circles(np.zeros((100, 100), dtype=np.uint8), 10, 20) == []


def test_find_circles_bad_radius_range():
    with pytest.raises(ValueError):
        find_circles(np.zeros((50, 50), dtype=np.uint8), 20, 10)


def test_perspective_matrix_identity():
    corners = [(0, 0), (100, 0), (100, 100), (0, 100)]
    assert np.allclose(perspective_matrix(corners, corners), np.eye(3))


def test_perspective_matrix_maps_points():
    source = [(0, 0), (100, 0), (100, 100), (0, 100)]
    destination = [(10, 20), (120, 15), (130, 140), (5, 110)]
    matrix = perspective_matrix(source, destination)
    for (x, y), (u, v) in zip(source, destination):
        mapped = matrix @ np.array([x, y, 1.0])
        assert mapped[0] / mapped[2] == pytest.approx(u)
        assert mapped[1] / mapped[2] == pytest.approx(v)


def test_perspective_matrix_needs_four_points():
    with pytest.raises(ValueError):
        perspective_matrix([(0, 0), (1, 0), (1, 1)], [(0, 0), (1, 0), (1, 1)])


def test_perspective_matrix_rejects_collinear_points():
    line = [(0, 0), (1, 1), (2, 2), (3, 3)]
    with pytest.raises(ValueError):
        perspective_matrix(line, line)


def test_warp_perspective_translation():
    rng = np.random.default_rng(3)
    image = rng.integers(0, 256, size=(30, 40, 3), dtype=np.uint8)
    matrix = np.array([[1.0, 0.0, 5.0], [0.0, 1.0, 3.0], [0.0, 0.0, 1.0]])
    warped = warp_perspective(image, matrix, (40, 30))
    assert warped.shape == image.shape
    assert np.array_equal(warped[3:, 5:], image[:27, :35])
    assert not warped[:3].any()
    assert not warped[:, :5].any()


def test_resize_constant_image():
    image = np.full((13, 17, 3), 77, dtype=np.uint8)
    result = resize(image, (5, 9))
    assert result.shape == (9, 5, 3)
    assert np.all(result == 77)


def test_resize_recovers_blocks():
    rng = np.random.default_rng(7)
    grid = rng.integers(0, 256, size=(5, 4, 3), dtype=np.uint8)
    blocks = np.repeat(np.repeat(grid, 20, axis=0), 20, axis=1)
    assert np.array_equal(resize(blocks, (4, 5)), grid)


def test_resize_rejects_empty_size():
    with pytest.raises(ValueError):
        resize(np.zeros((4, 4), dtype=np.uint8), (0, 4))


def test_rectify_aligned_barcode_crops_data_area():
    rng = np.random.default_rng(11)
    image = rng.integers(0, 256, size=(1000, 1000, 3), dtype=np.uint8)
    circles = [(90.0, 90.0, 50.0), (90.0, 910.0, 50.0), (910.0, 910.0, 50.0)]
    result = rectify(image, circles)
    assert result.shape == (940, 940, 3)
    assert np.array_equal(result, image[30:970, 30:970])


def test_decode_image_round_trip():
    text = "colour barcode 42."
    message = decode_image(_barcode_image(text))
    assert message.startswith(text)
    assert message[len(text):].strip() == ""


def test_decode_image_without_circles():
    with pytest.raises(ValueError):
        decode_image(np.zeros((200, 200, 3), dtype=np.uint8))


def test_main_empty_directory(tmp_path):
    assert main([str(tmp_path)]) == 0


def test_main_missing_directory(tmp_path):
    assert main([str(tmp_path / "absent")]) == 1