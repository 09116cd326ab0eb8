import numpy as np
import pytest

from stagmarkers.geometry import (
    OUTSIDE_VALUE,
    cross_product,
    read_pixel_safe,
    read_pixel_safe_bilinear,
    read_pixel_unsafe,
    squared_distance,
)


@pytest.fixture
def ramp():
    return np.arange(20, dtype=np.uint8).reshape(4, 5) * 10


def test_unsafe_read_uses_x_as_column(ramp):
    assert read_pixel_unsafe(ramp, (3, 1)) == int(ramp[1, 3])


def test_safe_read_inside_matches_unsafe(ramp):
    for y in range(ramp.shape[0]):
        for x in range(ramp.shape[1]):
            assert read_pixel_safe(ramp, (x, y)) == read_pixel_unsafe(ramp, (x, y))


@pytest.mark.parametrize("point", [(-1, 0), (0, -1), (5, 0), (0, 4), (100, 100)])
def test_safe_read_outside_returns_128(ramp, point):
    assert read_pixel_safe(ramp, point) == 128
    assert read_pixel_safe(ramp, point) == OUTSIDE_VALUE


@pytest.mark.parametrize("point", [(-0.1, 1.0), (4.1, 1.0), (1.0, 3.5), (1.0, -2.0)])
def test_bilinear_outside_returns_128(ramp, point):
    assert read_pixel_safe_bilinear(ramp, point) == OUTSIDE_VALUE


def test_bilinear_on_pixel_centre_returns_pixel(ramp):
    assert read_pixel_safe_bilinear(ramp, (2.0, 3.0)) == int(ramp[3, 2])


def test_bilinear_uniform_image_returns_level():
    image = np.full((6, 6), 77, dtype=np.uint8)
    for point in [(0.5, 0.5), (2.25, 4.75), (5.0, 0.3), (1.9, 5.0)]:
        assert read_pixel_safe_bilinear(image, point) == 77


def test_bilinear_stays_within_neighbour_range(ramp):
    for point in [(0.5, 0.5), (1.3, 2.7), (3.9, 0.1), (2.5, 2.5)]:
        x, y = point
        block = ramp[int(y):int(y) + 2, int(x):int(x) + 2]
        value = read_pixel_safe_bilinear(ramp, point)
        assert int(block.min()) <= value <= int(block.max())


def test_cross_product_unit_vectors():
    assert cross_product((1, 0), (0, 1)) == 1


def test_cross_product_is_antisymmetric():
    a, b = (2.5, -1.0), (0.75, 3.0)
    assert cross_product(a, b) == -cross_product(b, a)
    assert cross_product(a, a) == 0


def test_squared_distance_known_triangle():
    assert squared_distance((0, 0), (3, 4)) == 25


def test_squared_distance_symmetric_and_zero_on_self():
    a, b = (1.5, -2.0), (-4.0, 7.25)
    assert squared_distance(a, b) == squared_distance(b, a)
    assert squared_distance(a, a) == 0