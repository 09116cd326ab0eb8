import numpy
import pytest

from stagmarkers.marker import Marker
from stagmarkers.quad import Quad

CORNERS = [(10, 10), (50, 12), (48, 52), (8, 49)]


def _estimated_quad():
    quad = Quad(CORNERS)
    quad.estimate_homography()
    return quad


def _project(h, u, v):
    x, y, w = h @ numpy.array([u, v, 1.0])
    return x / w, y / w


def test_from_quad_copies_geometry():
    quad = _estimated_quad()
    marker = Marker.from_quad(quad, 42)
    assert marker.id == 42
    assert marker.corners == quad.corners
    assert marker.line_inf == quad.line_inf
    assert marker.projective_distortion == quad.projective_distortion
    assert numpy.array_equal(marker.homography, quad.homography)
    assert marker.center == quad.center
    assert marker.conic is None


def test_from_quad_homography_is_independent_copy():
    quad = _estimated_quad()
    marker = Marker.from_quad(quad, 1)
    marker.homography[0, 0] += 100.0
    assert not numpy.array_equal(marker.homography, quad.homography)


@pytest.mark.parametrize("shift", [1, 2, 3])
def test_shift_rotates_corners(shift):
    marker = Marker.from_quad(_estimated_quad(), 7)
    original = list(marker.corners)
    marker.shift_corners(shift)
    assert marker.corners == original[shift:] + original[:shift]


@pytest.mark.parametrize("shift", [1, 2, 3])
def test_shift_recomputes_homography(shift):
    marker = Marker.from_quad(_estimated_quad(), 7)
    marker.shift_corners(shift)
    for (u, v), corner in zip([(0, 0), (1, 0), (1, 1), (0, 1)], marker.corners):
        assert _project(marker.homography, u, v) == pytest.approx(corner, abs=1e-9)


@pytest.mark.parametrize("shift", [0, 4, -1])
def test_other_shifts_change_nothing(shift):
    marker = Marker.from_quad(_estimated_quad(), 3)
    corners = list(marker.corners)
    homography = marker.homography.copy()
    marker.shift_corners(shift)
    assert marker.corners == corners
    assert numpy.array_equal(marker.homography, homography)


def test_two_half_turns_restore_corners():
    marker = Marker.from_quad(_estimated_quad(), 5)
    original = list(marker.corners)
    marker.shift_corners(2)
    marker.shift_corners(2)
    assert marker.corners == original


def test_shift_keeps_center():
    marker = Marker.from_quad(_estimated_quad(), 9)
    center = marker.center
    marker.shift_corners(1)
    assert marker.center == pytest.approx(center, abs=1e-9)


def test_marker_constructor_rejects_bad_corners():
    with pytest.raises(ValueError):
        Marker([(0, 0), (1, 1)], 0)