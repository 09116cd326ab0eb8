"""Refinement of a marker's homography from its circular border.

The marker's circle has radius 0.4 about the centre of the unit square. An
edge loop matching it is found, an ellipse is fitted to it, and the
homography is adjusted so that the ellipse maps back onto that circle.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy
from scipy.optimize import minimize

from stagmarkers.edges import EdgeMap
from stagmarkers.ellipse import Ellipse
from stagmarkers.geometry import cross_product, squared_distance

CIRCLE_RADIUS = 0.4
CIRCLE_CENTER = 0.5
MIN_SEGMENT_LENGTH = 20
"""Shortest edge segment considered as the circular border."""
LOOP_THRESHOLD = 7.0
"""Largest gap between a loop's first and last pixels."""
ERROR_THRESHOLD = 0.1
"""Largest distance on the marker plane from a pixel to the sampled circle."""
ACC_ERROR_THRESHOLD = 36 * 0.05
"""Largest summed distance from the 36 circle samples to the segment."""

_SINES = [round(math.sin(math.radians(10 * i)), 6) for i in range(36)]
_SAMPLE_POINTS = numpy.array(
    [
        (
            CIRCLE_CENTER + CIRCLE_RADIUS * _SINES[(i + 9) % 36],
            CIRCLE_CENTER + CIRCLE_RADIUS * _SINES[i],
        )
        for i in range(36)
    ]
)


def project_point(point: Sequence[float], homography) -> tuple[float, float]:
    """Map a point through a 3x3 homography."""
    x, y, w = numpy.asarray(homography, dtype=numpy.float64) @ numpy.array(
        [point[0], point[1], 1.0]
    )
    return float(x / w), float(y / w)


def point_in_quad(marker, point: Sequence[float]) -> bool:
    """Return whether ``point`` lies strictly inside the marker's corners."""
    c0, c1, c2, c3 = marker.corners
    c1c2 = (c1[0] - c0[0], c1[1] - c0[1])
    c1c4 = (c3[0] - c0[0], c3[1] - c0[1])
    c3c2 = (c1[0] - c2[0], c1[1] - c2[1])
    c3c4 = (c3[0] - c2[0], c3[1] - c2[1])
    c1p = (point[0] - c0[0], point[1] - c0[1])
    c3p = (point[0] - c2[0], point[1] - c2[1])

    if cross_product(c1p, c1c2) * cross_product(c1p, c1c4) >= 0:
        return False
    if cross_product(c1c2, c1p) * cross_product(c1c2, c1c4) <= 0:
        return False
    if cross_product(c3p, c3c2) * cross_product(c3p, c3c4) >= 0:
        return False
    if cross_product(c3c2, c3p) * cross_product(c3c2, c3c4) <= 0:
        return False
    return True


def _segment_error(pixels, marker, homography_inv: numpy.ndarray) -> float | None:
    """Return the summed circle error of a segment, or ``None`` if it is unsuitable."""
    if len(pixels) < MIN_SEGMENT_LENGTH:
        return None
    (r0, c0), (r1, c1) = pixels[0], pixels[-1]
    if squared_distance((c0, r0), (c1, r1)) > LOOP_THRESHOLD * LOOP_THRESHOLD:
        return None
    if not all(point_in_quad(marker, (c, r)) for r, c in pixels[::MIN_SEGMENT_LENGTH]):
        return None

    points = numpy.array([(c, r, 1.0) for r, c in pixels], dtype=numpy.float64)
    projected = points @ homography_inv.T
    projected = projected[:, :2] / projected[:, 2:3]
    differences = projected[:, None, :] - _SAMPLE_POINTS[None, :, :]
    distances = numpy.sqrt((differences**2).sum(axis=2))

    if (distances.min(axis=1) > ERROR_THRESHOLD).any():
        return None
    return float(distances.min(axis=0).sum())


def _conic_matrix(coefficients: Sequence[float]) -> numpy.ndarray:
    """Return the image-frame conic matrix of y-up ellipse coefficients."""
    a, b, c, d, e, f = coefficients
    return numpy.array(
        [
            [a, -b / 2, d / 2],
            [-b / 2, c, -e / 2],
            [d / 2, -e / 2, f],
        ]
    )


def _circle_error(parameters: numpy.ndarray, conic: numpy.ndarray) -> float:
    """Return how far the conic, pulled back to the marker plane, is from its circle."""
    homography = parameters.reshape((3, 3), order="F")
    projected = homography.T @ conic @ homography
    coefficients = [
        projected[0, 0],
        -projected[0, 1] * 2,
        projected[1, 1],
        projected[0, 2] * 2,
        -projected[1, 2] * 2,
        projected[2, 2],
    ]
    try:
        ellipse = Ellipse.from_coefficients(coefficients)
    except ValueError:
        return math.inf
    return (
        abs(ellipse.semi_major_axis - CIRCLE_RADIUS)
        + abs(ellipse.semi_minor_axis - CIRCLE_RADIUS)
        + abs(ellipse.center_x - CIRCLE_CENTER)
        + abs(ellipse.center_y - CIRCLE_CENTER)
    )


def refine_marker_pose(edge_map: EdgeMap, marker) -> bool:
    """Refine the marker's homography, centre and corners from its circular border.

    Returns ``False`` and leaves the marker untouched when no edge loop fits
    the border. On success the marker's ``conic`` is set as well.
    """
    if marker.homography is None:
        raise ValueError("the marker's homography has not been estimated")

    homography_inv = numpy.linalg.inv(marker.homography)
    chosen = None
    best_error = math.inf
    for segment in edge_map.segments:
        error = _segment_error(segment.pixels, marker, homography_inv)
        if error is not None and error < best_error and error < ACC_ERROR_THRESHOLD:
            best_error = error
            chosen = segment
    if chosen is None:
        return False

    try:
        ellipse = Ellipse.from_pixels([(c, r) for r, c in chosen.pixels])
    except ValueError:
        return False
    conic = _conic_matrix(ellipse.coefficients)
    marker.conic = conic

    start = numpy.asarray(marker.homography, dtype=numpy.float64).flatten(order="F")
    step = numpy.abs(0.001 * start)
    simplex = numpy.tile(start, (start.size + 1, 1))
    simplex[0] -= 0.5 * step
    simplex[1:] += numpy.diag(0.5 * step)

    result = minimize(
        _circle_error,
        start,
        args=(conic,),
        method="Nelder-Mead",
        options={
            "initial_simplex": simplex,
            "maxiter": 5000,
            "xatol": math.inf,
            "fatol": 1e-6,
        },
    )

    homography = numpy.asarray(result.x).reshape((3, 3), order="F")
    marker.homography = homography
    marker.center = project_point((0.5, 0.5), homography)
    marker.corners = [
        project_point(p, homography) for p in ((0, 0), (1, 0), (1, 1), (0, 1))
    ]
    return True