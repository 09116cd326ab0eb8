"""Reading marker codes from quads and collecting decoded markers.

A marker's code is read at 48 points on a circle inside the unit square,
together with 12 points on its black border and 12 just outside it. The
readings are split into dark and light with Otsu's method.
"""

from __future__ import annotations

import math
from typing import Iterable, Iterator

import numpy

from stagmarkers.geometry import read_pixel_safe_bilinear
from stagmarkers.quad import Quad

HALF_PI = 1.570796326794897
OUTER_CIRCLE_RADIUS = 0.4
"""Radius of the circle that holds the code, in unit-square coordinates."""
INNER_CIRCLE_RADIUS = OUTER_CIRCLE_RADIUS * 0.9
BORDER_DIST = 0.045
"""Distance of border samples from the square's edge."""
CODE_LENGTH = 48
_FLT_EPSILON = 1.1920928955078125e-07

# (radius, angle) of the twelve code points of the first quadrant.
_QUADRANT_LAYOUT = (
    (0.088363142525988, 0.785398163397448),
    (0.206935928182607, 0.459275804122858),
    (0.206935928182607, HALF_PI - 0.459275804122858),
    (0.313672146827381, 0.200579720495241),
    (0.327493143484516, 0.591687617505840),
    (0.327493143484516, HALF_PI - 0.591687617505840),
    (0.313672146827381, HALF_PI - 0.200579720495241),
    (0.437421957035861, 0.145724938287167),
    (0.437226762361658, 0.433363129825345),
    (0.430628029742607, 0.785398163397448),
    (0.437226762361658, HALF_PI - 0.433363129825345),
    (0.437421957035861, HALF_PI - 0.145724938287167),
)


def polar_point(radius: float, radians: float, circle_radius: float) -> numpy.ndarray:
    """Return the homogeneous unit-square point at a polar position.

    ``radius`` is relative to a circle of radius 0.5 and is scaled to one of
    radius ``circle_radius`` about the square's centre; the y axis points down.
    """
    scale = radius * (circle_radius / 0.5)
    return numpy.array(
        [0.5 + math.cos(radians) * scale, 0.5 - math.sin(radians) * scale, 1.0]
    )


def code_locations() -> numpy.ndarray:
    """Return the 48 homogeneous code sample points, quadrant by quadrant."""
    return numpy.array(
        [
            polar_point(radius, angle + quadrant * HALF_PI, INNER_CIRCLE_RADIUS)
            for quadrant in range(4)
            for radius, angle in _QUADRANT_LAYOUT
        ]
    )


def black_locations() -> numpy.ndarray:
    """Return the 12 homogeneous sample points on the black border."""
    d = BORDER_DIST
    points = [
        (d, 3 * d),
        (2 * d, 2 * d),
        (3 * d, d),
        (1 - 3 * d, d),
        (1 - 2 * d, 2 * d),
        (1 - d, 3 * d),
        (1 - d, 1 - 3 * d),
        (1 - 2 * d, 1 - 2 * d),
        (1 - 3 * d, 1 - d),
        (3 * d, 1 - d),
        (2 * d, 1 - 2 * d),
        (d, 1 - 3 * d),
    ]
    return numpy.array([(x, y, 1.0) for x, y in points])


def white_locations() -> numpy.ndarray:
    """Return the 12 homogeneous sample points just outside the marker."""
    d = BORDER_DIST
    points = [
        (0.25, -d),
        (0.5, -d),
        (0.75, -d),
        (1 + d, 0.25),
        (1 + d, 0.5),
        (1 + d, 0.75),
        (0.75, 1 + d),
        (0.5, 1 + d),
        (0.25, 1 + d),
        (-d, 0.75),
        (-d, 0.5),
        (-d, 0.25),
    ]
    return numpy.array([(x, y, 1.0) for x, y in points])


def otsu_threshold(values: Iterable[int]) -> int:
    """Return Otsu's threshold for 8-bit values.

    Values at or below the threshold form the dark class.
    """
    data = numpy.asarray(list(values), dtype=numpy.int64).ravel()
    if data.size == 0:
        raise ValueError("no values to threshold")
    if data.min() < 0 or data.max() > 255:
        raise ValueError("values must lie between 0 and 255")

    histogram = numpy.bincount(data, minlength=256)
    scale = 1.0 / data.size
    mean = float((numpy.arange(256) * histogram).sum()) * scale

    mu1 = q1 = 0.0
    best_sigma = 0.0
    best = 0
    for level, count in enumerate(histogram):
        p = count * scale
        mu1 *= q1
        q1 += p
        q2 = 1.0 - q1
        if min(q1, q2) < _FLT_EPSILON or max(q1, q2) > 1.0 - _FLT_EPSILON:
            continue
        mu1 = (mu1 + level * p) / q1
        mu2 = (mean - q1 * mu1) / q2
        sigma = q1 * q2 * (mu1 - mu2) ** 2
        if sigma > best_sigma:
            best_sigma = sigma
            best = level
    return best


def read_code(image: numpy.ndarray, quad: Quad) -> tuple[int, ...]:
    """Read the 48-bit code of a quad; dark samples read as 1.

    The quad's homography must have been estimated.
    """
    if quad.homography is None:
        raise ValueError("the quad's homography has not been estimated")
    points = numpy.vstack([code_locations(), black_locations(), white_locations()])
    projected = points @ numpy.asarray(quad.homography, dtype=numpy.float64).T
    samples = [read_pixel_safe_bilinear(image, (x / w, y / w)) for x, y, w in projected]
    threshold = otsu_threshold(samples)
    return tuple(1 if value <= threshold else 0 for value in samples[:CODE_LENGTH])


class MarkerList:
    """Decoded markers, at most one per identifier.

    Of two markers with the same identifier the one with the smaller
    projective distortion is kept.
    """

    def __init__(self) -> None:
        self._markers: list = []

    def add(self, marker) -> None:
        """Add a marker, replacing a more distorted one with the same id."""
        for index, existing in enumerate(self._markers):
            if existing.id == marker.id:
                if marker.projective_distortion < existing.projective_distortion:
                    self._markers[index] = marker
                return
        self._markers.append(marker)

    def clear(self) -> None:
        self._markers.clear()

    def __len__(self) -> int:
        return len(self._markers)

    def __iter__(self) -> Iterator:
        return iter(self._markers)

    def __getitem__(self, index: int):
        return self._markers[index]