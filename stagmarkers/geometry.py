"""Pixel sampling and small 2-D vector helpers.

Images are two-dimensional ``numpy`` arrays of 8-bit grey levels indexed as
``image[row, column]``. Points are ``(x, y)`` pairs where ``x`` is the column
and ``y`` is the row.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

OUTSIDE_VALUE = 128
"""Grey level reported for points that fall outside the image."""

Point = Sequence[float]


def _inside(image: np.ndarray, x: float, y: float, *, inclusive_last: bool) -> bool:
    height, width = image.shape[:2]
    if inclusive_last:
        return 0 <= x <= width - 1 and 0 <= y <= height - 1
    return 0 <= x < width and 0 <= y < height


def read_pixel_unsafe(image: np.ndarray, point: Point) -> int:
    """Return the grey level at an integer point without any bounds check."""
    x, y = point
    return int(image[int(y), int(x)])


def read_pixel_safe(image: np.ndarray, point: Point) -> int:
    """Return the grey level at an integer point, or 128 outside the image."""
    x, y = int(point[0]), int(point[1])
    if _inside(image, x, y, inclusive_last=False):
        return int(image[y, x])
    return OUTSIDE_VALUE


def read_pixel_safe_bilinear(image: np.ndarray, point: Point) -> int:
    """Sample the image at a sub-pixel point from its four neighbours.

    Each neighbour is weighted by its distance to the point. Points outside
    the image read as 128.
    """
    px, py = float(point[0]), float(point[1])
    if not _inside(image, px, py, inclusive_last=True):
        return OUTSIDE_VALUE

    x1, x2 = math.floor(px), math.ceil(px)
    y1, y2 = math.floor(py), math.ceil(py)

    neighbours = ((x1, y1), (x1, y2), (x2, y1), (x2, y2))
    weights = [math.hypot(nx - px, ny - py) for nx, ny in neighbours]
    total_weight = sum(weights)
    if total_weight == 0:
        # The point sits exactly on a pixel centre.
        return int(image[y1, x1])

    total = sum(int(image[ny, nx]) * w for (nx, ny), w in zip(neighbours, weights))
    return int(total / total_weight)


def cross_product(p1: Point, p2: Point) -> float:
    """Return the z component of the cross product of two 2-D vectors."""
    return p1[0] * p2[1] - p1[1] * p2[0]


def squared_distance(p1: Point, p2: Point) -> float:
    """Return the squared Euclidean distance between two points."""
    dx = p1[0] - p2[0]
    dy = p1[1] - p2[1]
    return dx * dx + dy * dy