"""Quadrilateral candidates and their homographies from the unit square."""

from __future__ import annotations

import math
from typing import Sequence

import numpy

from stagmarkers.geometry import cross_product

Point = tuple[float, float]


def _line_at_infinity(corners: Sequence[Point]) -> tuple[float, float, float]:
    """Return the normalised vanishing line of the quad's edge pairs."""
    c0, c1, c2, c3 = corners
    cross14 = cross_product(c0, c3)
    cross23 = cross_product(c1, c2)
    cross12 = cross_product(c0, c1)
    cross34 = cross_product(c2, c3)

    vec23 = (c1[0] - c2[0], c1[1] - c2[1])
    vec14 = (c0[0] - c3[0], c0[1] - c3[1])
    vec34 = (c2[0] - c3[0], c2[1] - c3[1])
    vec12 = (c0[0] - c1[0], c0[1] - c1[1])

    parallel_14_23 = cross_product(vec14, vec23) == 0
    parallel_12_34 = cross_product(vec12, vec34) == 0

    def meet_12_34() -> Point:
        denom = vec12[0] * vec34[1] - vec12[1] * vec34[0]
        return (
            (cross12 * vec34[0] - vec12[0] * cross34) / denom,
            (cross12 * vec34[1] - vec12[1] * cross34) / denom,
        )

    def meet_14_23() -> Point:
        denom = vec14[0] * vec23[1] - vec14[1] * vec23[0]
        return (
            (cross14 * vec23[0] - vec14[0] * cross23) / denom,
            (cross14 * vec23[1] - vec14[1] * cross23) / denom,
        )

    if parallel_14_23 and parallel_12_34:
        return (0.0, 0.0, 1.0)
    if parallel_14_23:
        inters2 = meet_12_34()
        # Only one vanishing point is real; the second lies along the parallel pair.
        inters1 = (inters2[0] + vec14[0], inters2[1] + vec14[1])
    elif parallel_12_34:
        inters1 = meet_14_23()
        inters2 = (inters1[0] + vec12[0], inters1[1] + vec12[1])
    else:
        inters1 = meet_14_23()
        inters2 = meet_12_34()

    l1 = inters1[1] - inters2[1]
    l2 = inters2[0] - inters1[0]
    l3 = inters1[0] * inters2[1] - inters2[0] * inters1[1]
    normaliser = math.sqrt(l1 * l1 + l2 * l2)
    return (l1 / normaliser, l2 / normaliser, l3 / normaliser)


def _projective_distortion(
    corners: Sequence[Point], line: tuple[float, float, float]
) -> float:
    """Return the ratio of the largest to the smallest corner distance to ``line``."""
    distances = [abs(line[0] * x + line[1] * y + line[2]) for x, y in corners]
    smallest, largest = min(distances), max(distances)
    if smallest == 0:
        return math.inf if largest > 0 else math.nan
    return largest / smallest


class Quad:
    """Four image corners of a candidate marker, in order around the quad.

    On construction the vanishing line (``line_inf``) and the projective
    distortion are computed. The homography mapping the unit square onto the
    corners and the projected centre are set by :meth:`estimate_homography`.
    """

    def __init__(self, corners: Sequence[Sequence[float]]) -> None:
        if len(corners) != 4:
            raise ValueError("a quad needs exactly four corners")
        self.corners: list[Point] = [(float(x), float(y)) for x, y in corners]
        self.line_inf = _line_at_infinity(self.corners)
        self.projective_distortion = _projective_distortion(self.corners, self.line_inf)
        self.homography: numpy.ndarray | None = None
        self.center: Point | None = None

    def estimate_homography(self) -> numpy.ndarray:
        """Compute and store the homography from the unit square to the corners.

        The unit square's corners ``(0,0), (1,0), (1,1), (0,1)`` map onto the
        quad's corners in order. The projected centre of the square is stored
        in ``center``. Returns the homography.
        """
        lx, ly, lz = self.line_inf
        affine = []
        for x, y in self.corners:
            w = lx * x + ly * y + lz
            affine.append((x / w, y / w))

        rectify_inverse = numpy.eye(3)
        rectify_inverse[2, 0] = -lx / lz
        rectify_inverse[2, 1] = -ly / lz
        rectify_inverse[2, 2] = 1 / lz

        square_to_affine = numpy.eye(3)
        square_to_affine[0, 0] = affine[1][0] - affine[0][0]
        square_to_affine[0, 1] = affine[3][0] - affine[0][0]
        square_to_affine[0, 2] = affine[0][0]
        square_to_affine[1, 0] = affine[1][1] - affine[0][1]
        square_to_affine[1, 1] = affine[3][1] - affine[0][1]
        square_to_affine[1, 2] = affine[0][1]

        self.homography = rectify_inverse @ square_to_affine

        cx, cy, cw = self.homography @ numpy.array([0.5, 0.5, 1.0])
        self.center = (float(cx / cw), float(cy / cw))
        return self.homography