"""Direct least-squares ellipse fitting and point-to-ellipse distances.

Coordinates given to and returned by this module are image coordinates,
with ``y`` growing downwards. The fit itself works with ``y`` negated, and
the stored conic coefficients and rotation belong to that flipped frame.
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence

import numpy

from stagmarkers.fastmath import fast_cos, fast_sin
from stagmarkers.linalg import cholesky, inverse, jacobi

_PI = 3.14159265
_ZERO = 10e-20
MIN_FIT_POINTS = 6
"""Fewest points an ellipse can be fitted to."""

# Constraint matrix of the fitting method, 4AC - B^2 = 1.
_CONSTRAINT = numpy.zeros((6, 6))
_CONSTRAINT[0, 2] = -2.0
_CONSTRAINT[1, 1] = 1.0
_CONSTRAINT[2, 0] = -2.0

# Offsets of the four initial angle guesses used for closest-point search.
_GUESS_OFFSETS = (0.0, 1.5707, _PI, 4.7123)


def _fit_conic(points: Sequence[tuple[float, float]]) -> numpy.ndarray:
    """Return the six conic coefficients of the ellipse best fitting ``points``."""
    pts = numpy.asarray(points, dtype=numpy.float64)
    x, y = pts[:, 0], pts[:, 1]
    design = numpy.column_stack([x * x, x * y, y * y, x, y, numpy.ones_like(x)])
    scatter = design.T @ design

    lower = cholesky(scatter)
    lower_inv = inverse(lower)
    constrained = lower_inv @ (_CONSTRAINT @ lower_inv.T)
    eigenvalues, eigenvectors = jacobi(constrained)
    solutions = lower_inv.T @ eigenvectors
    solutions = solutions / numpy.sqrt((solutions**2).sum(axis=0))

    candidates = [
        i for i, value in enumerate(eigenvalues) if value < 0 and abs(value) > _ZERO
    ]
    if not candidates:
        raise ValueError("the points admit no elliptical solution")
    return solutions[:, candidates[-1]]


def _check_points(xs: Sequence[float], ys: Sequence[float]) -> None:
    if len(xs) != len(ys):
        raise ValueError("xs and ys must have the same length")
    if len(xs) < MIN_FIT_POINTS:
        raise ValueError(f"at least {MIN_FIT_POINTS} points are needed to fit an ellipse")


class Ellipse:
    """An ellipse given by the conic ``Ax^2 + Bxy + Cy^2 + Dx + Ey + F = 0``.

    The conic lives in a frame whose ``y`` axis points up. ``coefficients``
    holds the six values normalised so that ``A`` is one. ``semi_major_axis``
    is the half-axis along the rotated ``x`` axis and ``semi_minor_axis`` the
    one along the rotated ``y`` axis.
    """

    def __init__(self, coefficients: Sequence[float]) -> None:
        values = [float(v) for v in coefficients]
        if len(values) != 6:
            raise ValueError("an ellipse needs six conic coefficients")
        if not all(math.isfinite(v) for v in values):
            raise ValueError("conic coefficients must be finite")
        a1, b1, c1, d1, e1, f1 = values
        if a1 == 0:
            raise ValueError("the x^2 coefficient must not be zero")
        b1, c1, d1, e1, f1 = (v / a1 for v in (b1, c1, d1, e1, f1))
        a1 = 1.0

        if b1 == 0:
            rotation = 0.0
            a2, c2, d2, e2, f2 = a1, c1, d1, e1, f1
        else:
            denominator = a1 - c1
            ratio = b1 / denominator if denominator != 0 else math.copysign(math.inf, b1)
            rotation = math.atan(ratio) / 2
            cos2, sin2 = math.cos(2 * rotation), math.sin(2 * rotation)
            a2 = 0.5 * (a1 * (1 + cos2 + b1 * sin2 + c1 * (1 - cos2)))
            c2 = 0.5 * (a1 * (1 - cos2 - b1 * sin2 + c1 * (1 + cos2)))
            d2 = d1 * math.cos(rotation) + e1 * math.sin(rotation)
            e2 = -d1 * math.sin(rotation) + e1 * math.cos(rotation)
            f2 = f1

        if a2 == 0 or c2 == 0:
            raise ValueError("the conic is not an ellipse")

        cx = -(d2 / a2) / 2
        cy = -(e2 / c2) / 2
        f3 = a2 * cx * cx + c2 * cy * cy - f2
        square_a, square_b = f3 / a2, f3 / c2
        if not (square_a > 0 and square_b > 0):
            raise ValueError("the conic is not a real ellipse")

        if rotation != 0:
            cx, cy = (
                cx * math.cos(rotation) - cy * math.sin(rotation),
                cx * math.sin(rotation) + cy * math.cos(rotation),
            )

        self.coefficients: tuple[float, ...] = (a1, b1, c1, d1, e1, f1)
        self.rotation = rotation
        self.semi_major_axis = math.sqrt(square_a)
        self.semi_minor_axis = math.sqrt(square_b)
        self._cx = cx
        self._cy = cy
        self._points: list[tuple[float, float]] = []
        self._integer = False

    @classmethod
    def from_points(cls, xs: Sequence[float], ys: Sequence[float]) -> "Ellipse":
        """Fit an ellipse to points given as separate x and y coordinate lists."""
        _check_points(xs, ys)
        points = [(float(x), -float(y)) for x, y in zip(xs, ys)]
        ellipse = cls(_fit_conic(points))
        ellipse._points = points
        return ellipse

    @classmethod
    def from_pixels(cls, pixels: Iterable[Sequence[int]]) -> "Ellipse":
        """Fit an ellipse to integer ``(x, y)`` pixel positions.

        Distances from these pixels are measured on the integer grid.
        """
        points = [(int(x), -int(y)) for x, y in pixels]
        _check_points(points, points)
        ellipse = cls(_fit_conic(points))
        ellipse._points = points
        ellipse._integer = True
        return ellipse

    @classmethod
    def from_coefficients(cls, coefficients: Sequence[float]) -> "Ellipse":
        """Build an ellipse from six conic coefficients in the y-up frame."""
        return cls(coefficients)

    @property
    def center_x(self) -> float:
        return self._cx

    @property
    def center_y(self) -> float:
        return -self._cy

    @property
    def center(self) -> tuple[float, float]:
        return (self._cx, -self._cy)

    @property
    def fit_points(self) -> list[tuple[float, float]]:
        """The points the ellipse was fitted to, in image coordinates."""
        return [(x, -y) for x, y in self._points]

    def perimeter(self) -> float:
        """Return Ramanujan's second approximation of the perimeter."""
        a, b = self.semi_major_axis, self.semi_minor_axis
        h = (a - b) ** 2 / (a + b) ** 2
        return _PI * (a + b) * (1 + 3 * h / (10 + math.sqrt(4 - 3 * h)))

    def draw(self, resolution: int) -> list[tuple[int, int] | None]:
        """Return integer points along the ellipse for drawing.

        An odd ``resolution`` is lowered by one. Half of the points come from
        each side of the ellipse along evenly spread normal directions; a
        direction with no point on the ellipse gives ``None``.
        """
        if resolution < 0:
            raise ValueError("resolution must not be negative")
        if resolution % 2:
            resolution -= 1
        count = resolution // 2
        if count == 0:
            return []

        a1, b1, c1, d1, e1, f1 = self.coefficients
        quadratic_inv = inverse([[a1, b1 / 2], [b1 / 2, c1]])
        linear = numpy.array([d1, e1])
        r1 = float(linear @ quadratic_inv @ linear) - 4 * f1

        positive: list[tuple[int, int] | None] = []
        negative: list[tuple[int, int] | None] = []
        for theta in numpy.arange(count) * (_PI / count):
            normal = numpy.array([math.cos(theta), math.sin(theta)])
            denominator = float(normal @ quadratic_inv @ normal)
            ratio = r1 / denominator if denominator != 0 else math.nan
            if not ratio >= 0.0:
                positive.append(None)
                negative.append(None)
                continue
            lam = math.sqrt(ratio)
            for sign, out in ((1.0, positive), (-1.0, negative)):
                px, py = quadratic_inv @ (0.5 * (sign * lam * normal - linear))
                out.append((int(px), -int(py)))
        return positive + negative

    def _newton_step(self, theta: float, x: float, y: float) -> float:
        a, b = self.semi_major_axis, self.semi_minor_axis
        a2_b2 = a * a - b * b
        sin_t, cos_t = math.sin(theta), math.cos(theta)
        f = a2_b2 * cos_t * sin_t - x * a * sin_t + y * b * cos_t
        f_prime = a2_b2 * (cos_t * cos_t - sin_t * sin_t) - x * a * cos_t - y * b * sin_t
        if f_prime == 0:
            return 0.0
        return f / f_prime

    def _estimate_theta(self, theta: float, x: float, y: float) -> float:
        for _ in range(2):
            theta -= self._newton_step(theta, x, y)
        return theta

    def _nearest(self, x: float, y: float, integer: bool) -> tuple[float, float]:
        """Return ``(squared distance, angle)`` of the closest point, in the y-up frame."""
        a, b = self.semi_major_axis, self.semi_minor_axis
        tx, ty = x - self._cx, y - self._cy
        if integer:
            tx, ty = int(tx), int(ty)
        rx, ry = tx, ty
        if self.rotation != 0:
            cos_r, sin_r = math.cos(-self.rotation), math.sin(-self.rotation)
            rx = tx * cos_r - ty * sin_r
            ry = tx * sin_r + ty * cos_r
            tx, ty = (int(rx), int(ry)) if integer else (rx, ry)

        initial = math.atan(a * ry / b * rx)
        results = []
        for offset in _GUESS_OFFSETS:
            theta = self._estimate_theta(initial + offset, rx, ry)
            px, py = a * math.cos(theta), b * math.sin(theta)
            if integer:
                px, py = int(px), int(py)
            results.append(((tx - px) ** 2 + (ty - py) ** 2, theta))
        return min(results, key=lambda item: item[0])

    def distance(self, x: float, y: float) -> tuple[float, float]:
        """Return the distance from ``(x, y)`` to the ellipse and the curve angle found."""
        squared, theta = self._nearest(x, -y, integer=False)
        return math.sqrt(squared), theta

    def squared_distance(self, x: float, y: float) -> tuple[float, float]:
        """Return the squared distance from ``(x, y)`` and the curve angle found."""
        return self._nearest(x, -y, integer=False)

    def _require_points(self) -> None:
        if not self._points:
            raise ValueError("the ellipse was not fitted to any points")

    def average_fitting_error(self) -> float:
        """Return the mean distance of the fitted points from the ellipse."""
        self._require_points()
        total = sum(
            math.sqrt(self._nearest(x, y, self._integer)[0]) for x, y in self._points
        )
        return total / len(self._points)

    def rms_fitting_error(self) -> float:
        """Return the root mean squared distance of the fitted points."""
        self._require_points()
        total = sum(self._nearest(x, y, self._integer)[0] for x, y in self._points)
        return math.sqrt(total / len(self._points))

    def _curve_point(self, theta: float) -> tuple[int, int]:
        px = self.semi_major_axis * math.cos(theta)
        py = self.semi_minor_axis * math.sin(theta)
        cos_r, sin_r = math.cos(self.rotation), math.sin(self.rotation)
        return (
            int(px * cos_r - py * sin_r + self._cx),
            -int(px * sin_r + py * cos_r + self._cy),
        )

    def closest_points(self) -> list[tuple[int, int]]:
        """Return, for every fitted point, the closest integer point on the ellipse."""
        self._require_points()
        return [
            self._curve_point(self._nearest(x, y, self._integer)[1]) for x, y in self._points
        ]

    def closest_point_and_distance(
        self, x: float, y: float
    ) -> tuple[float, tuple[int, int]]:
        """Return the distance from ``(x, y)`` and the closest integer point on the ellipse."""
        distance, theta = self.distance(x, y)
        return distance, self._curve_point(theta)

    def samples(self, count: int) -> list[tuple[float, float]]:
        """Return ``count`` points spread evenly by angle around the ellipse."""
        if count <= 0:
            raise ValueError("count must be positive")
        step = 360.0 / count
        cos_r, sin_r = math.cos(self.rotation), math.sin(self.rotation)
        points = []
        for i in range(count):
            radians = i * step * _PI / 180
            px = self.semi_major_axis * fast_sin(radians)
            py = self.semi_minor_axis * fast_cos(radians)
            x = self._cx + px * cos_r - py * sin_r
            y = self._cy + px * sin_r + py * cos_r
            points.append((x, -y))
        return points