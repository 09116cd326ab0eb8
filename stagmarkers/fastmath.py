"""Fast trigonometric approximations and least-squares circle fitting."""

from __future__ import annotations

import math
from typing import Sequence

_PI = 3.14159265
_TWO_PI = 6.28318531
_HALF_PI = 1.57079632

MAX_CIRCLE_MSE = 0.0002
"""Largest mean squared radial error for which points count as a circle."""


def _wrap(x: float) -> float:
    """Bring an angle into -pi..pi with a single wrap, as the approximation expects."""
    if x < -_PI:
        return x + _TWO_PI
    if x > _PI:
        return x - _TWO_PI
    return x


def _parabolic_sine(x: float) -> float:
    if x < 0:
        res = 1.27323954 * x + 0.405284735 * x * x
    else:
        res = 1.27323954 * x - 0.405284735 * x * x

    if res < 0:
        return 0.225 * (res * -res - res) + res
    return 0.225 * (res * res - res) + res


def fast_sin(x: float) -> float:
    """Approximate ``sin(x)`` with a refined parabola.

    The angle is wrapped once into -pi..pi, so it should lie within -3pi..3pi.
    """
    return _parabolic_sine(_wrap(float(x)))


def fast_cos(x: float) -> float:
    """Approximate ``cos(x)`` as the sine of ``x + pi/2``."""
    return _parabolic_sine(_wrap(float(x) + _HALF_PI))


def fit_circle(
    xs: Sequence[float], ys: Sequence[float]
) -> tuple[float, float, float] | None:
    """Fit a circle ``(x - cx)^2 + (y - cy)^2 = r^2`` to the given points.

    Returns ``(cx, cy, r)``, or ``None`` when the points are degenerate or do
    not lie closely enough on a circle. Raises ``ValueError`` when the
    coordinate lists differ in length or hold fewer than three points.
    """
    if len(xs) != len(ys):
        raise ValueError("xs and ys must have the same length")
    n = len(xs)
    if n < 3:
        raise ValueError("at least three points are needed to fit a circle")

    x_avg = sum(xs) / n
    y_avg = sum(ys) / n

    suu = suv = svv = suuu = suvv = svvv = svuu = 0.0
    for x, y in zip(xs, ys):
        u = x - x_avg
        v = y - y_avg
        suu += u * u
        suv += u * v
        svv += v * v
        suuu += u * u * u
        suvv += u * v * v
        svvv += v * v * v
        svuu += v * u * u

    det = suu * svv - suv * suv
    if det == 0:
        return None

    b1 = 0.5 * (suuu + suvv)
    b2 = 0.5 * (svvv + svuu)
    uc = (svv * b1 - suv * b2) / det
    vc = (suu * b2 - suv * b1) / det

    radius = math.sqrt(uc * uc + vc * vc + (suu + svv) / n)
    center_x = uc + x_avg
    center_y = vc + y_avg

    error = sum(
        (math.hypot(x - center_x, y - center_y) - radius) ** 2 for x, y in zip(xs, ys)
    ) / n
    if error > MAX_CIRCLE_MSE:
        return None

    return center_x, center_y, radius