"""Prewitt gradient statistics and the number-of-false-alarms measure.

These support the Helmholtz-principle validation of edge segments.
"""

from __future__ import annotations

import numpy

MAX_GRAD_VALUE = 128 * 256
"""Size of the gradient tail-probability table."""

EPSILON = 1.0
"""An edge piece is meaningful once its number of false alarms drops to this."""


def prewitt_gradient(image: numpy.ndarray) -> tuple[numpy.ndarray, numpy.ndarray]:
    """Compute the Prewitt gradient magnitude and its tail probabilities.

    Returns ``(gradient, tail)``. ``gradient`` has the image's shape and holds
    ``|gx| + |gy|`` for interior pixels and zero on the one-pixel border.
    ``tail[g]`` is the fraction of interior pixels whose gradient is at least
    ``g``, for every ``g`` below :data:`MAX_GRAD_VALUE`.

    Raises ``ValueError`` for images without interior pixels.
    """
    img = numpy.asarray(image)
    if img.ndim != 2:
        raise ValueError("expected a single-channel two-dimensional image")
    height, width = img.shape
    if height < 3 or width < 3:
        raise ValueError("image must be at least 3x3 pixels")

    src = img.astype(numpy.int32)
    com1 = src[2:, 2:] - src[:-2, :-2]
    com2 = src[:-2, 2:] - src[2:, :-2]
    gx = numpy.abs(com1 + com2 + (src[1:-1, 2:] - src[1:-1, :-2]))
    gy = numpy.abs(com1 - com2 + (src[2:, 1:-1] - src[:-2, 1:-1]))
    interior = gx + gy

    gradient = numpy.zeros((height, width), dtype=numpy.int32)
    gradient[1:-1, 1:-1] = interior

    counts = numpy.bincount(interior.ravel(), minlength=MAX_GRAD_VALUE)[:MAX_GRAD_VALUE]
    tail_counts = counts[::-1].cumsum()[::-1]
    size = (width - 2) * (height - 2)
    tail = tail_counts.astype(numpy.float64) / float(size)
    return gradient, tail


def nfa(np: int, prob: float, length: int) -> float:
    """Return the number of false alarms for ``length`` pixels of probability ``prob``.

    ``np`` is the number of candidate pieces. Multiplication stops as soon as
    the value is no longer above :data:`EPSILON`.
    """
    value = float(np)
    for _ in range(length):
        if value <= EPSILON:
            break
        value *= prob
    return value