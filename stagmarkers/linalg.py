"""Small dense linear-algebra routines used by the conic fitting code.

Matrices are ``numpy`` arrays or nested sequences of numbers. Inputs are
never modified.
"""

from __future__ import annotations

import math

import numpy

MAX_SWEEPS = 50
"""Upper bound on the number of Jacobi sweeps."""

PIVOT_EPSILON = 10e-20
"""Pivots smaller than this in magnitude mark a matrix as singular."""


class SingularMatrixError(ValueError):
    """Raised when a matrix cannot be inverted."""


def _square(matrix) -> numpy.ndarray:
    array = numpy.array(matrix, dtype=numpy.float64, copy=True)
    if array.ndim != 2 or array.shape[0] != array.shape[1]:
        raise ValueError("expected a square matrix")
    return array


def jacobi(matrix) -> tuple[numpy.ndarray, numpy.ndarray]:
    """Diagonalise a symmetric matrix with cyclic Jacobi rotations.

    Returns ``(eigenvalues, eigenvectors)``; the eigenvectors are the columns
    of the second array, in the same order as the eigenvalues. Only the upper
    triangle of ``matrix`` is read. At most fifty sweeps are made.
    """
    a = _square(matrix)
    n = a.shape[0]
    v = numpy.eye(n)
    d = numpy.diag(a).copy()
    b = d.copy()
    z = numpy.zeros(n)

    for sweep in range(1, MAX_SWEEPS + 1):
        off_diagonal = float(numpy.abs(numpy.triu(a, 1)).sum())
        if off_diagonal == 0.0:
            return d, v
        threshold = 0.2 * off_diagonal / (n * n) if sweep < 4 else 0.0

        for ip in range(n - 1):
            for iq in range(ip + 1, n):
                apq = a[ip, iq]
                g = 100.0 * abs(apq)
                if sweep > 4 and g == 0.0:
                    a[ip, iq] = 0.0
                    continue
                if abs(apq) <= threshold:
                    continue

                theta = 0.5 * (d[iq] - d[ip]) / apq
                t = 1.0 / (abs(theta) + math.sqrt(1.0 + theta * theta))
                if theta < 0.0:
                    t = -t
                c = 1.0 / math.sqrt(1 + t * t)
                s = t * c
                tau = s / (1.0 + c)
                h = t * apq
                z[ip] -= h
                z[iq] += h
                d[ip] -= h
                d[iq] += h
                a[ip, iq] = 0.0

                _rotate(a, (slice(0, ip), ip), (slice(0, ip), iq), tau, s)
                _rotate(a, (ip, slice(ip + 1, iq)), (slice(ip + 1, iq), iq), tau, s)
                _rotate(a, (ip, slice(iq + 1, n)), (iq, slice(iq + 1, n)), tau, s)
                _rotate(v, (slice(None), ip), (slice(None), iq), tau, s)

        b += z
        d = b.copy()
        z[:] = 0.0

    return d, v


def _rotate(a: numpy.ndarray, first, second, tau: float, s: float) -> None:
    g = a[first].copy()
    h = a[second].copy()
    a[first] = g - s * (h + g * tau)
    a[second] = h + s * (g - h * tau)


def cholesky(matrix) -> numpy.ndarray:
    """Return the lower-triangular ``L`` with ``L @ L.T`` equal to ``matrix``.

    Raises ``ValueError`` when the matrix is not positive definite.
    """
    a = _square(matrix)
    n = a.shape[0]
    diagonal = numpy.zeros(n)

    for i in range(n):
        for j in range(i, n):
            total = a[i, j] - float(numpy.dot(a[i, :i], a[j, :i]))
            if i == j:
                if total <= 0.0:
                    raise ValueError("matrix is not positive definite")
                diagonal[i] = math.sqrt(total)
            else:
                a[j, i] = total / diagonal[i]

    return numpy.tril(a, -1) + numpy.diag(diagonal)


def inverse(matrix) -> numpy.ndarray:
    """Invert a square matrix by Gauss-Jordan elimination with row pivoting.

    Raises :class:`SingularMatrixError` when a pivot vanishes.
    """
    m = _square(matrix)
    n = m.shape[0]
    augmented = numpy.hstack([m, numpy.eye(n)])

    for k in range(n):
        pivot_row = k + int(numpy.argmax(numpy.abs(augmented[k:, k])))
        if abs(augmented[pivot_row, k]) < PIVOT_EPSILON:
            raise SingularMatrixError("the matrix may be singular")
        if pivot_row != k:
            augmented[[k, pivot_row]] = augmented[[pivot_row, k]]

        augmented[k] /= augmented[k, k]
        factors = augmented[:, k].copy()
        factors[k] = 0.0
        augmented -= numpy.outer(factors, augmented[k])

    return augmented[:, n:]