import math

import pytest

from stagmarkers.fastmath import fast_cos, fast_sin, fit_circle


@pytest.mark.parametrize("angle", [i * 0.1 for i in range(-31, 32)])
def test_fast_sin_close_to_sin(angle):
    assert fast_sin(angle) == pytest.approx(math.sin(angle), abs=0.002)


@pytest.mark.parametrize("angle", [i * 0.1 for i in range(-47, 16)])
def test_fast_cos_close_to_cos(angle):
    assert fast_cos(angle) == pytest.approx(math.cos(angle), abs=0.002)


def test_fast_sin_of_zero_is_zero():
    assert fast_sin(0.0) == 0.0


@pytest.mark.parametrize("angle", [0.3, 1.0, 2.5, 3.0])
def test_fast_sin_is_odd(angle):
    assert fast_sin(-angle) == pytest.approx(-fast_sin(angle), abs=1e-12)


def test_fast_sin_wraps_large_angles():
    assert fast_sin(5.0) == pytest.approx(math.sin(5.0), abs=0.002)
    assert fast_sin(-5.0) == pytest.approx(math.sin(-5.0), abs=0.002)


def test_fit_circle_recovers_exact_circle():
    cx, cy, r = 2.0, -3.0, 5.0
    angles = [k * 2 * math.pi / 24 for k in range(24)]
    xs = [cx + r * math.cos(t) for t in angles]
    ys = [cy + r * math.sin(t) for t in angles]
    result = fit_circle(xs, ys)
    assert result is not None
    fx, fy, fr = result
    assert fx == pytest.approx(cx, abs=1e-9)
    assert fy == pytest.approx(cy, abs=1e-9)
    assert fr == pytest.approx(r, abs=1e-9)


def test_fit_circle_rejects_non_circle():
    xs = [0.0, 10.0, 10.0, 0.0, 5.0]
    ys = [0.0, 0.0, 1.0, 1.0, 0.5]
    assert fit_circle(xs, ys) is None


def test_fit_circle_degenerate_line_returns_none():
    xs = [0.0, 1.0, 2.0, 3.0]
    ys = [1.0, 1.0, 1.0, 1.0]
    assert fit_circle(xs, ys) is None


def test_fit_circle_needs_three_points():
    with pytest.raises(ValueError):
        fit_circle([0.0, 1.0], [0.0, 1.0])


def test_fit_circle_length_mismatch():
    with pytest.raises(ValueError):
        fit_circle([0.0, 1.0, 2.0], [0.0, 1.0])