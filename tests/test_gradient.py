import numpy as np
import pytest

from stagmarkers.gradient import EPSILON, MAX_GRAD_VALUE, nfa, prewitt_gradient


@pytest.fixture
def textured():
    rng = np.random.default_rng(7)
    return rng.integers(0, 256, size=(9, 12), dtype=np.uint8)


def test_constant_image_has_zero_gradient():
    image = np.full((5, 6), 200, dtype=np.uint8)
    gradient, tail = prewitt_gradient(image)
    assert not gradient.any()
    assert tail[0] == 1.0
    assert not tail[1:].any()


def test_output_shapes(textured):
    gradient, tail = prewitt_gradient(textured)
    assert gradient.shape == textured.shape
    assert tail.shape == (MAX_GRAD_VALUE,)


def test_border_is_zero(textured):
    gradient, _ = prewitt_gradient(textured)
    assert not gradient[0, :].any()
    assert not gradient[-1, :].any()
    assert not gradient[:, 0].any()
    assert not gradient[:, -1].any()


def test_tail_is_nonincreasing_and_starts_at_one(textured):
    _, tail = prewitt_gradient(textured)
    assert tail[0] == 1.0
    assert np.all(np.diff(tail) <= 0)


def test_tail_matches_interior_fraction(textured):
    gradient, tail = prewitt_gradient(textured)
    interior = gradient[1:-1, 1:-1]
    threshold = int(np.median(interior))
    expected = np.count_nonzero(interior >= threshold) / interior.size
    assert tail[threshold] == pytest.approx(expected)


def test_inverted_image_has_same_gradient(textured):
    gradient, tail = prewitt_gradient(textured)
    inv_gradient, inv_tail = prewitt_gradient(255 - textured)
    assert np.array_equal(gradient, inv_gradient)
    assert np.array_equal(tail, inv_tail)


def test_transposed_image_has_transposed_gradient(textured):
    gradient, _ = prewitt_gradient(textured)
    transposed, _ = prewitt_gradient(np.ascontiguousarray(textured.T))
    assert np.array_equal(transposed, gradient.T)


@pytest.mark.parametrize("shape", [(2, 5), (5, 2), (1, 1)])
def test_too_small_image_raises(shape):
    with pytest.raises(ValueError):
        prewitt_gradient(np.zeros(shape, dtype=np.uint8))


def test_nfa_zero_length_returns_count():
    assert nfa(5, 0.5, 0) == 5


def test_nfa_probability_one_keeps_count():
    assert nfa(40, 1.0, 25) == 40


def test_nfa_stops_at_epsilon():
    assert nfa(8, 0.5, 10) == EPSILON


def test_nfa_count_below_epsilon_untouched():
    assert nfa(0, 0.5, 10) == 0


def test_nfa_decreases_with_length():
    values = [nfa(1000, 0.9, n) for n in range(20)]
    assert all(b <= a for a, b in zip(values, values[1:]))