import numpy as np

from outline2fourier.maths.conjugate_gradient import _jacobi_preconditioner, conjugate_gradient


def test_solves_symmetric_positive_definite_system():
    rng = np.random.default_rng(5)
    m = rng.normal(size=(6, 6))
    a = m @ m.T + 6.0 * np.eye(6)
    b = rng.normal(size=6)

    x = conjugate_gradient(a, b, tolerance=1e-12)

    assert x is not None
    assert np.allclose(x, np.linalg.solve(a, b), rtol=1e-6, atol=1e-9)


def test_cyclic_spline_system():
    n = 16
    a = 4.0 * np.eye(n) + np.roll(np.eye(n), 1, axis=1) + np.roll(np.eye(n), -1, axis=1)
    y = np.sin(2.0 * np.pi * np.arange(n) / n)
    b = 3.0 * (np.roll(y, -1) - np.roll(y, 1))

    x = conjugate_gradient(a, b)

    assert x is not None
    assert np.allclose(a @ x, b, atol=1e-5)


def test_zero_rhs_returns_zero_vector():
    x = conjugate_gradient(np.eye(3), np.zeros(3))
    assert x is not None
    assert np.array_equal(x, np.zeros(3))


def test_indefinite_matrix_is_reported():
    a = np.diag([1.0, -1.0])
    assert conjugate_gradient(a, np.array([1.0, 1.0])) is None


def test_zero_diagonal_gets_zero_preconditioner_weight():
    a = np.array([[0.0, 1.0], [1.0, 4.0]])
    assert np.array_equal(_jacobi_preconditioner(a), np.array([0.0, 0.25]))
    assert conjugate_gradient(a, np.array([1.0, 0.0])) is None
