from __future__ import annotations

import logging

import numpy as np
import numpy.typing as npt

from outline2fourier.types import FloatArray

LOGGER = logging.getLogger("outline2fourier.maths")

DEFAULT_MAX_ITERATIONS = 500
DEFAULT_TOLERANCE = 1e-6


def _jacobi_preconditioner(a: FloatArray) -> FloatArray:
    diag = np.diag(a).astype(np.float64)
    # Zero diagonal entries get a zero weight.
    con = np.zeros_like(diag)
    nonzero = diag != 0.0
    con[nonzero] = 1.0 / diag[nonzero]
    return con


def conjugate_gradient(
    a: npt.ArrayLike,
    b: npt.ArrayLike,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    tolerance: float = DEFAULT_TOLERANCE,
) -> FloatArray | None:
    """Solve ``a @ x = b`` for a dense symmetric positive definite ``a``.

    Starts from x = 0 with a Jacobi preconditioner and runs at most
    ``min(max_iterations, n)`` steps, stopping once the relative residual
    ``sqrt(|r|^2 / |b|^2)`` drops to ``tolerance``.

    Returns ``None`` when a zero pivot appears or a search direction has
    non-positive curvature (``a`` is not positive definite).
    """
    mat = np.asarray(a, dtype=np.float64)
    rhs = np.asarray(b, dtype=np.float64).reshape(-1)
    n = len(rhs)
    if mat.shape != (n, n):
        raise ValueError(f"matrix shape {mat.shape} does not match right-hand side length {n}")

    x = np.zeros(n, dtype=np.float64)
    bnrm = float(rhs @ rhs)
    if bnrm == 0.0:
        return x

    con = _jacobi_preconditioner(mat)
    r = rhs.copy()
    p = np.zeros(n, dtype=np.float64)
    rhop = 1.0

    for k in range(min(int(max_iterations), n)):
        z = con * r
        rho = float(r @ z)
        if rhop == 0.0:
            LOGGER.debug("cg zero pivot at iteration %d", k)
            return None
        p = z + (rho / rhop) * p
        q = mat @ p
        pap = float(p @ q)
        if pap <= 0.0:
            LOGGER.debug("cg non-positive curvature %.3g at iteration %d", pap, k)
            return None
        alpha = rho / pap
        x += alpha * p
        r -= alpha * q
        rhop = rho
        if np.sqrt(float(r @ r) / bnrm) <= tolerance:
            break
    return x
