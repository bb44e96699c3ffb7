"""Input validation for covariance-matrix arguments."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


def is_symmetric(A: NDArray, tol: float = 1e-10) -> bool:
    """True if A is a square matrix equal to its transpose within tol."""
    A = np.asarray(A)
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        return False
    return bool(np.allclose(A, A.T, atol=tol))


def is_positive_definite(A: NDArray) -> bool:
    """True if A is symmetric and has a Cholesky factor."""
    if not is_symmetric(A):
        return False
    try:
        np.linalg.cholesky(np.asarray(A, dtype=np.float64))
    except np.linalg.LinAlgError:
        return False
    return True


def check_covariance(A, dim: int, name: str = "vcov") -> NDArray:
    """Validate a dim x dim covariance matrix and return it as float64.

    Raises
    ------
    ValueError
        If A is not square, has the wrong size or is not symmetric
        positive definite.
    """
    A = np.asarray(A, dtype=np.float64)
    if A.ndim != 2 or A.shape[0] != A.shape[1]:
        raise ValueError(f"{name} must be square, got shape {A.shape}")
    if A.shape != (dim, dim):
        raise ValueError(f"{name} must have shape ({dim}, {dim}), got {A.shape}")
    if not is_positive_definite(A):
        raise ValueError(f"{name} must be symmetric positive definite")
    return A
