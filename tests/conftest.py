"""Shared test fixtures for pysnva."""

from __future__ import annotations

import numpy as np
import pytest

from pysnva.backend import get_backend
from pysnva.quadrature import get_quadrature_rule


@pytest.fixture
def xp_numpy():
    """NumPy backend fixture."""
    return get_backend("numpy")


@pytest.fixture
def xp_torch():
    """PyTorch backend fixture (skips if torch not installed)."""
    pytest.importorskip("torch")
    return get_backend("torch")


@pytest.fixture(params=["numpy"])
def xp(request):
    """Parametrized backend fixture (numpy only by default)."""
    if request.param == "torch":
        pytest.importorskip("torch")
    return get_backend(request.param)


@pytest.fixture
def rule20():
    """Cached 20-node Gauss-Hermite rule."""
    return get_quadrature_rule(20)


@pytest.fixture
def rule30():
    """Cached 30-node Gauss-Hermite rule."""
    return get_quadrature_rule(30)


@pytest.fixture
def pd_2x2():
    """2x2 positive-definite prior covariance."""
    return np.array([[1.0, 0.3],
                     [0.3, 0.8]])


@pytest.fixture
def pd_3x3():
    """3x3 positive-definite symmetric matrix."""
    return np.array([[4.0, 2.0, 1.0],
                     [2.0, 5.0, 3.0],
                     [1.0, 3.0, 6.0]])


def numerical_gradient(f, x, eps=1e-7):
    """Compute numerical gradient via central finite differences.

    Parameters
    ----------
    f : callable
        Scalar-valued function f(x).
    x : ndarray
        Point at which to evaluate the gradient.
    eps : float
        Perturbation size.

    Returns
    -------
    grad : ndarray
        Numerical gradient, same shape as x.
    """
    x = np.asarray(x, dtype=np.float64)
    grad = np.zeros_like(x)
    x_flat = x.ravel()
    for i in range(len(x_flat)):
        x_plus = x_flat.copy()
        x_minus = x_flat.copy()
        x_plus[i] += eps
        x_minus[i] -= eps
        grad.ravel()[i] = (f(x_plus.reshape(x.shape)) - f(x_minus.reshape(x.shape))) / (2 * eps)
    return grad


@pytest.fixture
def num_grad():
    """The :func:`numerical_gradient` helper as a fixture."""
    return numerical_gradient
