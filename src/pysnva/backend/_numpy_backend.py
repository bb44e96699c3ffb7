"""NumPy + SciPy backend implementation."""

from __future__ import annotations

import numpy as np
import scipy.linalg
import scipy.special


class NumpyBackend:
    """Backend wrapping NumPy + SciPy for array operations."""

    name = "numpy"
    float64 = np.float64
    float32 = np.float32
    int64 = np.int64

    # --- Array creation ---
    @staticmethod
    def array(data, dtype=None):
        return np.asarray(data, dtype=dtype)

    @staticmethod
    def zeros(shape, dtype=np.float64):
        return np.zeros(shape, dtype=dtype)

    @staticmethod
    def eye(n, dtype=np.float64):
        return np.eye(n, dtype=dtype)

    @staticmethod
    def stack(arrays, axis=0):
        return np.stack(arrays, axis=axis)

    @staticmethod
    def diagonal(a, offset=0):
        return np.diagonal(a, offset=offset)

    @staticmethod
    def where(condition, x, y):
        return np.where(condition, x, y)

    # --- Math operations ---
    @staticmethod
    def sqrt(x):
        return np.sqrt(x)

    @staticmethod
    def exp(x):
        return np.exp(x)

    @staticmethod
    def log(x):
        return np.log(x)

    @staticmethod
    def log1p(x):
        return np.log1p(x)

    @staticmethod
    def abs(x):
        return np.abs(x)

    @staticmethod
    def sign(x):
        return np.sign(x)

    @staticmethod
    def minimum(x1, x2):
        return np.minimum(x1, x2)

    @staticmethod
    def sum(a, axis=None):
        return np.sum(a, axis=axis)

    @staticmethod
    def expit(x):
        return scipy.special.expit(x)

    # --- Linear algebra ---
    @staticmethod
    def dot(a, b):
        return np.dot(a, b)

    @staticmethod
    def outer(a, b):
        return np.outer(a, b)

    @staticmethod
    def transpose(a):
        return a.T

    @staticmethod
    def solve(A, b):
        return scipy.linalg.solve(A, b, assume_a="pos")

    @staticmethod
    def cholesky(A):
        return scipy.linalg.cholesky(A, lower=True)

    @staticmethod
    def logdet(A):
        """Log-determinant of a positive-definite matrix via Cholesky."""
        L = scipy.linalg.cholesky(A, lower=True)
        return 2.0 * np.sum(np.log(np.diagonal(L)))

    # --- Statistical distributions ---
    @staticmethod
    def normal_pdf(x):
        """Standard normal PDF."""
        return np.exp(-0.5 * x * x) / np.sqrt(2.0 * np.pi)

    @staticmethod
    def normal_cdf(x):
        """Standard normal CDF."""
        return scipy.special.ndtr(x)

    @staticmethod
    def normal_logpdf(x):
        """Standard normal log-PDF."""
        return -0.5 * (x * x + np.log(2.0 * np.pi))

    @staticmethod
    def normal_logcdf(x):
        """Log of the standard normal CDF, accurate in the lower tail."""
        return scipy.special.log_ndtr(x)

    # --- Type checking ---
    @staticmethod
    def is_array(x):
        return isinstance(x, np.ndarray)

    @staticmethod
    def to_numpy(x):
        return np.asarray(x)

    @staticmethod
    def to_float(x):
        return float(x)
