"""PyTorch backend implementation (optional dependency)."""

from __future__ import annotations

import math
from typing import Any


def _import_torch():
    """Lazy import of torch."""
    try:
        import torch
        return torch
    except ImportError as e:
        raise ImportError(
            "PyTorch is required for the torch backend. "
            "Install it with: pip install pysnva[torch]"
        ) from e


class TorchBackend:
    """Backend wrapping PyTorch so the integrals can sit in an autograd graph."""

    name = "torch"

    def __init__(self, device: str = "cpu", dtype: Any = None):
        self._torch = _import_torch()
        self.device = device
        self.float64 = self._torch.float64
        self.float32 = self._torch.float32
        self.int64 = self._torch.int64
        self._default_dtype = dtype or self._torch.float64

    def _as_tensor(self, x, like=None):
        if isinstance(x, self._torch.Tensor):
            return x
        dtype = like.dtype if like is not None else self._default_dtype
        return self._torch.as_tensor(x, dtype=dtype, device=self.device)

    # --- Array creation ---
    def array(self, data, dtype=None):
        dtype = dtype or self._default_dtype
        if isinstance(data, self._torch.Tensor):
            return data.to(device=self.device, dtype=dtype)
        return self._torch.as_tensor(data, dtype=dtype, device=self.device)

    def zeros(self, shape, dtype=None):
        dtype = dtype or self._default_dtype
        return self._torch.zeros(shape, dtype=dtype, device=self.device)

    def eye(self, n, dtype=None):
        dtype = dtype or self._default_dtype
        return self._torch.eye(n, dtype=dtype, device=self.device)

    def stack(self, arrays, axis=0):
        return self._torch.stack(list(arrays), dim=axis)

    def diagonal(self, a, offset=0):
        return self._torch.diagonal(a, offset=offset)

    def where(self, condition, x, y):
        condition = self._as_tensor(condition)
        like = x if isinstance(x, self._torch.Tensor) else y
        if not isinstance(like, self._torch.Tensor):
            like = None
        return self._torch.where(
            condition, self._as_tensor(x, like), self._as_tensor(y, like)
        )

    # --- Math operations ---
    def sqrt(self, x):
        return self._torch.sqrt(self._as_tensor(x))

    def exp(self, x):
        return self._torch.exp(self._as_tensor(x))

    def log(self, x):
        return self._torch.log(self._as_tensor(x))

    def log1p(self, x):
        return self._torch.log1p(self._as_tensor(x))

    def abs(self, x):
        return self._torch.abs(self._as_tensor(x))

    def sign(self, x):
        return self._torch.sign(self._as_tensor(x))

    def minimum(self, x1, x2):
        x1 = self._as_tensor(x1)
        return self._torch.minimum(x1, self._as_tensor(x2, x1))

    def sum(self, a, axis=None):
        if axis is None:
            return self._torch.sum(a)
        return self._torch.sum(a, dim=axis)

    def expit(self, x):
        return self._torch.sigmoid(self._as_tensor(x))

    # --- Linear algebra ---
    def dot(self, a, b):
        if a.dim() == 1 and b.dim() == 1:
            return self._torch.dot(a, b)
        return a @ b

    def outer(self, a, b):
        return self._torch.outer(a, b)

    def transpose(self, a):
        if a.dim() < 2:
            return a
        return a.T

    def solve(self, A, b):
        return self._torch.linalg.solve(A, b)

    def cholesky(self, A):
        return self._torch.linalg.cholesky(A)

    def logdet(self, A):
        """Log-determinant of a positive-definite matrix via Cholesky."""
        L = self._torch.linalg.cholesky(A)
        return 2.0 * self._torch.sum(self._torch.log(self._torch.diagonal(L)))

    # --- Statistical distributions ---
    def normal_pdf(self, x):
        """Standard normal PDF."""
        x = self._as_tensor(x)
        return self._torch.exp(-0.5 * x * x) / math.sqrt(2.0 * math.pi)

    def normal_cdf(self, x):
        """Standard normal CDF."""
        return self._torch.special.ndtr(self._as_tensor(x))

    def normal_logpdf(self, x):
        """Standard normal log-PDF."""
        x = self._as_tensor(x)
        return -0.5 * (x * x + math.log(2.0 * math.pi))

    def normal_logcdf(self, x):
        """Log of the standard normal CDF, accurate in the lower tail."""
        return self._torch.special.log_ndtr(self._as_tensor(x))

    # --- Type checking ---
    def is_array(self, x):
        return isinstance(x, self._torch.Tensor)

    def to_numpy(self, x):
        if isinstance(x, self._torch.Tensor):
            return x.detach().cpu().numpy()
        import numpy as np
        return np.asarray(x)

    def to_float(self, x):
        if isinstance(x, self._torch.Tensor):
            return float(x.detach().cpu())
        return float(x)
