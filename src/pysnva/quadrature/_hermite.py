"""Gauss-Hermite nodes and weights.

The rules integrate against the physicists' weight function::

    int exp(-x^2) f(x) dx  ~=  sum_i w_i f(x_i)

so the weights sum to sqrt(pi). Expectations under N(mu, s^2) follow from
the substitution z = mu + sqrt(2) * s * x.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.polynomial.hermite import hermgauss

from pysnva.backend._array_api import get_backend


@dataclass(frozen=True)
class QuadratureRule:
    """Immutable Gauss-Hermite rule.

    Attributes
    ----------
    x : array, shape (n,)
        Nodes in strictly increasing order.
    w : array, shape (n,)
        Positive weights, summing to sqrt(pi).
    backend : str
        Name of the backend the arrays belong to.
    """

    x: Any
    w: Any
    backend: str = "numpy"

    @property
    def n(self) -> int:
        return int(self.x.shape[0])

    @property
    def dtype(self):
        return self.x.dtype


def gauss_hermite_rule(n: int, *, dtype=None, xp=None) -> QuadratureRule:
    """Build an n-point Gauss-Hermite rule (uncached).

    Parameters
    ----------
    n : int
        Number of nodes, n >= 1.
    dtype : dtype, optional
        Floating type of the returned arrays. Defaults to the backend's
        float64.
    xp : backend, optional

    Returns
    -------
    rule : QuadratureRule
    """
    if xp is None:
        xp = get_backend()
    if n < 1:
        raise ValueError(f"n must be >= 1, got {n}")
    if dtype is None:
        dtype = xp.float64

    x, w = hermgauss(n)
    x_arr = xp.array(np.ascontiguousarray(x), dtype=dtype)
    w_arr = xp.array(np.ascontiguousarray(w), dtype=dtype)

    if isinstance(x_arr, np.ndarray):
        x_arr = x_arr.copy()
        w_arr = w_arr.copy()
        x_arr.flags.writeable = False
        w_arr.flags.writeable = False

    return QuadratureRule(x=x_arr, w=w_arr, backend=xp.name)


def rule_arrays(rule: QuadratureRule, xp) -> tuple[Any, Any]:
    """Return the rule's nodes and weights as arrays of backend ``xp``."""
    if rule.backend == xp.name:
        return rule.x, rule.w
    x = np.array(get_backend(rule.backend).to_numpy(rule.x), dtype=np.float64)
    w = np.array(get_backend(rule.backend).to_numpy(rule.w), dtype=np.float64)
    return xp.array(x), xp.array(w)
