"""Entropy term of the skew-normal variational approximation.

Approximates

    f(sigma^2) = int 2 phi(z; sigma^2) Phi(z) log Phi(z) dz

which is E[log Phi(rho' (u - mu))] for u ~ SN(mu, Lambda, rho) with
sigma^2 = rho' Lambda rho. Writing

    exp(-z^2 / (2 sigma^2))
        = exp(-z^2 (gamma^2 + sigma^2) / (2 gamma^2 sigma^2))
          * exp(z^2 / (2 gamma^2))

and substituting z = s * sqrt(2) * gamma * sigma / sqrt(gamma^2 + sigma^2)
gives the Gauss-Hermite approximation

    f(sigma^2) ~= 2 gamma / sqrt(pi (gamma^2 + sigma^2))
                  * sum_i w_i exp(xi_i^2 / (2 gamma^2)) Phi(xi_i) log Phi(xi_i)

with xi_i = x_i * sqrt(2) * gamma * sigma / sqrt(gamma^2 + sigma^2) and
gamma fixed to 1. The nodes are used as is, without re-centering.

At sigma^2 = 0 the value is -log(2); it increases towards 0 at rate
O(1 / sigma) as sigma^2 grows.
"""

from __future__ import annotations

import math

import numpy as np
from scipy.special import log_ndtr, ndtr

from pysnva.backend._array_api import array_namespace
from pysnva.quadrature._cache import (
    ParallelConstructionError,
    _check_n,
    get_quadrature_rule,
    in_parallel,
)
from pysnva.quadrature._hermite import QuadratureRule, rule_arrays

_M_2_SQRTPI = 2.0 / math.sqrt(math.pi)
_SQRT_M_2_PI = math.sqrt(2.0 / math.pi)
_EPS = float(np.finfo(np.float64).eps)


def evaluate_entropy_term(sigma_sq, rule: QuadratureRule, *, xp=None):
    """Approximate int 2 phi(z; sigma_sq) Phi(z) log Phi(z) dz.

    Parameters
    ----------
    sigma_sq : scalar
        Variance parameter, sigma_sq >= 0.
    rule : QuadratureRule
        Gauss-Hermite rule, usually from :func:`get_quadrature_rule`.
    xp : backend, optional

    Returns
    -------
    value : scalar
    """
    if xp is None:
        xp = array_namespace(sigma_sq)
    x, w = rule_arrays(rule, xp)

    gamma_sq = 1.0
    mult_sum = _M_2_SQRTPI / xp.sqrt(sigma_sq + gamma_sq)
    mult = mult_sum * xp.sqrt(sigma_sq) / _SQRT_M_2_PI

    xi = x * mult
    out = xp.sum(
        w * xp.exp(xi * xi / 2.0 / gamma_sq) * xp.normal_cdf(xi) * xp.normal_logcdf(xi)
    )
    return mult_sum * out


def entropy_term_gradient(
    sigma_sq: float, rule: QuadratureRule, upstream: float = 1.0
) -> float:
    """Reverse-mode derivative of :func:`evaluate_entropy_term`.

    Parameters
    ----------
    sigma_sq : float
        Variance parameter. The derivative is exact for sigma_sq > 0; the
        denominator is guarded at sigma_sq = 0.
    rule : QuadratureRule
    upstream : float
        Sensitivity of the caller's objective to the returned value.

    Returns
    -------
    grad : float
        upstream * d f / d sigma_sq.
    """
    sigma_sq = float(sigma_sq)
    x = np.asarray(rule.x, dtype=np.float64)
    w = np.asarray(rule.w, dtype=np.float64)

    mult_sum = _M_2_SQRTPI / math.sqrt(sigma_sq + 1.0)
    mult = mult_sum * math.sqrt(sigma_sq) / _SQRT_M_2_PI
    xi = x * mult

    Phi = ndtr(xi)
    log_Phi = log_ndtr(xi)
    phi = np.exp(-0.5 * xi * xi) / math.sqrt(2.0 * math.pi)
    scale = np.exp(xi * xi / 2.0)

    out = np.sum(w * scale * Phi * log_Phi)
    d_h = scale * (xi * Phi * log_Phi + phi * log_Phi + phi)

    # d xi_i / d sigma_sq = xi_i / (2 sigma_sq (1 + sigma_sq))
    d_out = np.sum(w * d_h * xi) / (2.0 * (sigma_sq + _EPS) * (1.0 + sigma_sq))
    d_mult_sum = -0.5 * mult_sum / (1.0 + sigma_sq)

    return float(upstream * (d_mult_sum * out + mult_sum * d_out))


class EntropyTermIntegral:
    """Entropy-term evaluator bound to a cached n-point rule."""

    _cached: dict[int, EntropyTermIntegral] = {}

    def __init__(self, rule: QuadratureRule):
        self.rule = rule

    @classmethod
    def get_cached(cls, n: int) -> EntropyTermIntegral:
        """Return the shared evaluator for n nodes, building it on first use."""
        n = _check_n(n)
        out = cls._cached.get(n)
        if out is not None:
            return out
        if in_parallel():
            raise ParallelConstructionError(
                f"EntropyTermIntegral.get_cached called in parallel mode for n={n}"
            )
        out = cls(get_quadrature_rule(n))
        cls._cached[n] = out
        return out

    def __call__(self, sigma_sq, *, xp=None):
        return evaluate_entropy_term(sigma_sq, self.rule, xp=xp)

    def gradient(self, sigma_sq: float, upstream: float = 1.0) -> float:
        return entropy_term_gradient(sigma_sq, self.rule, upstream)
