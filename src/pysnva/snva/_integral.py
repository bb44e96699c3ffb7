"""Skew-normal expectations of the link families with adaptive quadrature.

Approximates

    l(mu, sigma, rho) = 2 / (sigma sqrt(2 pi))
        * int exp(-(z - mu)^2 / (2 sigma^2)) Phi(rho (z - mu)) g(z) dz

by re-centering the Gauss-Hermite nodes at the approximate mode xi of the
skew-normal density and scaling them by lambda = 1 / sqrt(-H), with H the
log-density curvature at xi:

    z_i = xi + sqrt(2) lambda x_i
    l ~= 2 lambda / (sigma sqrt(pi))
         * sum_i w_i g(z_i) exp(x_i^2 - (z_i - mu)^2 / (2 sigma^2))
                 Phi(rho (z_i - mu))

The approximation degrades when the skew is large.

The reverse-mode gradient differentiates the quadrature sum itself,
including the dependence of xi and lambda on (mu, sigma, rho), so it is
the exact derivative of the value returned by
:func:`evaluate_family_integral`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from scipy.special import ndtr

from pysnva.backend._array_api import array_namespace
from pysnva.quadrature._cache import (
    ParallelConstructionError,
    _check_n,
    get_quadrature_rule,
    in_parallel,
)
from pysnva.quadrature._hermite import QuadratureRule, rule_arrays
from pysnva.snva._families import IntegrandFamily, family_derivative, family_value
from pysnva.snva._mode import snva_mode_curvature, snva_mode_curvature_partials

_M_2_SQRTPI = 2.0 / math.sqrt(math.pi)
_SQRT2 = math.sqrt(2.0)


@dataclass
class FamilyIntegralGradient:
    """Value and reverse-mode sensitivities of a family integral.

    Attributes
    ----------
    value : float
        Integral value.
    d_mu, d_sigma, d_rho : float
        upstream * d value / d input.
    d_offset : float or None
        upstream * d value / d offset, None when no offset was given.
    """

    value: float
    d_mu: float
    d_sigma: float
    d_rho: float
    d_offset: float | None = None

    def as_tuple(self) -> tuple[float, float, float]:
        return self.d_mu, self.d_sigma, self.d_rho


def _check_sigma(sigma, xp) -> None:
    if np.any(np.asarray(xp.to_numpy(sigma)) <= 0):
        raise ValueError(f"sigma must be positive, got {sigma}")


def _apply_offset(mu, rho, family: IntegrandFamily, offset):
    """Map (mu, rho) to the arguments of the plain integral."""
    if offset is None:
        return mu, rho
    if family is IntegrandFamily.MLOGIT:
        # offset is log(k)
        return mu + offset, rho
    # probit: the survival link runs in the opposite direction
    return offset - mu, -rho


def _integral_value(mu, sigma, rho, family: IntegrandFamily, rule, xp):
    dvals = snva_mode_curvature(mu, sigma, rho, xp=xp)
    xi = dvals.mode
    lam = 1.0 / xp.sqrt(-dvals.hess)

    x, w = rule_arrays(rule, xp)
    mult_sum = lam / sigma * _M_2_SQRTPI
    mult = _SQRT2 * lam

    z = xi + mult * x
    z_diff = z - mu
    terms = (
        w
        * xp.exp(x * x - z_diff * z_diff / 2.0 / (sigma * sigma))
        * xp.normal_cdf(rho * z_diff)
        * family_value(family, z, xp=xp)
    )
    return mult_sum * xp.sum(terms)


def evaluate_family_integral(
    mu,
    sigma,
    rho,
    family: IntegrandFamily | str,
    rule: QuadratureRule,
    *,
    offset=None,
    xp=None,
):
    """Approximate the skew-normal expectation of a link family.

    Parameters
    ----------
    mu : scalar
        Location of the skew-normal density.
    sigma : scalar
        Scale, sigma > 0.
    rho : scalar
        Slope of the skewing factor Phi(rho (z - mu)).
    family : {"probit", "mlogit"} or IntegrandFamily
    rule : QuadratureRule
    offset : scalar, optional
        For ``mlogit`` a log offset log(k) added to mu. For ``probit`` a
        threshold k; the integral is then evaluated at (k - mu, sigma, -rho).
    xp : backend, optional

    Returns
    -------
    value : scalar
    """
    family = IntegrandFamily.parse(family)
    if xp is None:
        xp = array_namespace(mu, sigma, rho, offset)
    _check_sigma(sigma, xp)
    mu, rho = _apply_offset(mu, rho, family, offset)
    return _integral_value(mu, sigma, rho, family, rule, xp)


def _integral_value_and_grad(
    mu: float, sigma: float, rho: float, family: IntegrandFamily, rule
) -> tuple[float, np.ndarray]:
    """Value and gradient w.r.t. (mu, sigma, rho) of the plain integral."""
    x = np.asarray(rule.x, dtype=np.float64)
    w = np.asarray(rule.w, dtype=np.float64)

    mc = snva_mode_curvature_partials(mu, sigma, rho)
    neg_hess = -mc.hess
    lam = neg_hess**-0.5
    d_lam = 0.5 * neg_hess**-1.5 * mc.d_hess

    sigma_sq = sigma * sigma
    const = _M_2_SQRTPI * lam / sigma

    z = mc.mode + _SQRT2 * lam * x
    d = z - mu
    kern = w * np.exp(x * x - d * d / (2.0 * sigma_sq))
    arg = rho * d
    P = ndtr(arg)
    p = np.exp(-0.5 * arg * arg) / math.sqrt(2.0 * math.pi)
    g = family_value(family, z)
    g_prime = family_derivative(family, z)

    s = np.sum(kern * g * P)

    # partials of the sum w.r.t. the node positions and explicit inputs
    d_node = kern * (g_prime * P + g * (-d / sigma_sq * P + rho * p))
    d_mu_explicit = np.sum(kern * g * (d / sigma_sq * P - rho * p))
    d_sigma_explicit = np.sum(kern * g * P * d * d) / sigma**3
    d_rho_explicit = np.sum(kern * g * p * d)

    d_xi = const * np.sum(d_node)
    d_lambda = const / lam * s + const * _SQRT2 * np.sum(d_node * x)

    grad = np.array([
        const * d_mu_explicit,
        -const / sigma * s + const * d_sigma_explicit,
        const * d_rho_explicit,
    ])
    grad += d_xi * mc.d_mode + d_lambda * d_lam

    return float(const * s), grad


def gradient_family_integral(
    mu: float,
    sigma: float,
    rho: float,
    family: IntegrandFamily | str,
    rule: QuadratureRule,
    upstream: float = 1.0,
    *,
    offset: float | None = None,
) -> FamilyIntegralGradient:
    """Reverse-mode gradient of :func:`evaluate_family_integral`.

    Parameters
    ----------
    mu, sigma, rho : float
        Skew-normal parameters, sigma > 0.
    family : {"probit", "mlogit"} or IntegrandFamily
    rule : QuadratureRule
    upstream : float
        Seed: sensitivity of the caller's objective to the integral.
    offset : float, optional
        Same meaning as in :func:`evaluate_family_integral`.

    Returns
    -------
    result : FamilyIntegralGradient
        Value and upstream-weighted sensitivities on mu, sigma, rho (and
        the offset when one is given).
    """
    family = IntegrandFamily.parse(family)
    mu = float(mu)
    sigma = float(sigma)
    rho = float(rho)
    upstream = float(upstream)
    if sigma <= 0:
        raise ValueError(f"sigma must be positive, got {sigma}")

    inner_mu, inner_rho = _apply_offset(
        mu, rho, family, None if offset is None else float(offset)
    )
    value, grad = _integral_value_and_grad(inner_mu, sigma, inner_rho, family, rule)
    grad = upstream * grad

    if offset is None:
        return FamilyIntegralGradient(
            value=value, d_mu=grad[0], d_sigma=grad[1], d_rho=grad[2]
        )
    if family is IntegrandFamily.MLOGIT:
        return FamilyIntegralGradient(
            value=value, d_mu=grad[0], d_sigma=grad[1], d_rho=grad[2],
            d_offset=grad[0],
        )
    return FamilyIntegralGradient(
        value=value, d_mu=-grad[0], d_sigma=grad[1], d_rho=-grad[2],
        d_offset=grad[0],
    )


class FamilyIntegral:
    """Family-integral evaluator bound to a cached n-point rule."""

    _cached: dict[tuple[int, IntegrandFamily], FamilyIntegral] = {}

    def __init__(self, family: IntegrandFamily | str, rule: QuadratureRule):
        self.family = IntegrandFamily.parse(family)
        self.rule = rule

    @classmethod
    def get_cached(cls, n: int, family: IntegrandFamily | str) -> FamilyIntegral:
        """Return the shared evaluator for (n, family), building it on first use."""
        n = _check_n(n)
        family = IntegrandFamily.parse(family)
        out = cls._cached.get((n, family))
        if out is not None:
            return out
        if in_parallel():
            raise ParallelConstructionError(
                f"FamilyIntegral.get_cached called in parallel mode for n={n}"
            )
        out = cls(family, get_quadrature_rule(n))
        cls._cached[(n, family)] = out
        return out

    def __call__(self, mu, sigma, rho, *, offset=None, xp=None):
        return evaluate_family_integral(
            mu, sigma, rho, self.family, self.rule, offset=offset, xp=xp
        )

    def gradient(
        self, mu, sigma, rho, upstream: float = 1.0, *, offset=None
    ) -> FamilyIntegralGradient:
        return gradient_family_integral(
            mu, sigma, rho, self.family, self.rule, upstream, offset=offset
        )
