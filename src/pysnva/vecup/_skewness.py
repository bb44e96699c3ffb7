"""Skew-normal parameter conversions.

The multivariate skew-normal variational density in direct parameters
(DP) is

    q(u) = 2 phi(u; mu, Lambda) Phi(rho' (u - mu)).

The centralized parameters (CP) are the mean, covariance and the
marginal Pearson skewness coefficients gamma. For one dimension with
scale omega and nu = E[(u - mu) / omega],

    gamma = (4 - pi) / 2 * nu^3 / (1 - nu^2)^(3/2).

|nu| < sqrt(2 / pi), so |gamma| is bounded by GAMMA_MAX ~= 0.9952717.
Optimizers work with an unbounded value that is mapped into
(-C1, C1) with C1 = 0.99527 < GAMMA_MAX by a scaled logistic function.
"""

from __future__ import annotations

import math
import warnings

import numpy as np
from numpy.typing import NDArray

from pysnva.backend._array_api import array_namespace

C1 = 0.99527
GAMMA_MAX = (
    (4.0 - math.pi) / 2.0
    * (2.0 / math.pi) ** 1.5
    / (1.0 - 2.0 / math.pi) ** 1.5
)

_GAMMA_CONST = (4.0 - math.pi) / 2.0
_SQRT_2_OVER_PI = math.sqrt(2.0 / math.pi)


class SkewnessDomainWarning(RuntimeWarning):
    """A skewness outside the admissible skew-normal range was clamped."""


def gamma_transform(gtrans, *, xp=None):
    """Map an unbounded value into (-C1, C1).

    Inverse of ``2 * C1 * logit(gamma) - C1``: returns
    ``2 * C1 / (1 + exp(-gtrans)) - C1``.
    """
    if xp is None:
        xp = array_namespace(gtrans)
    return 2.0 * C1 / (1.0 + xp.exp(-gtrans)) - C1


def gamma_transform_inv(gamma):
    """Inverse of :func:`gamma_transform` for |gamma| < C1."""
    gamma = np.asarray(gamma, dtype=np.float64)
    if np.any(np.abs(gamma) >= C1):
        raise ValueError(f"gamma must lie in (-{C1}, {C1})")
    return np.log((gamma + C1) / (C1 - gamma))


def gamma_to_nu(gamma, *, xp=None):
    """Skewness coefficient to the standardized mean nu.

    Values with |gamma| >= GAMMA_MAX are not attainable by a skew-normal
    distribution. They are clamped to +/-C1 with a
    :class:`SkewnessDomainWarning` so an optimizer can keep going.

    Parameters
    ----------
    gamma : scalar or array
        Pearson skewness coefficient(s).
    xp : backend, optional

    Returns
    -------
    nu : scalar or array
        sign(gamma) * c / sqrt(1 + c^2) with c = (2 |gamma| / (4 - pi))^(1/3).
    """
    if xp is None:
        xp = array_namespace(gamma)

    abs_gamma = xp.abs(gamma)
    if np.any(xp.to_numpy(abs_gamma) >= GAMMA_MAX):
        warnings.warn(
            "invalid gamma parameter: |gamma| must be below "
            f"{GAMMA_MAX:.7f}; clamping to {C1}",
            SkewnessDomainWarning,
            stacklevel=2,
        )
        abs_gamma = xp.minimum(abs_gamma, C1)

    sign = xp.where(gamma < 0, -1.0, 1.0)
    c = (abs_gamma / _GAMMA_CONST) ** (1.0 / 3.0)
    return sign * c / xp.sqrt(1.0 + c * c)


def nu_to_gamma(nu, *, xp=None):
    """Standardized mean nu to the Pearson skewness coefficient."""
    if xp is None:
        xp = array_namespace(nu)
    nu_sq = nu * nu
    return _GAMMA_CONST * nu_sq * nu / (1.0 - nu_sq) ** 1.5


def cp_to_dp(mean: NDArray, vcov: NDArray, gamma: NDArray, *, xp=None):
    """Convert centralized parameters to direct parameters.

    Each dimension is converted from its own marginal: omega_i is derived
    from vcov[i, i] and nu_i, and rho_i = sqrt(pi) nu_i /
    (omega_i sqrt(2 - pi nu_i^2)). The location is moved by -nu * omega
    and the covariance inflated by (nu * omega)(nu * omega)'.

    Parameters
    ----------
    mean : ndarray, shape (dim,)
    vcov : ndarray, shape (dim, dim)
    gamma : ndarray, shape (dim,)
        Marginal skewness coefficients.
    xp : backend, optional

    Returns
    -------
    mu : ndarray, shape (dim,)
    Lambda : ndarray, shape (dim, dim)
    rho : ndarray, shape (dim,)
    """
    if xp is None:
        xp = array_namespace(mean, vcov, gamma)

    nu = gamma_to_nu(gamma, xp=xp)
    omega = xp.sqrt(xp.diagonal(vcov) / (1.0 - nu * nu))
    rho = math.sqrt(math.pi) * nu / omega / xp.sqrt(2.0 - math.pi * nu * nu)

    shift = nu * omega
    mu = mean - shift
    Lambda = vcov + xp.outer(shift, shift)
    return mu, Lambda, rho


def dp_to_cp(mu: NDArray, Lambda: NDArray, rho: NDArray):
    """Mean, covariance and marginal skewness of SN(mu, Lambda, rho).

    Parameters
    ----------
    mu : ndarray, shape (dim,)
    Lambda : ndarray, shape (dim, dim)
    rho : ndarray, shape (dim,)

    Returns
    -------
    mean : ndarray, shape (dim,)
    vcov : ndarray, shape (dim, dim)
    gamma : ndarray, shape (dim,)
    """
    mu = np.asarray(mu, dtype=np.float64)
    Lambda = np.asarray(Lambda, dtype=np.float64)
    rho = np.asarray(rho, dtype=np.float64)

    Lrho = Lambda @ rho
    delta = Lrho / np.sqrt(1.0 + rho @ Lrho)
    mean = mu + _SQRT_2_OVER_PI * delta
    vcov = Lambda - (2.0 / math.pi) * np.outer(delta, delta)
    nu = _SQRT_2_OVER_PI * delta / np.sqrt(np.diagonal(Lambda))
    return mean, vcov, nu_to_gamma(nu)


def linear_combination_params(loadings, mu, Lambda, rho, *, xp=None):
    """Scalar skew-normal parameters of a' u for u ~ SN(mu, Lambda, rho).

    Parameters
    ----------
    loadings : ndarray, shape (dim,)
    mu : ndarray, shape (dim,)
    Lambda : ndarray, shape (dim, dim)
    rho : ndarray, shape (dim,)
    xp : backend, optional

    Returns
    -------
    mu_a, sigma_a, rho_a : scalar
        a' u has density 2 phi(z; mu_a, sigma_a^2) Phi(rho_a (z - mu_a)).
    """
    if xp is None:
        xp = array_namespace(loadings, mu, Lambda, rho)

    La = xp.dot(Lambda, loadings)
    sigma_sq = xp.dot(loadings, La)
    sigma = xp.sqrt(sigma_sq)

    # delta of the linear combination, then its shape parameter
    delta = xp.dot(La, rho) / sigma / xp.sqrt(1.0 + xp.dot(rho, xp.dot(Lambda, rho)))
    alpha = delta / xp.sqrt(1.0 - delta * delta)
    return xp.dot(loadings, mu), sigma, alpha / sigma
