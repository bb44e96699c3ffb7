"""Approximate mode and curvature of the skew-normal density.

For the skew-normal density

    f(z) = 2 / sigma * phi((z - mu) / sigma) * Phi(rho * (z - mu))

with shape alpha = sigma * rho, the mode is approximated by the usual
moment-based expansion

    m0(alpha) = nu - gamma * sqrt(1 - nu^2) / 2
                - sign(alpha) / 2 * exp(-2 pi / |alpha|)

where nu = sqrt(2/pi) * alpha / sqrt(1 + alpha^2) is the mean of the
standardized variable and gamma its third standardized moment. The
curvature is the second derivative of log f at mode = mu + sigma * m0:

    H = -1 / sigma^2 - rho^2 * phi(z) * (z Phi(z) + phi(z)) / Phi(z)^2

with z = rho * (mode - mu). Since z Phi(z) + phi(z) > 0 for all z, H is
strictly below -1 / sigma^2 for every sigma > 0.

The mode and curvature are used to center and scale Gauss-Hermite nodes
(adaptive quadrature) in :mod:`pysnva.snva._integral`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy.special import ndtr

from pysnva.backend._array_api import array_namespace

_EPS = float(np.finfo(np.float64).eps)
_SQRT_2_OVER_PI = math.sqrt(2.0 / math.pi)
_GAMMA_CONST = (4.0 - math.pi) / 2.0
_TWO_PI = 2.0 * math.pi


@dataclass
class ModeCurvature:
    """Approximate mode of a skew-normal density and log-density curvature.

    Attributes
    ----------
    mode : scalar
        Approximate mode.
    hess : scalar
        Second derivative of the log-density at ``mode``; always < 0.
    """

    mode: Any
    hess: Any


@dataclass
class ModeCurvaturePartials:
    """Mode, curvature and their partials w.r.t. (mu, sigma, rho).

    Attributes
    ----------
    mode : float
    hess : float
    d_mode : ndarray, shape (3,)
        d mode / d(mu, sigma, rho).
    d_hess : ndarray, shape (3,)
        d hess / d(mu, sigma, rho).
    """

    mode: float
    hess: float
    d_mode: NDArray
    d_hess: NDArray


def snva_mode_curvature(mu, sigma, rho, *, xp=None) -> ModeCurvature:
    """Approximate mode and log-density curvature of a skew-normal density.

    Parameters
    ----------
    mu : scalar
        Location.
    sigma : scalar
        Scale, sigma > 0.
    rho : scalar
        Slope of the skewing factor Phi(rho * (z - mu)).
    xp : backend, optional

    Returns
    -------
    result : ModeCurvature
    """
    if xp is None:
        xp = array_namespace(mu, sigma, rho)

    alpha = sigma * rho
    a_sign = xp.where(alpha <= 0, -1.0, 1.0)
    nu = _SQRT_2_OVER_PI * alpha / xp.sqrt(1.0 + alpha * alpha)
    nu_sq = nu * nu
    gamma = _GAMMA_CONST * nu_sq * nu / (1.0 - nu_sq) ** 1.5
    # eps keeps the denominator away from zero when alpha is 0
    mode = mu + sigma * (
        nu
        - gamma * xp.sqrt(1.0 - nu_sq) / 2.0
        - a_sign / 2.0 * xp.exp(-_TWO_PI / (a_sign * alpha + _EPS))
    )

    z = rho * (mode - mu)
    phi = xp.normal_pdf(z)
    Phi = xp.normal_cdf(z)
    hess = -1.0 / sigma / sigma - rho * rho * phi * (z * Phi + phi) / (
        Phi * Phi + _EPS
    )

    return ModeCurvature(mode=mode, hess=hess)


def snva_mode_curvature_partials(
    mu: float, sigma: float, rho: float
) -> ModeCurvaturePartials:
    """Mode and curvature with closed-form partial derivatives.

    Differentiates the same formulas as :func:`snva_mode_curvature`. The
    sign of alpha is treated as locally constant.

    Parameters
    ----------
    mu, sigma, rho : float
        Skew-normal parameters, sigma > 0.

    Returns
    -------
    result : ModeCurvaturePartials
    """
    mu = float(mu)
    sigma = float(sigma)
    rho = float(rho)

    a = sigma * rho
    s = -1.0 if a <= 0.0 else 1.0

    root = math.sqrt(1.0 + a * a)
    nu = _SQRT_2_OVER_PI * a / root
    d_nu = _SQRT_2_OVER_PI / root**3

    one_m_nu_sq = 1.0 - nu * nu
    sqrt_om = math.sqrt(one_m_nu_sq)
    gamma = _GAMMA_CONST * nu**3 / one_m_nu_sq**1.5
    d_gamma = 3.0 * _GAMMA_CONST * nu * nu / one_m_nu_sq**2.5

    denom = s * a + _EPS
    e = math.exp(-_TWO_PI / denom)
    d_e = e * _TWO_PI * s / (denom * denom)

    m = nu - gamma * sqrt_om / 2.0 - s / 2.0 * e
    d_m = d_nu * (1.0 - 0.5 * (d_gamma * sqrt_om - gamma * nu / sqrt_om)) - 0.5 * s * d_e

    mode = mu + sigma * m
    d_mode = np.array([1.0, m + sigma * rho * d_m, sigma * sigma * d_m])

    z = a * m
    d_z = m + a * d_m

    phi = math.exp(-0.5 * z * z) / math.sqrt(_TWO_PI)
    Phi = float(ndtr(z))
    num = phi * (z * Phi + phi)
    den = Phi * Phi + _EPS
    q = num / den
    d_num = -z * phi * (z * Phi + phi) + phi * Phi
    d_den = 2.0 * Phi * phi
    d_q = (d_num * den - num * d_den) / (den * den)

    hess = -1.0 / (sigma * sigma) - rho * rho * q
    d_hess = np.array([
        0.0,
        2.0 / sigma**3 - rho**3 * d_q * d_z,
        -2.0 * rho * q - rho * rho * sigma * d_q * d_z,
    ])

    return ModeCurvaturePartials(mode=mode, hess=hess, d_mode=d_mode, d_hess=d_hess)
