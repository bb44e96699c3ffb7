"""Variational lower bound assembly for GVA and SNVA.

For each group with variational density q and prior N(0, Sigma) on the
random effects, the lower bound collects

    -KL(q || N(0, Sigma))  -  sum_k weight_k * E_q[g_k(a_k' u + offset_k)]

where the expectations are the caller's expected negative log-likelihood
pieces, each evaluated with the skew-normal (or Gaussian, rho = 0)
family integral of the linear combination a_k' u.

GVA, q = N(mu, Lambda):

    -KL = (log|Lambda| - log|Sigma| + r - tr(Sigma^-1 Lambda)
           - mu' Sigma^-1 mu) / 2

SNVA, q = SN(mu, Lambda, rho), delta = Lambda rho / sqrt(1 + rho' Lambda rho):

    E[u u'] = Lambda + mu mu' + sqrt(2/pi) (mu delta' + delta mu')
    -KL = (r + log|Lambda| - log|Sigma| - tr(Sigma^-1 E[u u'])) / 2
          - log 2 - f(rho' Lambda rho)

with f the entropy term of :mod:`pysnva.snva._entropy`.
"""

from __future__ import annotations

import concurrent.futures
import math
from dataclasses import dataclass
from typing import Any, Sequence

import numpy as np
from numpy.typing import NDArray

from pysnva.backend._array_api import array_namespace
from pysnva.models.va._va_accumulator import LowerBoundAccumulator
from pysnva.models.va._va_control import VAControl
from pysnva.quadrature._cache import get_quadrature_rule, parallel_region, prepare_rules
from pysnva.quadrature._hermite import QuadratureRule
from pysnva.snva._atomic import entropy_term_torch, family_integral_torch
from pysnva.snva._entropy import evaluate_entropy_term
from pysnva.snva._families import IntegrandFamily
from pysnva.snva._integral import evaluate_family_integral
from pysnva.utils._validation import check_covariance
from pysnva.vecup._skewness import linear_combination_params
from pysnva.vecup._unpack import VariationalGroupParams, unpack_variational_params

_LOG_2 = math.log(2.0)
_SQRT_2_OVER_PI = math.sqrt(2.0 / math.pi)


@dataclass
class FamilyTerm:
    """Expected link term E_q[g(a' u + offset)] of one group.

    Attributes
    ----------
    group : int
        Index of the group whose variational density is used.
    family : {"probit", "mlogit"} or IntegrandFamily
    loadings : int or ndarray, shape (dim,)
        Coefficients a of the linear combination. An int selects the
        marginal of that random-effect dimension.
    offset : float, optional
        Family offset, see :func:`evaluate_family_integral`.
    weight : float
        Multiplier of the integral; the lower bound receives -weight * value.
    """

    group: int
    family: IntegrandFamily | str
    loadings: Any = 0
    offset: Any = None
    weight: float = 1.0


def _loadings_vector(loadings, dim: int, xp):
    if isinstance(loadings, (int, np.integer)):
        if not 0 <= loadings < dim:
            raise ValueError(f"dimension index {loadings} out of range for dim={dim}")
        out = np.zeros(dim, dtype=np.float64)
        out[loadings] = 1.0
        return xp.array(out)
    out = xp.array(loadings, dtype=xp.float64)
    if out.shape != (dim,):
        raise ValueError(f"loadings must have shape ({dim},), got {tuple(out.shape)}")
    return out


def group_kl_term(
    group: VariationalGroupParams,
    prior_vcov: NDArray,
    method: str,
    rule: QuadratureRule | None = None,
    *,
    xp=None,
):
    """Negative KL divergence of one group's q from the N(0, prior_vcov) prior.

    Parameters
    ----------
    group : VariationalGroupParams
        Direct parameters of the group.
    prior_vcov : ndarray, shape (dim, dim)
        Prior covariance of the random effects.
    method : {"GVA", "SNVA"}
    rule : QuadratureRule, optional
        Rule for the SNVA entropy term; required for SNVA.
    xp : backend, optional

    Returns
    -------
    value : scalar
    """
    if xp is None:
        xp = array_namespace(group.mean, group.vcov, group.rho, prior_vcov)
    prior_vcov = xp.array(prior_vcov, dtype=xp.float64)
    mu, Lambda, rho = group.mean, group.vcov, group.rho
    r = group.dim

    half_logdet = 0.5 * (xp.logdet(Lambda) - xp.logdet(prior_vcov))

    if method == "GVA":
        trace = xp.sum(xp.diagonal(xp.solve(prior_vcov, Lambda)))
        quad = xp.dot(mu, xp.solve(prior_vcov, mu))
        return half_logdet + 0.5 * (r - trace - quad)

    if method != "SNVA":
        raise ValueError(f"approximation method {method!r} is not implemented")
    if rule is None:
        raise ValueError("a quadrature rule is required for the SNVA entropy term")

    Lrho = xp.dot(Lambda, rho)
    rLr = xp.dot(rho, Lrho)
    delta = Lrho / xp.sqrt(1.0 + rLr)
    cross = xp.outer(mu, delta)
    second_moment = (
        Lambda + xp.outer(mu, mu) + _SQRT_2_OVER_PI * (cross + xp.transpose(cross))
    )
    trace = xp.sum(xp.diagonal(xp.solve(prior_vcov, second_moment)))

    if xp.name == "torch":
        entropy = entropy_term_torch(rLr, rule)
    else:
        entropy = evaluate_entropy_term(rLr, rule, xp=xp)

    return half_logdet + 0.5 * (r - trace) - _LOG_2 - entropy


def family_term_value(
    term: FamilyTerm,
    group: VariationalGroupParams,
    rule: QuadratureRule,
    *,
    xp=None,
):
    """Evaluate weight * E_q[g(a' u + offset)] for one term."""
    if xp is None:
        xp = array_namespace(group.mean, group.vcov, group.rho)
    loadings = _loadings_vector(term.loadings, group.dim, xp)
    mu_a, sigma_a, rho_a = linear_combination_params(
        loadings, group.mean, group.vcov, group.rho, xp=xp
    )

    if xp.name == "torch":
        value = family_integral_torch(
            mu_a, sigma_a, rho_a, term.family, rule, offset=term.offset
        )
    else:
        value = evaluate_family_integral(
            mu_a, sigma_a, rho_a, term.family, rule, offset=term.offset, xp=xp
        )
    return term.weight * value


def _group_contributions(
    g: int,
    group: VariationalGroupParams,
    terms: Sequence[FamilyTerm],
    prior_vcov,
    control: VAControl,
    rule: QuadratureRule,
    xp,
) -> list[tuple[str, Any]]:
    out = [(f"kl[{g}]", group_kl_term(group, prior_vcov, control.method, rule, xp=xp))]
    for k, term in enumerate(terms):
        out.append((f"term[{g},{k}]", -family_term_value(term, group, rule, xp=xp)))
    return out


def va_lower_bound(
    theta_va: NDArray,
    dim: int,
    prior_vcov: NDArray,
    terms: Sequence[FamilyTerm] = (),
    control: VAControl | None = None,
    accumulator: LowerBoundAccumulator | None = None,
    *,
    xp=None,
):
    """Evaluate the variational lower bound for all groups.

    Parameters
    ----------
    theta_va : ndarray
        Raw variational parameters, one block per group in the layout
        given by ``control.layout``.
    dim : int
        Random-effect dimension.
    prior_vcov : ndarray, shape (dim, dim)
        Prior covariance of the random effects.
    terms : sequence of FamilyTerm
        Expected link terms; each refers to a group by index.
    control : VAControl, optional
        Defaults to ``VAControl()``.
    accumulator : LowerBoundAccumulator, optional
        Running total to add into. A new one is used when omitted.
    xp : backend, optional
        Inferred from ``theta_va``. With the torch backend the result is
        a tensor that can be differentiated w.r.t. ``theta_va``.

    Returns
    -------
    total : scalar
        ``accumulator.total`` after all contributions were added.
    """
    if control is None:
        control = VAControl()
    if accumulator is None:
        accumulator = LowerBoundAccumulator()
    if xp is None:
        xp = array_namespace(theta_va)

    check_covariance(xp.to_numpy(prior_vcov), dim, "prior_vcov")

    groups = unpack_variational_params(theta_va, dim, control.layout, xp=xp)
    n_groups = len(groups)

    terms_by_group: list[list[FamilyTerm]] = [[] for _ in range(n_groups)]
    for term in terms:
        if not 0 <= term.group < n_groups:
            raise ValueError(
                f"term refers to group {term.group}, but there are {n_groups} groups"
            )
        terms_by_group[term.group].append(term)

    # rules are built here, before any worker starts
    prepare_rules([control.n_nodes])
    rule = get_quadrature_rule(control.n_nodes)

    if control.verbose >= 1:
        print(
            f"Evaluating {control.method} lower bound ({control.layout}) with "
            f"{n_groups} groups, dim={dim}, {control.n_nodes} nodes"
        )

    def _work(g):
        return _group_contributions(
            g, groups[g], terms_by_group[g], prior_vcov, control, rule, xp
        )

    if control.n_threads > 1 and xp.name == "numpy" and n_groups > 1:
        with parallel_region():
            with concurrent.futures.ThreadPoolExecutor(
                max_workers=control.n_threads
            ) as executor:
                results = list(executor.map(_work, range(n_groups)))
    else:
        results = [_work(g) for g in range(n_groups)]

    # summed in group order so the total does not depend on scheduling
    for g, contributions in enumerate(results):
        for label, value in contributions:
            accumulator.add(value, label)
        if control.verbose >= 2:
            group_total = sum(float(v) for _, v in contributions)
            print(f"  group {g:4d}: {group_total:.6f}")

    if control.verbose >= 1:
        print(f"  Lower bound: {float(accumulator.total):.6f}")

    return accumulator.total
