"""Per-group variational parameters from the raw parameter vector.

The raw vector holds one contiguous block per group:

    GVA       : mean (dim) | packed covariance (dim*(dim+1)/2)
    DP        : mean (dim) | packed covariance | rho (dim)
    CP_trans  : mean (dim) | packed covariance | transformed skewness (dim)

See :mod:`pysnva.vecup._trian` for the packed covariance layout. All
three yield direct parameters (location, scale matrix, rho); GVA groups
get rho = 0.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

import numpy as np
from numpy.typing import NDArray

from pysnva.backend._array_api import array_namespace
from pysnva.vecup._skewness import cp_to_dp, gamma_transform, gamma_transform_inv
from pysnva.vecup._trian import get_trian_from_vcov, get_vcov_from_trian, n_trian

ParamType = Literal["GVA", "DP", "CP_trans"]
PARAM_TYPES = ("GVA", "DP", "CP_trans")


@dataclass(frozen=True)
class VariationalGroupParams:
    """Direct parameters of one group's variational density.

    Attributes
    ----------
    mean : ndarray, shape (dim,)
        Location mu.
    vcov : ndarray, shape (dim, dim)
        Scale matrix Lambda.
    rho : ndarray, shape (dim,)
        Skewing slope; zeros for a Gaussian approximation.
    """

    mean: Any
    vcov: Any
    rho: Any

    @property
    def dim(self) -> int:
        return int(self.mean.shape[0])


def _check_param_type(param_type: str) -> str:
    if param_type not in PARAM_TYPES:
        raise ValueError(
            f"Unknown parameterization: {param_type!r}. Use one of {PARAM_TYPES}."
        )
    return param_type


def block_size(dim: int, param_type: ParamType) -> int:
    """Number of raw parameters per group."""
    _check_param_type(param_type)
    size = dim + n_trian(dim)
    if param_type != "GVA":
        size += dim
    return size


def count_groups(n_params: int, dim: int, param_type: ParamType) -> int:
    """Number of groups in a raw vector of length n_params.

    Raises
    ------
    ValueError
        If n_params is not a multiple of the per-group block size.
    """
    if dim < 1:
        raise ValueError(f"dim must be >= 1, got {dim}")
    size = block_size(dim, param_type)
    if n_params % size != 0:
        raise ValueError(
            f"Parameter vector of length {n_params} is not a multiple of the "
            f"{param_type} block size {size} for dim={dim}"
        )
    return n_params // size


def theta_gva(theta_va: NDArray, dim: int, *, xp=None) -> list[VariationalGroupParams]:
    """Unpack Gaussian variational parameters (no skew block)."""
    if xp is None:
        xp = array_namespace(theta_va)
    theta_va = xp.array(theta_va, dtype=xp.float64)
    n_groups = count_groups(theta_va.shape[0], dim, "GVA")
    n_lambda = n_trian(dim)

    out = []
    t = 0
    for _ in range(n_groups):
        mean = theta_va[t: t + dim]
        t += dim
        vcov = get_vcov_from_trian(theta_va[t: t + n_lambda], dim, xp=xp)
        t += n_lambda
        out.append(
            VariationalGroupParams(mean=mean, vcov=vcov, rho=xp.zeros((dim,)))
        )
    return out


def theta_dp_to_dp(
    theta_va: NDArray, dim: int, *, xp=None
) -> list[VariationalGroupParams]:
    """Unpack direct parameters; a reshape plus the covariance expansion."""
    if xp is None:
        xp = array_namespace(theta_va)
    theta_va = xp.array(theta_va, dtype=xp.float64)
    n_groups = count_groups(theta_va.shape[0], dim, "DP")
    n_lambda = n_trian(dim)

    out = []
    t = 0
    for _ in range(n_groups):
        mean = theta_va[t: t + dim]
        t += dim
        vcov = get_vcov_from_trian(theta_va[t: t + n_lambda], dim, xp=xp)
        t += n_lambda
        rho = theta_va[t: t + dim]
        t += dim
        out.append(VariationalGroupParams(mean=mean, vcov=vcov, rho=rho))
    return out


def theta_cp_trans_to_dp(
    theta_va: NDArray, dim: int, *, xp=None
) -> list[VariationalGroupParams]:
    """Unpack mean, covariance and transformed skewness into direct parameters.

    The skewness slot holds unbounded values mapped into (-C1, C1) by
    :func:`gamma_transform` before :func:`cp_to_dp` is applied.
    """
    if xp is None:
        xp = array_namespace(theta_va)
    theta_va = xp.array(theta_va, dtype=xp.float64)
    n_groups = count_groups(theta_va.shape[0], dim, "CP_trans")
    n_lambda = n_trian(dim)

    out = []
    t = 0
    for _ in range(n_groups):
        mean = theta_va[t: t + dim]
        t += dim
        vcov = get_vcov_from_trian(theta_va[t: t + n_lambda], dim, xp=xp)
        t += n_lambda
        gamma = gamma_transform(theta_va[t: t + dim], xp=xp)
        t += dim

        mu, Lambda, rho = cp_to_dp(mean, vcov, gamma, xp=xp)
        out.append(VariationalGroupParams(mean=mu, vcov=Lambda, rho=rho))
    return out


def unpack_variational_params(
    theta_va: NDArray, dim: int, param_type: ParamType = "DP", *, xp=None
) -> list[VariationalGroupParams]:
    """Split a raw parameter vector into per-group direct parameters.

    Parameters
    ----------
    theta_va : ndarray, shape (n_groups * block_size,)
        Raw variational parameters.
    dim : int
        Random-effect dimension.
    param_type : {"GVA", "DP", "CP_trans"}
        Layout of the per-group blocks.
    xp : backend, optional

    Returns
    -------
    groups : list of VariationalGroupParams
    """
    _check_param_type(param_type)
    if param_type == "GVA":
        return theta_gva(theta_va, dim, xp=xp)
    if param_type == "DP":
        return theta_dp_to_dp(theta_va, dim, xp=xp)
    return theta_cp_trans_to_dp(theta_va, dim, xp=xp)


def pack_variational_params(
    means, vcovs, skew=None, param_type: ParamType = "DP"
) -> NDArray:
    """Build a raw parameter vector from per-group values.

    Parameters
    ----------
    means : sequence of ndarray, shape (dim,)
    vcovs : sequence of ndarray, shape (dim, dim)
        Positive-definite matrices.
    skew : sequence of ndarray, shape (dim,), optional
        rho for "DP", marginal skewness gamma (|gamma| < C1) for
        "CP_trans"; ignored for "GVA".
    param_type : {"GVA", "DP", "CP_trans"}

    Returns
    -------
    theta_va : ndarray
    """
    _check_param_type(param_type)
    if param_type != "GVA" and skew is None:
        raise ValueError(f"skew values are required for {param_type!r}")

    blocks = []
    for g, (mean, vcov) in enumerate(zip(means, vcovs)):
        blocks.append(np.asarray(mean, dtype=np.float64).ravel())
        blocks.append(get_trian_from_vcov(vcov))
        if param_type == "DP":
            blocks.append(np.asarray(skew[g], dtype=np.float64).ravel())
        elif param_type == "CP_trans":
            blocks.append(gamma_transform_inv(skew[g]))
    if not blocks:
        return np.zeros(0, dtype=np.float64)
    return np.concatenate(blocks)
