"""Packed lower-triangular parameterization of covariance matrices.

A dim x dim covariance matrix is stored as dim*(dim+1)/2 free values:

    [log L[0,0], ..., log L[dim-1,dim-1],        # diagonal, log scale
     L[1,0], L[2,0], ..., L[dim-1,0],            # column 0 below diagonal
     L[2,1], ..., L[dim-1,1],                    # column 1 below diagonal
     ...]

and the covariance is L @ L.T. Any real input yields a symmetric
positive-definite matrix. This layout is shared with the callers that
assemble the raw parameter vector and must not change.
"""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from pysnva.backend._array_api import array_namespace


def n_trian(dim: int) -> int:
    """Number of packed values for a dim x dim covariance matrix."""
    return dim * (dim + 1) // 2


def get_factor_from_trian(vals: NDArray, dim: int, *, xp=None) -> NDArray:
    """Expand packed values into the lower-triangular factor L.

    Parameters
    ----------
    vals : ndarray, shape (dim*(dim+1)//2,)
        Packed values, diagonal first on log scale.
    dim : int
        Dimension of the covariance matrix.
    xp : backend, optional

    Returns
    -------
    L : ndarray, shape (dim, dim)
        Lower-triangular matrix with positive diagonal.
    """
    if xp is None:
        xp = array_namespace(vals)
    vals = xp.array(vals, dtype=xp.float64)
    if vals.shape[0] != n_trian(dim):
        raise ValueError(
            f"Expected {n_trian(dim)} packed values for dim={dim}, "
            f"got {vals.shape[0]}"
        )

    L = xp.zeros((dim, dim), dtype=xp.float64)
    for i in range(dim):
        L[i, i] = xp.exp(vals[i])

    idx = dim
    for i in range(dim):
        for j in range(i + 1, dim):
            L[j, i] = vals[idx]
            idx += 1
    return L


def get_vcov_from_trian(vals: NDArray, dim: int, *, xp=None) -> NDArray:
    """Covariance matrix L @ L.T from packed values.

    Examples
    --------
    >>> get_vcov_from_trian(np.array([0.0, np.log(2.0), 0.5]), 2)
    array([[1.  , 0.5 ],
           [0.5 , 4.25]])
    """
    if xp is None:
        xp = array_namespace(vals)
    L = get_factor_from_trian(vals, dim, xp=xp)
    return L @ xp.transpose(L)


def get_trian_from_vcov(vcov: NDArray) -> NDArray:
    """Packed values of a positive-definite matrix (inverse of get_vcov_from_trian).

    Parameters
    ----------
    vcov : ndarray, shape (dim, dim)
        Symmetric positive-definite matrix.

    Returns
    -------
    vals : ndarray, shape (dim*(dim+1)//2,)
    """
    vcov = np.asarray(vcov, dtype=np.float64)
    dim = vcov.shape[0]
    L = np.linalg.cholesky(vcov)

    out = np.empty(n_trian(dim), dtype=np.float64)
    out[:dim] = np.log(np.diagonal(L))
    idx = dim
    for i in range(dim):
        for j in range(i + 1, dim):
            out[idx] = L[j, i]
            idx += 1
    return out
