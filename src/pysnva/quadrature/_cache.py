"""Process-wide cache of Gauss-Hermite rules.

Rules are built once per (node count, backend, dtype) and shared
read-only afterwards. Building a rule is only allowed outside of a
parallel region: callers that fan work out to threads must either call
:func:`prepare_rules` first or touch every rule they need before
entering :func:`parallel_region`.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager

import numpy as np

from pysnva.backend._array_api import get_backend
from pysnva.quadrature._hermite import QuadratureRule, gauss_hermite_rule

N_MAX = 100

_cache: dict[tuple[int, str, str], QuadratureRule] = {}
_construct_lock = threading.Lock()

_parallel_depth = 0
_parallel_lock = threading.Lock()


class ParallelConstructionError(RuntimeError):
    """A rule that is not cached yet was requested inside a parallel region."""


@contextmanager
def parallel_region():
    """Mark a section in which worker threads may be running."""
    global _parallel_depth
    with _parallel_lock:
        _parallel_depth += 1
    try:
        yield
    finally:
        with _parallel_lock:
            _parallel_depth -= 1


def in_parallel() -> bool:
    """Return True while any :func:`parallel_region` is active."""
    return _parallel_depth > 0


def _check_n(n) -> int:
    if isinstance(n, bool) or not isinstance(n, (int, np.integer)):
        raise ValueError(f"n must be an integer, got {type(n).__name__}")
    n = int(n)
    if n == 0 or n < 0 or n > N_MAX:
        raise ValueError(
            f"get_quadrature_rule: invalid n={n} (must satisfy 1 <= n <= {N_MAX})"
        )
    return n


def get_quadrature_rule(n: int, *, dtype=None, xp=None) -> QuadratureRule:
    """Return the cached n-point Gauss-Hermite rule.

    Parameters
    ----------
    n : int
        Number of nodes, 1 <= n <= N_MAX.
    dtype : dtype, optional
        Floating type of the rule. Defaults to the backend's float64.
    xp : backend, optional
        Backend the rule's arrays belong to. Defaults to the current
        default backend.

    Returns
    -------
    rule : QuadratureRule

    Raises
    ------
    ValueError
        If n is zero or larger than N_MAX.
    ParallelConstructionError
        If the rule has to be built while a parallel region is active.
    """
    n = _check_n(n)
    if xp is None:
        xp = get_backend()
    if dtype is None:
        dtype = xp.float64
    key = (n, xp.name, str(dtype))

    rule = _cache.get(key)
    if rule is not None:
        return rule

    if in_parallel():
        raise ParallelConstructionError(
            f"get_quadrature_rule called in parallel mode for uncached n={n}"
        )

    with _construct_lock:
        rule = _cache.get(key)
        if rule is None:
            rule = gauss_hermite_rule(n, dtype=dtype, xp=xp)
            _cache[key] = rule
    return rule


get_rule = get_quadrature_rule


def prepare_rules(ns, *, dtype=None, xp=None) -> None:
    """Build every rule in ``ns`` ahead of a parallel region."""
    for n in ns:
        get_quadrature_rule(n, dtype=dtype, xp=xp)


def clear_cache() -> None:
    """Drop all cached rules. Not safe while workers are running."""
    if in_parallel():
        raise ParallelConstructionError("clear_cache called in parallel mode")
    with _construct_lock:
        _cache.clear()
