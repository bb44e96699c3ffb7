"""Gauss-Hermite quadrature rules and the process-wide rule cache."""

from pysnva.quadrature._cache import (
    N_MAX,
    ParallelConstructionError,
    clear_cache,
    get_quadrature_rule,
    get_rule,
    in_parallel,
    parallel_region,
    prepare_rules,
)
from pysnva.quadrature._hermite import (
    QuadratureRule,
    gauss_hermite_rule,
    rule_arrays,
)

__all__ = [
    "N_MAX",
    "QuadratureRule",
    "ParallelConstructionError",
    "gauss_hermite_rule",
    "rule_arrays",
    "get_quadrature_rule",
    "get_rule",
    "prepare_rules",
    "parallel_region",
    "in_parallel",
    "clear_cache",
]
