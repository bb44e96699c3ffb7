"""pysnva: Gaussian and skew-normal variational approximation integrals.

Subpackages
-----------
backend      NumPy / PyTorch array backends
quadrature   Gauss-Hermite rules and the process-wide rule cache
snva         mode/curvature solver, entropy term and link-family integrals
vecup        raw parameter vector <-> per-group variational parameters
models.va    GVA / SNVA lower-bound dispatch
"""

from pysnva.quadrature import get_quadrature_rule
from pysnva.snva import (
    IntegrandFamily,
    evaluate_entropy_term,
    evaluate_family_integral,
    gradient_family_integral,
)
from pysnva.vecup import unpack_variational_params

__version__ = "0.1.0"

__all__ = [
    "get_quadrature_rule",
    "IntegrandFamily",
    "evaluate_entropy_term",
    "evaluate_family_integral",
    "gradient_family_integral",
    "unpack_variational_params",
]
