"""Variational approximation control structure.

Configures how the lower bound is assembled, in the same spirit as the
``*Control`` dataclasses of the estimation routines.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from pysnva.quadrature._cache import N_MAX

METHODS = ("GVA", "SNVA")
SNVA_PARAM_TYPES = ("DP", "CP_trans")


@dataclass
class VAControl:
    """Control structure for lower-bound evaluation.

    Attributes
    ----------
    method : {"GVA", "SNVA"}
        Gaussian or skew-normal variational approximation.
    param_type : {"DP", "CP_trans"}
        Layout of the SNVA parameter blocks. Ignored for GVA.
    n_nodes : int
        Number of Gauss-Hermite nodes, 1 <= n_nodes <= N_MAX.
    n_threads : int
        Worker threads used across groups. 1 evaluates sequentially.
    verbose : int
        Verbosity: 0=silent, 1=summary, 2=per-group.
    """

    method: Literal["GVA", "SNVA"] = "SNVA"
    param_type: Literal["DP", "CP_trans"] = "DP"
    n_nodes: int = 20
    n_threads: int = 1
    verbose: int = 0

    def __post_init__(self):
        if self.method not in METHODS:
            raise ValueError(
                f"approximation method {self.method!r} is not implemented. "
                f"Use one of {METHODS}."
            )
        if self.param_type not in SNVA_PARAM_TYPES:
            raise ValueError(
                f"Unknown parameterization: {self.param_type!r}. "
                f"Use one of {SNVA_PARAM_TYPES}."
            )
        if not 1 <= self.n_nodes <= N_MAX:
            raise ValueError(f"n_nodes must be in [1, {N_MAX}], got {self.n_nodes}")
        if self.n_threads < 1:
            raise ValueError(f"n_threads must be >= 1, got {self.n_threads}")

    @property
    def layout(self) -> str:
        """Raw parameter layout: "GVA", "DP" or "CP_trans"."""
        if self.method == "GVA":
            return "GVA"
        return self.param_type
