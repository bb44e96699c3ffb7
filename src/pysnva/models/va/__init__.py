"""Variational lower bound dispatch for GVA and SNVA."""

from pysnva.models.va._va_accumulator import LowerBoundAccumulator
from pysnva.models.va._va_control import VAControl
from pysnva.models.va._va_lower_bound import (
    FamilyTerm,
    family_term_value,
    group_kl_term,
    va_lower_bound,
)

__all__ = [
    "VAControl",
    "LowerBoundAccumulator",
    "FamilyTerm",
    "group_kl_term",
    "family_term_value",
    "va_lower_bound",
]
