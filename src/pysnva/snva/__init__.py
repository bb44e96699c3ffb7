"""Skew-normal variational integrals (entropy term, link-family expectations)."""

from pysnva.snva._atomic import entropy_term_torch, family_integral_torch
from pysnva.snva._entropy import (
    EntropyTermIntegral,
    entropy_term_gradient,
    evaluate_entropy_term,
)
from pysnva.snva._families import (
    MLOGIT_TOO_LARGE,
    IntegrandFamily,
    family_derivative,
    family_value,
)
from pysnva.snva._integral import (
    FamilyIntegral,
    FamilyIntegralGradient,
    evaluate_family_integral,
    gradient_family_integral,
)
from pysnva.snva._mode import (
    ModeCurvature,
    ModeCurvaturePartials,
    snva_mode_curvature,
    snva_mode_curvature_partials,
)

__all__ = [
    "IntegrandFamily",
    "MLOGIT_TOO_LARGE",
    "family_value",
    "family_derivative",
    "ModeCurvature",
    "ModeCurvaturePartials",
    "snva_mode_curvature",
    "snva_mode_curvature_partials",
    "evaluate_entropy_term",
    "entropy_term_gradient",
    "EntropyTermIntegral",
    "evaluate_family_integral",
    "gradient_family_integral",
    "FamilyIntegralGradient",
    "FamilyIntegral",
    "family_integral_torch",
    "entropy_term_torch",
]
