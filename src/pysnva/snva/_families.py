"""Integrand families g(z) for the skew-normal expectations.

- ``probit``: g(z) = -log Phi(z)
- ``mlogit``: g(z) = log(1 + exp(z)), replaced by g(z) = z once z
  reaches ``MLOGIT_TOO_LARGE``. The switch is a select rather than a
  branch so the same code records a valid autograd graph.
"""

from __future__ import annotations

from enum import Enum

from pysnva.backend._array_api import array_namespace

MLOGIT_TOO_LARGE = 30.0


class IntegrandFamily(str, Enum):
    """Link family of the expected-log-likelihood integrand."""

    PROBIT = "probit"
    MLOGIT = "mlogit"

    @classmethod
    def parse(cls, family: IntegrandFamily | str) -> IntegrandFamily:
        """Convert a string tag to an :class:`IntegrandFamily`."""
        if isinstance(family, cls):
            return family
        try:
            return cls(str(family).lower())
        except ValueError:
            raise ValueError(
                f"Unknown integrand family: {family!r}. Use 'probit' or 'mlogit'."
            ) from None


def family_value(family: IntegrandFamily | str, z, *, xp=None):
    """Evaluate g(z) for the given family."""
    family = IntegrandFamily.parse(family)
    if xp is None:
        xp = array_namespace(z)

    if family is IntegrandFamily.PROBIT:
        return -xp.normal_logcdf(z)

    # exp is evaluated on a clipped argument so the unused branch never overflows
    return xp.where(
        z >= MLOGIT_TOO_LARGE,
        z,
        xp.log1p(xp.exp(xp.minimum(z, MLOGIT_TOO_LARGE))),
    )


def family_derivative(family: IntegrandFamily | str, z, *, xp=None):
    """Evaluate g'(z) for the given family."""
    family = IntegrandFamily.parse(family)
    if xp is None:
        xp = array_namespace(z)

    if family is IntegrandFamily.PROBIT:
        # -phi(z) / Phi(z) on the log scale
        return -xp.exp(xp.normal_logpdf(z) - xp.normal_logcdf(z))

    return xp.where(z >= MLOGIT_TOO_LARGE, 1.0, xp.expit(z))
