"""Tests for the integrand families."""

from __future__ import annotations

import numpy as np
import pytest
from scipy.special import expit, log_ndtr

from pysnva.snva import (
    MLOGIT_TOO_LARGE,
    IntegrandFamily,
    family_derivative,
    family_value,
)


class TestParse:
    def test_parse_strings(self):
        assert IntegrandFamily.parse("probit") is IntegrandFamily.PROBIT
        assert IntegrandFamily.parse("MLOGIT") is IntegrandFamily.MLOGIT
        assert IntegrandFamily.parse(IntegrandFamily.PROBIT) is IntegrandFamily.PROBIT

    def test_unknown_family(self):
        with pytest.raises(ValueError, match="Unknown integrand family"):
            IntegrandFamily.parse("logit2")


class TestProbit:
    def test_value(self):
        z = np.array([-30.0, -2.0, 0.0, 1.0, 8.0])
        np.testing.assert_allclose(family_value("probit", z), -log_ndtr(z))

    def test_value_at_zero(self):
        np.testing.assert_allclose(family_value("probit", np.array(0.0)), np.log(2.0))

    def test_derivative_finite_differences(self):
        z = np.array([-8.0, -2.0, 0.0, 1.5, 4.0])
        h = 1e-5
        fd = (family_value("probit", z + h) - family_value("probit", z - h)) / (2 * h)
        np.testing.assert_allclose(family_derivative("probit", z), fd, rtol=1e-6)

    def test_derivative_far_tail(self):
        # -phi(z) / Phi(z) ~ z for large negative z
        d = family_derivative("probit", np.array([-40.0]))
        assert np.isfinite(d[0])
        np.testing.assert_allclose(d, [-40.0], rtol=1e-2)


class TestMlogit:
    def test_value_small(self):
        z = np.array([-5.0, 0.0, 3.0, 29.0])
        np.testing.assert_allclose(family_value("mlogit", z), np.log1p(np.exp(z)))

    def test_large_argument_branch(self):
        z = np.array([MLOGIT_TOO_LARGE, 35.0, 800.0])
        with np.errstate(over="raise"):
            out = family_value("mlogit", z)
        np.testing.assert_array_equal(out, z)

    def test_continuous_at_switch(self):
        below = family_value("mlogit", np.array([MLOGIT_TOO_LARGE - 1e-9]))
        at = family_value("mlogit", np.array([MLOGIT_TOO_LARGE]))
        np.testing.assert_allclose(below, at, atol=1e-8)

    def test_derivative(self):
        z = np.array([-4.0, 0.0, 2.0, 31.0])
        expected = np.where(z >= MLOGIT_TOO_LARGE, 1.0, expit(z))
        np.testing.assert_allclose(family_derivative("mlogit", z), expected)
