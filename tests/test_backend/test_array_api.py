"""Tests for backend abstraction."""

from __future__ import annotations

import numpy as np
import pytest
from scipy.special import expit, log_ndtr

from pysnva.backend import get_backend, set_backend, array_namespace


class TestGetBackend:
    def test_numpy_backend(self):
        xp = get_backend("numpy")
        assert xp.name == "numpy"

    def test_default_is_numpy(self):
        xp = get_backend()
        assert xp.name == "numpy"

    def test_invalid_backend(self):
        with pytest.raises(ValueError):
            get_backend("invalid")

    def test_set_invalid_backend(self):
        with pytest.raises(ValueError):
            set_backend("jax")


class TestArrayNamespace:
    def test_infer_numpy(self):
        xp = array_namespace(np.array([1.0]))
        assert xp.name == "numpy"

    def test_infer_python_scalars(self):
        xp = array_namespace(0.5, 2, None)
        assert xp.name == "numpy"

    def test_infer_none_returns_default(self):
        xp = array_namespace(None)
        assert xp.name == "numpy"

    def test_infer_torch(self):
        torch = pytest.importorskip("torch")
        xp = array_namespace(np.array([1.0]), torch.tensor([1.0]))
        assert xp.name == "torch"


class TestNumpyBackendOps:
    def test_zeros(self, xp_numpy):
        z = xp_numpy.zeros((3, 3))
        np.testing.assert_array_equal(z, np.zeros((3, 3)))

    def test_eye(self, xp_numpy):
        e = xp_numpy.eye(3)
        np.testing.assert_array_equal(e, np.eye(3))

    def test_solve(self, xp_numpy):
        A = xp_numpy.array([[2.0, 1.0], [1.0, 3.0]])
        b = xp_numpy.array([1.0, 2.0])
        x = xp_numpy.solve(A, b)
        np.testing.assert_allclose(A @ x, b, atol=1e-12)

    def test_normal_cdf(self, xp_numpy):
        np.testing.assert_allclose(xp_numpy.normal_cdf(xp_numpy.array(0.0)), 0.5, atol=1e-10)
        assert xp_numpy.normal_cdf(xp_numpy.array(-10.0)) < 1e-10
        assert xp_numpy.normal_cdf(xp_numpy.array(10.0)) > 1.0 - 1e-10

    def test_normal_pdf(self, xp_numpy):
        # phi(0) = 1/sqrt(2*pi)
        np.testing.assert_allclose(
            xp_numpy.normal_pdf(xp_numpy.array(0.0)),
            1.0 / np.sqrt(2 * np.pi),
            atol=1e-10,
        )

    def test_normal_logcdf_lower_tail(self, xp_numpy):
        x = np.array([-40.0, -5.0, 0.0, 3.0])
        np.testing.assert_allclose(xp_numpy.normal_logcdf(x), log_ndtr(x))
        assert np.isfinite(xp_numpy.normal_logcdf(np.array(-40.0)))

    def test_expit(self, xp_numpy):
        x = np.array([-3.0, 0.0, 2.5])
        np.testing.assert_allclose(xp_numpy.expit(x), expit(x))

    def test_cholesky(self, xp_numpy, pd_3x3):
        L = xp_numpy.cholesky(pd_3x3)
        np.testing.assert_allclose(L @ L.T, pd_3x3, atol=1e-10)

    def test_logdet(self, xp_numpy, pd_3x3):
        _, expected = np.linalg.slogdet(pd_3x3)
        np.testing.assert_allclose(xp_numpy.logdet(pd_3x3), expected, rtol=1e-12)


class TestTorchBackendOps:
    def test_normal_functions_match_numpy(self, xp_torch, xp_numpy):
        x = np.array([-6.0, -1.0, 0.0, 2.0])
        xt = xp_torch.array(x)
        np.testing.assert_allclose(
            xp_torch.to_numpy(xp_torch.normal_cdf(xt)), xp_numpy.normal_cdf(x)
        )
        np.testing.assert_allclose(
            xp_torch.to_numpy(xp_torch.normal_logcdf(xt)), xp_numpy.normal_logcdf(x)
        )

    def test_where_accepts_scalars(self, xp_torch):
        x = xp_torch.array([-1.0, 2.0])
        out = xp_torch.where(x <= 0, -1.0, 1.0)
        np.testing.assert_array_equal(xp_torch.to_numpy(out), [-1.0, 1.0])

    def test_logdet(self, xp_torch, pd_3x3):
        _, expected = np.linalg.slogdet(pd_3x3)
        out = xp_torch.logdet(xp_torch.array(pd_3x3))
        np.testing.assert_allclose(xp_torch.to_float(out), expected, rtol=1e-12)
