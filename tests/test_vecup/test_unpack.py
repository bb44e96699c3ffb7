"""Tests for unpacking the raw variational parameter vector."""

from __future__ import annotations

import numpy as np
import pytest

from pysnva.vecup import (
    block_size,
    count_groups,
    cp_to_dp,
    dp_to_cp,
    gamma_transform,
    get_vcov_from_trian,
    pack_variational_params,
    unpack_variational_params,
)


@pytest.fixture
def groups_2d():
    means = [np.array([0.1, -0.3]), np.array([1.0, 0.5]), np.array([0.0, 0.0])]
    vcovs = [
        np.array([[1.0, 0.2], [0.2, 0.5]]),
        np.array([[0.3, -0.1], [-0.1, 2.0]]),
        np.eye(2),
    ]
    skew = [np.array([0.5, -1.0]), np.array([0.0, 2.0]), np.array([-0.3, 0.3])]
    return means, vcovs, skew


class TestBlockSize:
    def test_sizes(self):
        assert block_size(2, "GVA") == 5
        assert block_size(2, "DP") == 7
        assert block_size(2, "CP_trans") == 7
        assert block_size(3, "DP") == 12

    def test_count_groups(self):
        assert count_groups(21, 2, "DP") == 3
        assert count_groups(0, 2, "DP") == 0

    def test_not_a_multiple(self):
        with pytest.raises(ValueError, match="not a multiple"):
            count_groups(8, 2, "DP")

    def test_unknown_layout(self):
        with pytest.raises(ValueError, match="Unknown parameterization"):
            block_size(2, "CP")


class TestUnpackDP:
    def test_raw_layout(self):
        theta = np.array([0.1, 0.2, 0.0, np.log(2.0), 0.5, -0.7, 0.9])
        (group,) = unpack_variational_params(theta, 2, "DP")
        np.testing.assert_array_equal(group.mean, [0.1, 0.2])
        np.testing.assert_allclose(group.vcov, [[1.0, 0.5], [0.5, 4.25]])
        np.testing.assert_array_equal(group.rho, [-0.7, 0.9])
        assert group.dim == 2

    def test_pack_unpack(self, groups_2d):
        means, vcovs, skew = groups_2d
        theta = pack_variational_params(means, vcovs, skew, "DP")
        assert theta.shape == (3 * block_size(2, "DP"),)

        groups = unpack_variational_params(theta, 2, "DP")
        assert len(groups) == 3
        for g, group in enumerate(groups):
            np.testing.assert_allclose(group.mean, means[g])
            np.testing.assert_allclose(group.vcov, vcovs[g], atol=1e-12)
            np.testing.assert_allclose(group.rho, skew[g])

    def test_wrong_length(self):
        with pytest.raises(ValueError):
            unpack_variational_params(np.zeros(8), 2, "DP")

    def test_empty(self):
        assert unpack_variational_params(np.zeros(0), 2, "DP") == []

    def test_skew_required(self, groups_2d):
        means, vcovs, _ = groups_2d
        with pytest.raises(ValueError):
            pack_variational_params(means, vcovs, None, "DP")


class TestUnpackGVA:
    def test_zero_rho(self, groups_2d):
        means, vcovs, _ = groups_2d
        theta = pack_variational_params(means, vcovs, param_type="GVA")
        groups = unpack_variational_params(theta, 2, "GVA")
        assert len(groups) == 3
        for g, group in enumerate(groups):
            np.testing.assert_allclose(group.vcov, vcovs[g], atol=1e-12)
            np.testing.assert_array_equal(group.rho, np.zeros(2))


class TestUnpackCPTrans:
    def test_matches_cp_to_dp(self):
        theta = np.array([0.4, -0.2, 0.1, 0.3, -0.5, 1.2, -0.8])
        (group,) = unpack_variational_params(theta, 2, "CP_trans")

        vcov = get_vcov_from_trian(theta[2:5], 2)
        mu, Lambda, rho = cp_to_dp(theta[:2], vcov, gamma_transform(theta[5:]))
        np.testing.assert_allclose(group.mean, mu)
        np.testing.assert_allclose(group.vcov, Lambda)
        np.testing.assert_allclose(group.rho, rho)

    @pytest.mark.parametrize("gamma", [0.02, -0.045])
    def test_round_trip_1d(self, gamma):
        theta = pack_variational_params(
            [np.array([0.6])], [np.array([[1.3]])], [np.array([gamma])], "CP_trans"
        )
        (group,) = unpack_variational_params(theta, 1, "CP_trans")
        mean, vcov, gamma2 = dp_to_cp(group.mean, group.vcov, group.rho)
        np.testing.assert_allclose(mean, [0.6], rtol=1e-10)
        np.testing.assert_allclose(vcov, [[1.3]], rtol=1e-10)
        np.testing.assert_allclose(gamma2, [gamma], rtol=1e-8)


class TestUnpackTorch:
    def test_gradient_flows(self, groups_2d):
        torch = pytest.importorskip("torch")
        means, vcovs, _ = groups_2d
        gammas = [np.array([0.2, -0.1]), np.array([0.05, 0.6]), np.array([-0.4, 0.3])]
        theta_np = pack_variational_params(means, vcovs, gammas, "CP_trans")
        theta = torch.tensor(theta_np, dtype=torch.float64, requires_grad=True)

        groups = unpack_variational_params(theta, 2, "CP_trans")
        total = sum(g.mean.sum() + g.vcov.sum() + g.rho.sum() for g in groups)
        total.backward()
        assert theta.grad is not None
        assert torch.all(torch.isfinite(theta.grad))

        ref = unpack_variational_params(theta_np, 2, "CP_trans")
        for g_t, g_np in zip(groups, ref):
            np.testing.assert_allclose(g_t.vcov.detach().numpy(), g_np.vcov, rtol=1e-12)
