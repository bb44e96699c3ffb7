"""Tests for the Gauss-Hermite rule cache."""

from __future__ import annotations

import concurrent.futures
import math

import numpy as np
import pytest

from pysnva.quadrature import (
    N_MAX,
    ParallelConstructionError,
    clear_cache,
    gauss_hermite_rule,
    get_quadrature_rule,
    in_parallel,
    parallel_region,
    prepare_rules,
)


class TestGaussHermiteRule:
    @pytest.mark.parametrize("n", [1, 2, 5, 20, N_MAX])
    def test_weights_sum_to_sqrt_pi(self, n):
        rule = get_quadrature_rule(n)
        assert rule.n == n
        assert np.all(rule.w > 0)
        np.testing.assert_allclose(np.sum(rule.w), math.sqrt(math.pi), rtol=1e-12)

    @pytest.mark.parametrize("n", [2, 7, 30])
    def test_nodes_increasing_and_symmetric(self, n):
        rule = get_quadrature_rule(n)
        assert np.all(np.diff(rule.x) > 0)
        np.testing.assert_allclose(rule.x, -rule.x[::-1], atol=1e-12)

    def test_even_moments(self):
        # int exp(-x^2) x^2 dx = sqrt(pi)/2, int exp(-x^2) x^4 dx = 3 sqrt(pi)/4
        rule = get_quadrature_rule(10)
        np.testing.assert_allclose(
            np.sum(rule.w * rule.x**2), math.sqrt(math.pi) / 2, rtol=1e-12
        )
        np.testing.assert_allclose(
            np.sum(rule.w * rule.x**4), 3 * math.sqrt(math.pi) / 4, rtol=1e-12
        )

    def test_single_node(self):
        rule = get_quadrature_rule(1)
        np.testing.assert_allclose(rule.x, [0.0], atol=1e-15)

    def test_arrays_are_read_only(self):
        rule = get_quadrature_rule(6)
        with pytest.raises(ValueError):
            rule.x[0] = 1.0
        with pytest.raises(ValueError):
            rule.w[0] = 1.0

    def test_uncached_builder_matches(self):
        rule = gauss_hermite_rule(9)
        cached = get_quadrature_rule(9)
        np.testing.assert_array_equal(rule.x, cached.x)
        np.testing.assert_array_equal(rule.w, cached.w)


class TestGetQuadratureRule:
    def test_same_instance_returned(self):
        assert get_quadrature_rule(12) is get_quadrature_rule(12)

    def test_dtype_is_part_of_key(self):
        rule64 = get_quadrature_rule(5)
        rule32 = get_quadrature_rule(5, dtype=np.float32)
        assert rule32 is not rule64
        assert rule32.dtype == np.float32
        assert rule64.dtype == np.float64

    @pytest.mark.parametrize("n", [0, -3, N_MAX + 1])
    def test_invalid_n(self, n):
        with pytest.raises(ValueError, match="invalid n"):
            get_quadrature_rule(n)

    def test_non_integer_n(self):
        with pytest.raises(ValueError):
            get_quadrature_rule(2.5)

    def test_torch_rule(self):
        pytest.importorskip("torch")
        from pysnva.backend import get_backend

        xp = get_backend("torch")
        rule = get_quadrature_rule(8, xp=xp)
        assert rule.backend == "torch"
        np.testing.assert_allclose(
            xp.to_numpy(rule.x), get_quadrature_rule(8).x, rtol=1e-14
        )


class TestParallelRegion:
    def test_flag(self):
        assert not in_parallel()
        with parallel_region():
            assert in_parallel()
            with parallel_region():
                assert in_parallel()
            assert in_parallel()
        assert not in_parallel()

    def test_uncached_rule_raises_in_parallel(self):
        clear_cache()
        with parallel_region():
            with pytest.raises(ParallelConstructionError):
                get_quadrature_rule(17)
        # fine again once the region is left
        assert get_quadrature_rule(17).n == 17

    def test_cached_rule_allowed_in_parallel(self):
        rule = get_quadrature_rule(18)
        with parallel_region():
            assert get_quadrature_rule(18) is rule

    def test_clear_cache_refused_in_parallel(self):
        with parallel_region():
            with pytest.raises(ParallelConstructionError):
                clear_cache()

    def test_threads_share_prepared_rules(self):
        clear_cache()
        ns = [3, 11, 25]
        prepare_rules(ns)
        expected = {n: get_quadrature_rule(n) for n in ns}

        with parallel_region():
            with concurrent.futures.ThreadPoolExecutor(max_workers=4) as executor:
                got = list(executor.map(get_quadrature_rule, ns * 20))

        for n, rule in zip(ns * 20, got):
            assert rule is expected[n]
