"""Unit tests for the domain bookkeeping and the moment kernels."""

import pytest
import numpy as np

from sfgrid.core.domain import GridDomain, OrderRange, grid_spacing
from sfgrid.core.moments import (
    LONGITUDINAL,
    TRANSVERSE,
    SCALAR,
    overlap_difference,
    vector_increments,
    compute_moments,
)


@pytest.fixture
def random_vector_3d():
    rng = np.random.default_rng(42)
    return tuple(rng.standard_normal((8, 6, 10)) for _ in range(3))


class TestGridDomain:
    """Test cases for grid geometry."""

    def test_spacing(self):
        assert grid_spacing(9, 1.0) == pytest.approx(0.125)
        assert grid_spacing(1, 1.0) == 0.0

    def test_three_dimensional(self):
        domain = GridDomain(nx=9, ny=8, nz=10, lx=2.0)
        assert domain.field_shape == (9, 8, 10)
        assert domain.half_extents == (4, 4, 5)
        assert domain.partitioned_sizes == (9, 8)
        assert domain.swept_half_extent == 5
        assert domain.result_shape(3) == (4, 4, 5, 3)
        assert domain.offsets((1, 2, 3)) == pytest.approx((0.25, 2 / 7, 3 / 9))

    def test_two_dimensional_ignores_y(self):
        domain = GridDomain(nx=8, ny=1, nz=6, two_dimensional=True)
        assert domain.ndim == 2
        assert domain.field_shape == (8, 6)
        assert domain.half_extents == (4, 3)
        assert domain.partitioned_sizes == (8, 6)
        assert domain.swept_half_extent == 1

    def test_overlap_count(self):
        domain = GridDomain(nx=8, ny=6, nz=10)
        assert domain.overlap_count((1, 2, 3)) == 7 * 4 * 7


class TestOrderRange:
    """Test cases for order ranges."""

    def test_orders(self):
        orders = OrderRange(2, 5)
        assert orders.n_orders == 4
        np.testing.assert_array_equal(orders.orders, [2.0, 3.0, 4.0, 5.0])
        assert orders.orders.dtype == np.float64
        assert orders.order_of(1) == 3

    def test_single_order(self):
        assert OrderRange(3, 3).n_orders == 1

    def test_rejects_reversed_range(self):
        with pytest.raises(ValueError):
            OrderRange(4, 2)


class TestIncrements:
    """Test cases for the point-wise field differences."""

    def test_overlap_difference_shape(self):
        field = np.arange(60.0).reshape(3, 4, 5)
        diff = overlap_difference(field, (1, 0, 2))
        assert diff.shape == (2, 4, 3)
        assert diff[0, 0, 0] == field[1, 0, 2] - field[0, 0, 0]

    def test_decomposition_identity(self, random_vector_3d):
        """dpll**2 + dperp**2 equals |du|**2 at every point."""
        index = (2, 1, 3)
        offsets = (0.2, 0.1, 0.3)
        dpll, dperp = vector_increments(random_vector_3d, index, offsets)
        du_sq = sum(overlap_difference(u, index) ** 2 for u in random_vector_3d)
        np.testing.assert_allclose(dpll ** 2 + dperp ** 2, du_sq, rtol=1e-12)
        assert np.all(dperp >= 0)

    def test_parallel_field_has_no_transverse_part(self):
        x, z = np.meshgrid(np.arange(6.0), np.arange(6.0), indexing="ij")
        dpll, dperp = vector_increments((x, z), (1, 1), (1.0, 1.0))
        np.testing.assert_allclose(dpll, np.sqrt(2.0))
        np.testing.assert_allclose(dperp, 0.0, atol=1e-14)


class TestComputeMoments:
    """Test cases for the per-displacement reduction."""

    @pytest.mark.parametrize("index", [(1, 0, 0), (0, 2, 1), (3, 2, 4), (0, 0, 5)])
    def test_backends_agree_vector_3d(self, random_vector_3d, index):
        offsets = tuple(0.1 * i for i in index)
        orders = np.arange(1.0, 5.0)
        fast = compute_moments(random_vector_3d, index, offsets, orders, scalar=False, backend="numba")
        ref = compute_moments(random_vector_3d, index, offsets, orders, scalar=False, backend="numpy")
        for name in (LONGITUDINAL, TRANSVERSE):
            np.testing.assert_allclose(fast[name], ref[name], rtol=1e-10, atol=1e-14)

    def test_backends_agree_vector_2d(self):
        rng = np.random.default_rng(1)
        comps = (rng.standard_normal((10, 8)), rng.standard_normal((10, 8)))
        orders = np.arange(2.0, 6.0)
        fast = compute_moments(comps, (2, 3), (0.2, 0.3), orders, scalar=False, backend="numba")
        ref = compute_moments(comps, (2, 3), (0.2, 0.3), orders, scalar=False, backend="numpy")
        for name in (LONGITUDINAL, TRANSVERSE):
            np.testing.assert_allclose(fast[name], ref[name], rtol=1e-10)

    @pytest.mark.parametrize("shape,index", [((6, 7, 8), (1, 2, 3)), ((9, 7), (4, 1))])
    def test_backends_agree_scalar(self, shape, index):
        rng = np.random.default_rng(7)
        theta = rng.standard_normal(shape)
        orders = np.arange(1.0, 6.0)
        offsets = tuple(float(i) for i in index)
        fast = compute_moments((theta,), index, offsets, orders, scalar=True, backend="numba")
        ref = compute_moments((theta,), index, offsets, orders, scalar=True, backend="numpy")
        np.testing.assert_allclose(fast[SCALAR], ref[SCALAR], rtol=1e-10)

    def test_odd_orders_keep_sign(self):
        """Odd moments of the longitudinal increment may be negative."""
        x = np.broadcast_to(-np.arange(8.0)[:, None], (8, 8)).copy()
        z = np.zeros((8, 8))
        result = compute_moments((x, z), (1, 0), (1.0, 0.0), np.array([1.0, 3.0]), scalar=False)
        np.testing.assert_allclose(result[LONGITUDINAL], [-1.0, -1.0])

    def test_longitudinal_only(self, random_vector_3d):
        result = compute_moments(
            random_vector_3d, (1, 1, 1), (0.1, 0.1, 0.1), np.array([2.0]),
            scalar=False, with_transverse=False,
        )
        assert set(result) == {LONGITUDINAL}

    def test_analytic_scalar(self):
        """theta = x + z has increments lx + lz everywhere."""
        domain = GridDomain(nx=9, ny=1, nz=9, two_dimensional=True)
        x, z = np.meshgrid(np.arange(9) * domain.dx, np.arange(9) * domain.dz, indexing="ij")
        index = (3, 2)
        lx, lz = domain.offsets(index)
        orders = np.array([1.0, 2.0, 3.0])
        result = compute_moments((x + z,), index, (lx, lz), orders, scalar=True)
        np.testing.assert_allclose(result[SCALAR], (lx + lz) ** orders, rtol=1e-12)

    def test_unknown_backend(self, random_vector_3d):
        with pytest.raises(ValueError):
            compute_moments(random_vector_3d, (1, 0, 0), (0.1, 0, 0), np.array([2.0]), scalar=False, backend="cuda")
