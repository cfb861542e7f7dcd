"""Unit tests for the displacement partitioner and the process grid."""

import pytest
import numpy as np

from sfgrid.core.partition import (
    PartitionError,
    check_partition,
    compute_index_list,
    build_index_table,
    local_pairs,
    iter_local_displacements,
)
from sfgrid.core.topology import ProcessTopology


class TestProcessTopology:
    """Test cases for the rank <-> process-grid mapping."""

    def test_row_major_coords(self):
        topo = ProcessTopology(n_procs=6, px=2)
        assert topo.py == 3
        assert topo.coords(0) == (0, 0)
        assert topo.coords(2) == (0, 2)
        assert topo.coords(4) == (1, 1)

    def test_rank_of_inverts_coords(self):
        topo = ProcessTopology(n_procs=8, px=4)
        for rank in topo:
            assert topo.rank_of(*topo.coords(rank)) == rank

    def test_iteration_covers_all_ranks(self):
        assert list(ProcessTopology(n_procs=4, px=1)) == [0, 1, 2, 3]


class TestComputeIndexList:
    """Test cases for the mirror-ladder index lists."""

    def test_known_ladder(self):
        np.testing.assert_array_equal(compute_index_list(8, 2, 0), [0, 7, 4, 3])
        np.testing.assert_array_equal(compute_index_list(8, 2, 1), [1, 6, 5, 2])

    def test_one_index_per_process(self):
        """With p == H each rank owns exactly its own index."""
        for rank in range(4):
            np.testing.assert_array_equal(compute_index_list(4, 4, rank), [rank])

    @pytest.mark.parametrize("half_extent,n_procs", [(8, 1), (8, 2), (8, 4), (8, 8), (16, 4), (4, 2)])
    def test_completeness(self, half_extent, n_procs):
        """Every index is owned by exactly one process."""
        owned = np.concatenate(
            [compute_index_list(half_extent, n_procs, r) for r in range(n_procs)]
        )
        assert sorted(owned.tolist()) == list(range(half_extent))

    @pytest.mark.parametrize("half_extent,n_procs", [(8, 2), (16, 4), (16, 2), (12, 2)])
    def test_balance(self, half_extent, n_procs):
        """Each ladder pair sums to H - 1, so every rank gets the same total."""
        lists = [compute_index_list(half_extent, n_procs, r) for r in range(n_procs)]
        sizes = {len(lst) for lst in lists}
        assert sizes == {half_extent // n_procs}
        for lst in lists:
            pairs = lst.reshape(-1, 2)
            assert np.all(pairs.sum(axis=1) == half_extent - 1)


class TestCheckPartition:
    """Test cases for the partition preconditions."""

    @pytest.mark.parametrize("half_extent,n_procs", [(8, 1), (8, 2), (8, 4), (8, 8), (4, 4), (1, 1)])
    def test_accepts_valid(self, half_extent, n_procs):
        check_partition(half_extent, n_procs)

    def test_rejects_non_divisor(self):
        with pytest.raises(PartitionError) as exc_info:
            check_partition(8, 3, axis_name="x")
        assert "x" in str(exc_info.value)

    @pytest.mark.parametrize("half_extent,n_procs", [(12, 4), (5, 1), (6, 2)])
    def test_rejects_odd_share(self, half_extent, n_procs):
        with pytest.raises(PartitionError):
            check_partition(half_extent, n_procs)

    def test_rejects_empty_axis(self):
        with pytest.raises(PartitionError):
            check_partition(0, 1)

    def test_rejects_non_positive_procs(self):
        with pytest.raises(PartitionError):
            check_partition(8, 0)

    def test_is_value_error(self):
        assert issubclass(PartitionError, ValueError)


class TestIndexTable:
    """Test cases for the per-rank index table."""

    def test_shape(self):
        table = build_index_table(16, 16, ProcessTopology(n_procs=4, px=2))
        assert table.shape == (16, 2, 4)

    def test_odd_grid_uses_integer_half_extents(self):
        """N = 9 gives H = 4, not 4.5."""
        table = build_index_table(9, 9, ProcessTopology(n_procs=2, px=1))
        assert table.shape == (8, 2, 2)

    def test_every_pair_owned_once(self):
        topo = ProcessTopology(n_procs=8, px=2)
        table = build_index_table(16, 32, topo)
        pairs = [tuple(p) for r in topo for p in local_pairs(table, r)]
        assert len(pairs) == len(set(pairs))
        assert set(pairs) == {(a, b) for a in range(8) for b in range(16)}

    def test_row_layout(self):
        """Row ``ny_local * i + j`` holds ``(x_list[i], y_list[j])``."""
        topo = ProcessTopology(n_procs=4, px=2)
        table = build_index_table(16, 16, topo)
        rank = 3
        rank_x, rank_y = topo.coords(rank)
        x_list = compute_index_list(8, 2, rank_x)
        y_list = compute_index_list(8, 2, rank_y)
        ny_local = len(y_list)
        for i, a in enumerate(x_list):
            for j, b in enumerate(y_list):
                assert tuple(table[ny_local * i + j, :, rank]) == (a, b)


class TestLocalDisplacements:
    """Test cases for the per-rank displacement iteration."""

    def test_three_dimensional_sweeps_z(self):
        table = build_index_table(8, 8, ProcessTopology(n_procs=1, px=1))
        disps = list(iter_local_displacements(table, 0, 3, two_dimensional=False))
        assert len(disps) == 4 * 4 * 3
        assert disps[:3] == [(0, 0, 0), (0, 0, 1), (0, 0, 2)]

    def test_two_dimensional_yields_pairs(self):
        table = build_index_table(8, 8, ProcessTopology(n_procs=2, px=1))
        disps = list(iter_local_displacements(table, 1, 1, two_dimensional=True))
        assert all(len(d) == 2 for d in disps)
        assert len(disps) == 8
        assert all(isinstance(v, int) for d in disps for v in d)
