"""Unit tests for field and result-grid I/O."""

import pytest
import numpy as np

from sfgrid.core.domain import GridDomain, OrderRange
from sfgrid.core.assembly import allocate_result_grids
from sfgrid.core.moments import LONGITUDINAL, TRANSVERSE
from sfgrid.io.grid_io import load_fields, save_result_grids, load_result_grid


@pytest.fixture
def domain():
    return GridDomain(nx=6, ny=4, nz=8)


@pytest.fixture
def field_file(tmp_path, domain):
    rng = np.random.default_rng(0)
    path = tmp_path / "fields.npz"
    np.savez(
        path,
        ux=rng.standard_normal(domain.field_shape),
        uy=rng.standard_normal(domain.field_shape),
        uz=rng.standard_normal(domain.field_shape).astype(np.float32),
        small=np.zeros((2, 2, 2)),
        flat=np.zeros((6, 8)),
    )
    return path


class TestLoadFields:
    """Test cases for load_fields."""

    def test_load(self, field_file, domain):
        fields = load_fields(field_file, {"v_x": "ux", "v_y": "uy", "v_z": "uz"}, domain)
        assert set(fields) == {"v_x", "v_y", "v_z"}
        assert fields["v_z"].dtype == np.float64
        assert fields["v_x"].shape == domain.field_shape

    def test_accepts_string_path(self, field_file, domain):
        fields = load_fields(str(field_file), {"v_x": "ux"}, domain)
        assert "v_x" in fields

    def test_invalid_path_type(self, domain):
        with pytest.raises(TypeError):
            load_fields(123, {"v_x": "ux"}, domain)

    def test_missing_file(self, tmp_path, domain):
        with pytest.raises(FileNotFoundError) as exc_info:
            load_fields(tmp_path / "missing.npz", {"v_x": "ux"}, domain)
        assert "Please check" in str(exc_info.value)

    def test_wrong_suffix(self, tmp_path, domain):
        path = tmp_path / "fields.h5"
        path.write_bytes(b"")
        with pytest.raises(ValueError):
            load_fields(path, {"v_x": "ux"}, domain)

    def test_missing_array(self, field_file, domain):
        with pytest.raises(ValueError) as exc_info:
            load_fields(field_file, {"v_x": "velocity_x"}, domain)
        assert "velocity_x" in str(exc_info.value)

    def test_wrong_dimension(self, field_file, domain):
        with pytest.raises(ValueError) as exc_info:
            load_fields(field_file, {"v_x": "flat"}, domain)
        assert "dimension" in str(exc_info.value)

    def test_wrong_shape(self, field_file, domain):
        with pytest.raises(ValueError) as exc_info:
            load_fields(field_file, {"v_x": "small"}, domain)
        assert "grid size" in str(exc_info.value)


class TestResultGrids:
    """Test cases for writing and reading result grids."""

    def test_one_file_per_grid_and_order(self, tmp_path, domain):
        orders = OrderRange(2, 4)
        grids = allocate_result_grids(domain, orders.n_orders, scalar=False)
        grids[LONGITUDINAL][...] = np.arange(orders.n_orders)
        stems = {LONGITUDINAL: "SF_Grid_pll", TRANSVERSE: "SF_Grid_perp"}

        written = save_result_grids(grids, tmp_path / "out", orders, stems)

        assert len(written) == 6
        assert {p.name for p in written} == {
            f"SF_Grid_{kind}{q}.npz" for kind in ("pll", "perp") for q in (2, 3, 4)
        }
        stem, array = load_result_grid(tmp_path / "out" / "SF_Grid_pll3.npz")
        assert stem == "SF_Grid_pll3"
        assert array.shape == domain.half_extents
        np.testing.assert_array_equal(array, 1.0)

    def test_load_missing_result(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_result_grid(tmp_path / "SF_Grid_pll2.npz")
