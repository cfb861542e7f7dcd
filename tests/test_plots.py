"""Tests for the plotting helpers."""

import logging

import numpy as np

from sfgrid.core.domain import GridDomain, OrderRange
from sfgrid.analysis.validation import expected_structure_functions
from sfgrid.visualization.plots import shell_average, plot_structure_functions
from sfgrid.utils.log import setup_logging


class TestShellAverage:
    def test_power_law_profile_is_increasing(self):
        domain = GridDomain(nx=32, ny=32, nz=32)
        orders = OrderRange(2, 3)
        grid = expected_structure_functions(domain, orders, scalar=False)
        r, profiles = shell_average(grid, domain, n_bins=8)
        assert profiles.shape == (len(r), 2)
        assert np.all(np.diff(r) > 0)
        assert np.all(np.diff(profiles[:, 0]) > 0)

    def test_origin_excluded(self):
        domain = GridDomain(nx=4, ny=1, nz=4, two_dimensional=True)
        grid = np.ones(domain.result_shape(1))
        r, profiles = shell_average(grid, domain, n_bins=4)
        assert np.all(r > 0)
        np.testing.assert_allclose(profiles, 1.0)


class TestPlotStructureFunctions:
    def test_writes_figure(self, tmp_path):
        domain = GridDomain(nx=16, ny=1, nz=16, two_dimensional=True)
        orders = OrderRange(1, 3)
        grid = expected_structure_functions(domain, orders, scalar=True)
        out = tmp_path / "sf.png"
        fig = plot_structure_functions(grid, domain, orders, label="S_q", out_file=out)
        assert out.exists()
        assert len(fig.axes[0].lines) == 3


class TestSetupLogging:
    def test_rank_tag_and_quiet_workers(self):
        logger = setup_logging("DEBUG", rank=3)
        assert logger.name == "sfgrid"
        assert logger.level == logging.WARNING
        assert "[rank 3]" in logger.handlers[0].formatter._fmt

    def test_root_rank_keeps_level(self, tmp_path):
        log_file = tmp_path / "run.log"
        logger = setup_logging(logging.DEBUG, rank=0, log_file=str(log_file))
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
