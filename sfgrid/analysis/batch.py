#!/usr/bin/env python3
"""MPI-capable driver for grid structure-function runs.

This module provides the main entry point: it reads the configuration,
sets up the process grid, loads (or generates) the fields, computes the
structure functions and writes the grids from the coordinating rank.

Usage:
    python -m sfgrid.analysis.batch --config sfgrid.yaml
    mpirun -n 8 python -m sfgrid.analysis.batch --input fields.npz -X 64 -Y 64 -Z 64 -p 2
    python -m sfgrid.analysis.batch --no-mpi -t true -X 16 -Y 16 -Z 16 -p 2
"""

from __future__ import annotations

import logging
import sys
import time
from typing import List, Optional, Tuple

from sfgrid.utils.cli import RunConfig, parse_cli
from sfgrid.utils.config import validate_config
from sfgrid.utils.log import setup_logging
from sfgrid.core.domain import GridDomain, OrderRange
from sfgrid.core.topology import ProcessTopology
from sfgrid.core.engine import StructureFunctionContext, required_field_names
from sfgrid.io.grid_io import load_fields, save_result_grids
from sfgrid.analysis.validation import generate_test_fields, validate_results

logger = logging.getLogger("sfgrid.batch")

__all__ = [
    "get_communicator",
    "build_domain",
    "log_parameters",
    "run",
    "main",
]


def get_communicator(use_mpi: bool):  # noqa: ANN201
    """Return ``(comm, n_procs, rank)``.

    ``comm`` is ``MPI.COMM_WORLD`` when *use_mpi* is set. Without MPI the
    communicator is ``None``, the run is emulated in-process and the number
    of emulated ranks is taken from the configuration instead.
    """
    if not use_mpi:
        return None, None, 0
    from mpi4py import MPI  # noqa: WPS433

    comm = MPI.COMM_WORLD
    return comm, comm.Get_size(), comm.Get_rank()


def build_domain(cfg: RunConfig) -> Tuple[GridDomain, OrderRange]:
    domain = GridDomain(
        nx=cfg.nx, ny=cfg.ny, nz=cfg.nz,
        lx=cfg.lx, ly=cfg.ly, lz=cfg.lz,
        two_dimensional=cfg.two_dimensional,
    )
    return domain, OrderRange(cfg.q1, cfg.q2)


def log_parameters(cfg: RunConfig, n_procs: int) -> None:
    """Report the run parameters, as the coordinating rank sees them."""
    logger.info("========================================")
    if cfg.test:
        logger.info("Running in test mode on generated analytic fields")
    if cfg.two_dimensional:
        logger.info("Nx = %d, Nz = %d", cfg.nx, cfg.nz)
        logger.info("Lx = %g, Lz = %g", cfg.lx, cfg.lz)
    else:
        logger.info("Nx = %d, Ny = %d, Nz = %d", cfg.nx, cfg.ny, cfg.nz)
        logger.info("Lx = %g, Ly = %g, Lz = %g", cfg.lx, cfg.ly, cfg.lz)
    logger.info("Orders q = %d ... %d", cfg.q1, cfg.q2)
    logger.info("Processes: %d total, %d along x, %d along the second axis", n_procs, cfg.px, n_procs // cfg.px)
    logger.info("Gather mode: %s, backend: %s", cfg.gather_mode, cfg.backend)
    logger.info("========================================")


def run(cfg: RunConfig, comm=None, n_procs: Optional[int] = None) -> int:  # noqa: ANN001
    """Execute one configured run and return the process exit status.

    Parameters
    ----------
    cfg : RunConfig
        Merged configuration.
    comm : mpi4py communicator, optional
        ``None`` emulates all ranks in-process.
    n_procs : int, optional
        Total process count. Defaults to the communicator size, or for
        emulated runs to ``cfg.n_procs`` and then ``cfg.px``.

    Returns
    -------
    int
        0 on success, 1 on invalid configuration, unreadable input or a
        failed self-test.
    """
    rank = comm.Get_rank() if comm is not None else 0
    if n_procs is None:
        n_procs = comm.Get_size() if comm is not None else (cfg.n_procs or cfg.px)
    is_root = rank == 0

    try:
        validate_config(cfg, n_procs)
    except ValueError as exc:
        if is_root:
            logger.error("Invalid configuration: %s", exc)
        return 1

    domain, orders = build_domain(cfg)
    topology = ProcessTopology(n_procs=n_procs, px=cfg.px)
    if is_root:
        log_parameters(cfg, n_procs)

    t0 = time.perf_counter()
    if cfg.test:
        fields = generate_test_fields(domain, scalar=cfg.scalar)
    else:
        names = {
            key: cfg.field_names[key]
            for key in required_field_names(scalar=cfg.scalar, two_dimensional=cfg.two_dimensional)
        }
        try:
            fields = load_fields(cfg.input_file, names, domain)
        except (FileNotFoundError, ValueError) as exc:
            if is_root:
                logger.error("Failed to read the input fields: %s", exc)
            return 1
    t_read = time.perf_counter() - t0

    ctx = StructureFunctionContext(
        fields,
        domain,
        topology,
        orders,
        scalar=cfg.scalar,
        longitudinal_only=cfg.longitudinal_only,
        comm=comm,
        gather_mode=cfg.gather_mode,
        backend=cfg.backend,
    )
    grids = ctx.run()
    if grids is None:
        return 0

    status = 0
    if cfg.test:
        report = validate_results(grids, domain, orders, scalar=cfg.scalar)
        status = 0 if report.passed else 1
    else:
        t0 = time.perf_counter()
        written = save_result_grids(grids, cfg.output_dir, orders, cfg.grid_names)
        logger.info("Wrote %d file(s) to %s in %.3f s", len(written), cfg.output_dir, time.perf_counter() - t0)

    logger.info("Time to read the fields: %.3f s", t_read)
    logger.info("Time to compute the structure functions: %.3f s", ctx.elapsed)
    return status


def main(argv: Optional[List[str]] = None) -> None:
    """Command-line entry point.

    Parses options, connects to MPI (unless ``--no-mpi``), configures
    per-rank logging and runs. Exits with a non-zero status on invalid
    configuration or a failed self-test.
    """
    cfg = parse_cli(argv)
    comm, n_procs, rank = get_communicator(cfg.use_mpi)
    try:
        setup_logging(cfg.log_level, rank=rank)
    except ValueError as exc:
        if rank == 0:
            print(f"[sfgrid.batch] Invalid configuration: {exc}", file=sys.stderr)
        sys.exit(1)

    status = run(cfg, comm=comm, n_procs=n_procs)
    if status:
        sys.exit(status)


if __name__ == "__main__":
    main()
