"""Distributed structure-function computation.

:class:`StructureFunctionContext` owns everything a run needs (fields,
domain, process topology, orders) and drives the three stages:

1. every rank builds the full displacement-to-rank table,
2. each rank evaluates the moment kernel for its own displacements,
3. the records are gathered onto the coordinating rank and scattered into
   the result grids.

Without a communicator all ranks of the topology are emulated one after
another in the calling process, which yields exactly the grids a real
``P``-rank run would produce.
"""
from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional, Tuple

import numpy as np

from sfgrid.core.assembly import (
    GATHER_MODES,
    CollectiveAssembler,
    LocalResults,
    ResultGrids,
    allocate_result_grids,
    force_zero_origin,
    scatter_records,
)
from sfgrid.core.domain import GridDomain, OrderRange
from sfgrid.core.moments import BACKENDS, LONGITUDINAL, SCALAR, TRANSVERSE, compute_moments
from sfgrid.core.partition import (
    PartitionError,
    build_index_table,
    check_partition,
    iter_local_displacements,
)
from sfgrid.core.topology import ProcessTopology

logger = logging.getLogger(__name__)

__all__ = [
    "required_field_names",
    "StructureFunctionContext",
]


def required_field_names(*, scalar: bool, two_dimensional: bool) -> Tuple[str, ...]:
    """Keys the *fields* mapping must provide for a run."""
    if scalar:
        return ("theta",)
    if two_dimensional:
        return ("v_x", "v_z")
    return ("v_x", "v_y", "v_z")


class StructureFunctionContext:
    """State and driver of one structure-function run.

    Parameters
    ----------
    fields : dict[str, np.ndarray]
        ``"theta"`` for scalar runs, otherwise ``"v_x"``, ``"v_z"`` (2-D) and
        ``"v_y"`` (3-D). Arrays are read only.
    domain : GridDomain
        Grid sizes and lengths.
    topology : ProcessTopology
        Process grid; ``n_procs`` must match the communicator size.
    orders : OrderRange
        Orders ``[q1, q2]``.
    scalar : bool, optional
        Scalar instead of vector structure functions.
    longitudinal_only : bool, optional
        Skip the transverse component of vector runs.
    comm : mpi4py communicator, optional
        When ``None`` the run is emulated in-process for all ranks.
    gather_mode : {"batched", "per_round"}
        One gather per rank at the end, or one gather per
        (displacement, order) round.
    backend : {"numba", "numpy"}
        Moment kernel implementation.
    root : int, optional
        Coordinating rank.

    Raises
    ------
    ValueError
        On missing field components, mismatched shapes or unknown options.
    PartitionError
        If the process grid cannot partition the displacement lattice.
    """

    def __init__(
        self,
        fields: Dict[str, np.ndarray],
        domain: GridDomain,
        topology: ProcessTopology,
        orders: OrderRange,
        *,
        scalar: bool = False,
        longitudinal_only: bool = False,
        comm=None,  # noqa: ANN001
        gather_mode: str = "batched",
        backend: str = "numba",
        root: int = 0,
    ) -> None:
        if gather_mode not in GATHER_MODES:
            raise ValueError(f"Unknown gather_mode '{gather_mode}', expected one of {GATHER_MODES}")
        if backend not in BACKENDS:
            raise ValueError(f"Unknown backend '{backend}', expected one of {BACKENDS}")

        required = required_field_names(scalar=scalar, two_dimensional=domain.two_dimensional)
        missing = set(required) - fields.keys()
        if missing:
            raise ValueError(f"StructureFunctionContext missing fields: {sorted(missing)}")
        for name in required:
            shape = np.shape(fields[name])
            if shape != domain.field_shape:
                raise ValueError(
                    f"Field '{name}' has shape {shape}, expected {domain.field_shape} for this grid"
                )

        self.domain = domain
        self.topology = topology
        self.orders = orders
        self.scalar = scalar
        self.longitudinal_only = longitudinal_only
        self.comm = comm
        self.gather_mode = gather_mode
        self.backend = backend
        self.root = root
        self.components = tuple(
            np.ascontiguousarray(fields[name], dtype=np.float64) for name in required
        )

        n1, n2 = domain.partitioned_sizes
        if topology.px <= 0 or topology.n_procs % topology.px != 0:
            raise PartitionError(
                f"px ({topology.px}) must divide the number of processes ({topology.n_procs})"
            )
        check_partition(n1 // 2, topology.px, axis_name="x")
        check_partition(n2 // 2, topology.py, axis_name="z" if domain.two_dimensional else "y")
        self.index_table = build_index_table(n1, n2, topology)
        self.elapsed: Optional[float] = None

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    @property
    def grid_names(self) -> Tuple[str, ...]:
        if self.scalar:
            return (SCALAR,)
        if self.longitudinal_only:
            return (LONGITUDINAL,)
        return (LONGITUDINAL, TRANSVERSE)

    @property
    def description(self) -> str:
        if self.scalar:
            kind = "scalar"
        elif self.longitudinal_only:
            kind = "longitudinal"
        else:
            kind = "longitudinal and transverse"
        axes = "lx, lz" if self.domain.two_dimensional else "lx, ly, lz"
        field = "scalar" if self.scalar else "velocity"
        return f"{kind} S({axes}) using {self.domain.ndim}D {field} field data"

    def local_displacements(self, rank: int) -> List[Tuple[int, ...]]:
        """Displacement indices evaluated by *rank*, in processing order."""
        return list(
            iter_local_displacements(
                self.index_table,
                rank,
                self.domain.swept_half_extent,
                self.domain.two_dimensional,
            )
        )

    # ------------------------------------------------------------------
    # Computation
    # ------------------------------------------------------------------

    def moments(self, index: Tuple[int, ...]) -> Dict[str, np.ndarray]:
        """All orders for one displacement; zeros for the zero displacement."""
        if not any(index):
            return {name: np.zeros(self.orders.n_orders) for name in self.grid_names}
        return compute_moments(
            self.components,
            index,
            self.domain.offsets(index),
            self.orders.orders,
            scalar=self.scalar,
            with_transverse=not self.longitudinal_only,
            backend=self.backend,
        )

    def compute_local(self, rank: int) -> LocalResults:
        """Evaluate every displacement owned by *rank*."""
        local = LocalResults(names=self.grid_names)
        for index in self.local_displacements(rank):
            local.extend(index, self.moments(index))
        return local

    def run(self) -> Optional[ResultGrids]:
        """Compute and assemble the structure functions.

        Returns
        -------
        ResultGrids or None
            The assembled grids on the coordinating rank, ``None`` elsewhere.
        """
        start = time.perf_counter()
        if self.comm is None:
            logger.info("Computing %s (%d emulated ranks)", self.description, self.topology.n_procs)
            grids = self._run_emulated()
        else:
            grids = self._run_distributed()
        self.elapsed = time.perf_counter() - start
        if grids is not None:
            logger.info("Structure functions computed in %.3f s", self.elapsed)
        return grids

    def _run_emulated(self) -> ResultGrids:
        grids = self._allocate()
        for rank in self.topology:
            scatter_records(grids, self.compute_local(rank).records())
        force_zero_origin(grids)
        return grids

    def _run_distributed(self) -> Optional[ResultGrids]:
        rank = self.comm.Get_rank()
        size = self.comm.Get_size()
        if size != self.topology.n_procs:
            raise ValueError(
                f"Communicator has {size} ranks but the process grid expects {self.topology.n_procs}"
            )
        if rank == self.root:
            logger.info("Computing %s on %d ranks", self.description, size)

        grids = self._allocate() if rank == self.root else None
        assembler = CollectiveAssembler(self.comm, grids, root=self.root)

        if self.gather_mode == "per_round":
            for index in self.local_displacements(rank):
                values = self.moments(index)
                for p in range(self.orders.n_orders):
                    assembler.gather_round(index, p, {name: values[name][p] for name in self.grid_names})
        else:
            assembler.gather_batched(self.compute_local(rank))

        return assembler.finalize()

    def _allocate(self) -> ResultGrids:
        return allocate_result_grids(
            self.domain,
            self.orders.n_orders,
            scalar=self.scalar,
            longitudinal_only=self.longitudinal_only,
        )
