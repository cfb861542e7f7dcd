"""Core computational modules for grid structure functions.

This subpackage contains the distributed computation engine: domain and
process-grid bookkeeping, the cost-balanced work partitioner, the
Numba-accelerated moment kernels and the collective assembly of results.

Modules
-------
domain
    Grid sizes, spacing, half extents and order ranges
topology
    Linear rank <-> 2-D process-grid coordinates
partition
    Cost-balanced displacement partitioning and the per-rank index table
moments
    Per-displacement moment kernels (Numba and NumPy backends)
assembly
    Result grids and the gather onto the coordinating rank
engine
    The per-run computation context tying everything together
"""

from sfgrid.core.domain import GridDomain, OrderRange, grid_spacing
from sfgrid.core.topology import ProcessTopology
from sfgrid.core.partition import (
    PartitionError,
    check_partition,
    compute_index_list,
    build_index_table,
)
from sfgrid.core.moments import (
    LONGITUDINAL,
    TRANSVERSE,
    SCALAR,
    compute_moments,
    vector_increments,
)
from sfgrid.core.assembly import (
    ResultGrids,
    LocalResults,
    CollectiveAssembler,
    allocate_result_grids,
)
from sfgrid.core.engine import StructureFunctionContext, required_field_names

__all__ = [
    # Domain
    "GridDomain",
    "OrderRange",
    "grid_spacing",
    "ProcessTopology",
    # Partitioning
    "PartitionError",
    "check_partition",
    "compute_index_list",
    "build_index_table",
    # Kernels
    "LONGITUDINAL",
    "TRANSVERSE",
    "SCALAR",
    "compute_moments",
    "vector_increments",
    # Assembly
    "ResultGrids",
    "LocalResults",
    "CollectiveAssembler",
    "allocate_result_grids",
    # Engine
    "StructureFunctionContext",
    "required_field_names",
]
