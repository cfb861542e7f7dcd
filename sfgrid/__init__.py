"""sfgrid: distributed structure functions of gridded fields.

Computes velocity (longitudinal and transverse) and scalar structure
functions of orders ``q1 ... q2`` for every displacement vector on the
non-negative half of the grid lattice. The displacement lattice is split
across MPI ranks by a load-balancing mirror ladder and the per-rank results
are gathered onto rank 0.

Subpackages
-----------
core
    Domain bookkeeping, partitioning, moment kernels and assembly
analysis
    Command-line driver and analytic self-validation
io
    Field archives and result grids
visualization
    Plotting tools
utils
    CLI parsing, YAML configuration and logging

Examples
--------
In-process run on analytic test fields:

    from sfgrid import GridDomain, OrderRange, ProcessTopology, StructureFunctionContext
    from sfgrid.analysis import generate_test_fields

    domain = GridDomain(16, 16, 16)
    fields = generate_test_fields(domain, scalar=False)
    ctx = StructureFunctionContext(fields, domain, ProcessTopology(4, px=2), OrderRange(2, 4))
    grids = ctx.run()

With MPI:

    mpirun -n 4 python -m sfgrid.analysis.batch --input fields.npz -X 64 -Y 64 -Z 64 -p 2
"""

__version__ = "1.0.0"
__author__ = "sfgrid Development Team"

from sfgrid.core import (
    GridDomain,
    OrderRange,
    ProcessTopology,
    PartitionError,
    ResultGrids,
    StructureFunctionContext,
)
from sfgrid.io import load_fields, save_result_grids

__all__ = [
    "GridDomain",
    "OrderRange",
    "ProcessTopology",
    "PartitionError",
    "ResultGrids",
    "StructureFunctionContext",
    "load_fields",
    "save_result_grids",
]
