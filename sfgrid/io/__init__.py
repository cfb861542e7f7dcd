"""Input/output utilities for sfgrid.

This subpackage reads field components and writes the assembled
structure-function grids, one file per grid and order.

Modules
-------
grid_io
    Loading field archives and saving/loading result grids
"""

from sfgrid.io.grid_io import load_fields, save_result_grids, load_result_grid

__all__ = [
    "load_fields",
    "save_result_grids",
    "load_result_grid",
]
