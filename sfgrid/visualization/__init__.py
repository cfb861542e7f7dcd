"""Visualization tools for structure-function grids.

Modules
-------
plots
    Shell-averaged log-log plots of the computed orders
"""

from sfgrid.visualization.plots import plot_structure_functions, shell_average

__all__ = [
    "plot_structure_functions",
    "shell_average",
]
