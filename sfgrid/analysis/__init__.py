"""Run drivers and self-validation for grid structure functions.

Modules
-------
batch
    MPI-enabled command-line driver
validation
    Analytic test fields and comparison of computed grids against them
"""

from sfgrid.analysis.validation import (
    ValidationReport,
    generate_test_fields,
    expected_structure_functions,
    validate_results,
)
from sfgrid.analysis.batch import main as batch_analyze, run

__all__ = [
    "ValidationReport",
    "generate_test_fields",
    "expected_structure_functions",
    "validate_results",
    "batch_analyze",
    "run",
]
