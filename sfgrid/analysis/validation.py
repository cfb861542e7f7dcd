"""Analytic test fields and validation of computed structure functions.

For the linear fields generated here every point-wise increment equals the
displacement itself, so the structure functions are known in closed form:

* vector ``u = (x, y, z)``: longitudinal ``|l|**q``, transverse 0;
* scalar ``theta = x + y + z``: ``(lx + ly + lz)**q``.

The two-dimensional variants drop the y axis.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict

import numpy as np

from sfgrid.core.assembly import ResultGrids
from sfgrid.core.domain import GridDomain, OrderRange
from sfgrid.core.moments import LONGITUDINAL, SCALAR, TRANSVERSE

logger = logging.getLogger(__name__)

__all__ = [
    "ValidationReport",
    "generate_test_fields",
    "expected_structure_functions",
    "expected_transverse",
    "validate_results",
]

EPSILON = 1e-10


@dataclass(frozen=True)
class ValidationReport:
    """Outcome of comparing computed grids with the analytic solution."""

    case: str
    max_error: float
    passed: bool


def _coordinates(domain: GridDomain) -> tuple:
    axes = [np.arange(n) * d for n, d in zip(domain.field_shape, domain.spacing)]
    return np.meshgrid(*axes, indexing="ij")


def generate_test_fields(domain: GridDomain, *, scalar: bool) -> Dict[str, np.ndarray]:
    """Return the linear analytic fields for *domain*."""
    coords = _coordinates(domain)
    if scalar:
        logger.info("Generating the scalar field: T = %s", " + ".join("xyz" if domain.ndim == 3 else "xz"))
        return {"theta": sum(coords)}
    if domain.two_dimensional:
        logger.info("Generating the 2D velocity field: U = [x, z]")
        return {"v_x": coords[0], "v_z": coords[1]}
    logger.info("Generating the 3D velocity field: U = [x, y, z]")
    return {"v_x": coords[0], "v_y": coords[1], "v_z": coords[2]}


def expected_structure_functions(
    domain: GridDomain,
    orders: OrderRange,
    *,
    scalar: bool,
) -> np.ndarray:
    """Analytic values of shape ``half_extents + (n_orders,)``.

    For vector fields this is the longitudinal solution. The zero
    displacement is 0 for every order, as in the computed grids.
    """
    axes = [np.arange(h) * d for h, d in zip(domain.half_extents, domain.spacing)]
    offsets = np.meshgrid(*axes, indexing="ij")
    if scalar:
        base = sum(offsets)
        exponents = orders.orders
    else:
        base = sum(l * l for l in offsets)
        exponents = orders.orders / 2.0
    with np.errstate(divide="ignore"):
        expected = np.stack([base ** q for q in exponents], axis=-1)
    expected[(0,) * domain.ndim] = 0.0
    return expected


def expected_transverse(domain: GridDomain, orders: OrderRange) -> np.ndarray:
    """Transverse solution of the vector test field.

    The transverse increment vanishes, so every order is 0 except ``q = 0``,
    where ``0**0`` is 1. Negative orders have no finite solution and are
    returned as NaN.
    """
    expected = np.zeros(domain.result_shape(orders.n_orders))
    expected[..., orders.orders == 0] = 1.0
    expected[..., orders.orders < 0] = np.nan
    expected[(0,) * domain.ndim] = 0.0
    return expected


def _max_relative_error(computed: np.ndarray, expected: np.ndarray, epsilon: float) -> float:
    scale = np.abs(expected)
    err = np.where(
        scale > epsilon,
        np.abs(computed - expected) / np.where(scale > epsilon, scale, 1.0),
        np.abs(computed),
    )
    return float(np.max(err)) if err.size else 0.0


def validate_results(
    grids: ResultGrids,
    domain: GridDomain,
    orders: OrderRange,
    *,
    scalar: bool,
    epsilon: float = EPSILON,
) -> ValidationReport:
    """Compare computed grids with the analytic solution of the test fields.

    The error is relative where the analytic value exceeds *epsilon* and
    absolute elsewhere. The transverse grid is 0 apart from ``q = 0``, where
    every displacement but the origin holds 1; negative transverse orders
    are skipped.

    Returns
    -------
    ValidationReport
        ``passed`` is True when the maximum error does not exceed *epsilon*.
    """
    expected = expected_structure_functions(domain, orders, scalar=scalar)
    if scalar:
        case = f"SCALAR_{domain.ndim}D"
        max_error = _max_relative_error(grids[SCALAR], expected, epsilon)
    else:
        case = f"VECTOR_{domain.ndim}D"
        max_error = _max_relative_error(grids[LONGITUDINAL], expected, epsilon)
        if TRANSVERSE in grids:
            finite = orders.orders >= 0
            if not np.all(finite):
                logger.warning(
                    "%s: transverse orders below 0 have no finite analytic value and are not checked",
                    case,
                )
            transverse = expected_transverse(domain, orders)
            max_error = max(
                max_error,
                _max_relative_error(grids[TRANSVERSE][..., finite], transverse[..., finite], epsilon),
            )

    passed = max_error <= epsilon
    if passed:
        logger.info(
            "%s: TEST_PASSED. The computed structure functions match the analytic values "
            "(maximum error %.3e)", case, max_error,
        )
    else:
        logger.error(
            "%s: TEST_FAILED. The computed structure functions do NOT match the analytic values "
            "(maximum error %.3e)", case, max_error,
        )
    return ValidationReport(case=case, max_error=max_error, passed=passed)
