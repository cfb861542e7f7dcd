"""Per-displacement moment kernels.

For one displacement index the field difference is formed on the overlap
sub-lattice (every point whose shifted partner stays inside the grid) and the
mean of its q-th power is returned for all requested orders at once. Vector
differences are split into a longitudinal part, the projection onto the unit
displacement, and a transverse part, the magnitude of what remains.

Two interchangeable backends exist:

``numba``
    Fused, compiled loops; no temporary difference arrays.
``numpy``
    Slice arithmetic on whole arrays; simple and used as a reference.

Powers follow the real ``pow`` semantics of the platform: a negative base
with a non-integral exponent yields NaN and zero to a negative power yields
inf. The zero displacement must never reach these kernels.
"""
from __future__ import annotations

from typing import Dict, Sequence, Tuple

import numpy as np
from numba import njit

__all__ = [
    "LONGITUDINAL",
    "TRANSVERSE",
    "SCALAR",
    "BACKENDS",
    "overlap_difference",
    "vector_increments",
    "vector_moments_3d",
    "vector_moments_2d",
    "scalar_moments_3d",
    "scalar_moments_2d",
    "compute_moments",
]

LONGITUDINAL = "longitudinal"
TRANSVERSE = "transverse"
SCALAR = "scalar"

BACKENDS = ("numba", "numpy")


# -----------------------------------------------------------------------------
# Numba kernels ----------------------------------------------------------------
# -----------------------------------------------------------------------------

@njit(cache=True, error_model="numpy")
def vector_moments_3d(ux, uy, uz, x, y, z, lx, ly, lz, orders, with_transverse):
    """Longitudinal and transverse moments of a 3-D vector field."""
    nx, ny, nz = ux.shape
    n_orders = orders.shape[0]
    s_pll = np.zeros(n_orders)
    s_perp = np.zeros(n_orders)
    r = np.sqrt(lx * lx + ly * ly + lz * lz)

    for i in range(nx - x):
        for j in range(ny - y):
            for k in range(nz - z):
                dux = ux[i + x, j + y, k + z] - ux[i, j, k]
                duy = uy[i + x, j + y, k + z] - uy[i, j, k]
                duz = uz[i + x, j + y, k + z] - uz[i, j, k]
                dpll = (lx * dux + ly * duy + lz * duz) / r
                for p in range(n_orders):
                    s_pll[p] += dpll ** orders[p]
                if with_transverse:
                    tx = dux - dpll * lx / r
                    ty = duy - dpll * ly / r
                    tz = duz - dpll * lz / r
                    dperp = (tx * tx + ty * ty + tz * tz) ** 0.5
                    for p in range(n_orders):
                        s_perp[p] += dperp ** orders[p]

    count = (nx - x) * (ny - y) * (nz - z)
    return s_pll / count, s_perp / count


@njit(cache=True, error_model="numpy")
def vector_moments_2d(ux, uz, x, z, lx, lz, orders, with_transverse):
    """Longitudinal and transverse moments of a 2-D (x-z) vector field."""
    nx, nz = ux.shape
    n_orders = orders.shape[0]
    s_pll = np.zeros(n_orders)
    s_perp = np.zeros(n_orders)
    r = np.sqrt(lx * lx + lz * lz)

    for i in range(nx - x):
        for k in range(nz - z):
            dux = ux[i + x, k + z] - ux[i, k]
            duz = uz[i + x, k + z] - uz[i, k]
            dpll = (lx * dux + lz * duz) / r
            for p in range(n_orders):
                s_pll[p] += dpll ** orders[p]
            if with_transverse:
                tx = dux - dpll * lx / r
                tz = duz - dpll * lz / r
                dperp = (tx * tx + tz * tz) ** 0.5
                for p in range(n_orders):
                    s_perp[p] += dperp ** orders[p]

    count = (nx - x) * (nz - z)
    return s_pll / count, s_perp / count


@njit(cache=True, error_model="numpy")
def scalar_moments_3d(t, x, y, z, orders):
    nx, ny, nz = t.shape
    n_orders = orders.shape[0]
    s = np.zeros(n_orders)
    for i in range(nx - x):
        for j in range(ny - y):
            for k in range(nz - z):
                dt = t[i + x, j + y, k + z] - t[i, j, k]
                for p in range(n_orders):
                    s[p] += dt ** orders[p]
    return s / ((nx - x) * (ny - y) * (nz - z))


@njit(cache=True, error_model="numpy")
def scalar_moments_2d(t, x, z, orders):
    nx, nz = t.shape
    n_orders = orders.shape[0]
    s = np.zeros(n_orders)
    for i in range(nx - x):
        for k in range(nz - z):
            dt = t[i + x, k + z] - t[i, k]
            for p in range(n_orders):
                s[p] += dt ** orders[p]
    return s / ((nx - x) * (nz - z))


# -----------------------------------------------------------------------------
# NumPy reference --------------------------------------------------------------
# -----------------------------------------------------------------------------

def overlap_difference(field: np.ndarray, index: Sequence[int]) -> np.ndarray:
    """Return ``field[r + index] - field[r]`` over the overlap sub-lattice."""
    shifted = tuple(slice(i, None) for i in index)
    base = tuple(slice(0, n - i) for n, i in zip(field.shape, index))
    return field[shifted] - field[base]


def vector_increments(
    components: Sequence[np.ndarray],
    index: Sequence[int],
    offsets: Sequence[float],
) -> Tuple[np.ndarray, np.ndarray]:
    """Point-wise longitudinal and transverse increments for one displacement.

    Parameters
    ----------
    components : sequence of np.ndarray
        Vector components, one array per axis, all of the same shape.
    index : sequence of int
        Displacement index; must not be all zeros.
    offsets : sequence of float
        Physical displacement ``l`` matching *index*.

    Returns
    -------
    tuple[np.ndarray, np.ndarray]
        ``(longitudinal, transverse)`` arrays over the overlap sub-lattice.
        ``longitudinal**2 + transverse**2`` equals the squared magnitude of
        the full difference.
    """
    diffs = [overlap_difference(u, index) for u in components]
    r = np.sqrt(sum(l * l for l in offsets))
    dpll = sum(l * du for l, du in zip(offsets, diffs)) / r
    residual_sq = sum((du - dpll * l / r) ** 2 for l, du in zip(offsets, diffs))
    return dpll, np.sqrt(residual_sq)


def _power_means(values: np.ndarray, orders: np.ndarray) -> np.ndarray:
    count = values.size
    return np.array([np.sum(np.power(values, q)) / count for q in orders])


# -----------------------------------------------------------------------------
# Dispatcher -------------------------------------------------------------------
# -----------------------------------------------------------------------------

def compute_moments(
    components: Sequence[np.ndarray],
    index: Tuple[int, ...],
    offsets: Tuple[float, ...],
    orders: np.ndarray,
    *,
    scalar: bool,
    with_transverse: bool = True,
    backend: str = "numba",
) -> Dict[str, np.ndarray]:
    """Structure-function values of all *orders* for one displacement.

    Parameters
    ----------
    components : sequence of np.ndarray
        One scalar field, or 2 (2-D) / 3 (3-D) vector components. Arrays must
        be C-contiguous float64 for the ``numba`` backend.
    index : tuple of int
        Displacement index, not all zeros.
    offsets : tuple of float
        Physical displacement for *index*.
    orders : np.ndarray
        Float array of orders.
    scalar : bool
        Treat *components* as a single scalar field.
    with_transverse : bool, optional
        Also reduce the transverse component (vector fields only).
    backend : {"numba", "numpy"}
        Kernel implementation.

    Returns
    -------
    dict[str, np.ndarray]
        ``{"scalar": ...}`` or ``{"longitudinal": ..., ["transverse": ...]}``,
        each an array of length ``len(orders)``.
    """
    if backend not in BACKENDS:
        raise ValueError(f"Unknown backend '{backend}', expected one of {BACKENDS}")

    if scalar:
        (field,) = components
        if backend == "numpy":
            values = _power_means(overlap_difference(field, index), orders)
        elif field.ndim == 3:
            values = scalar_moments_3d(field, index[0], index[1], index[2], orders)
        else:
            values = scalar_moments_2d(field, index[0], index[1], orders)
        return {SCALAR: values}

    if backend == "numpy":
        dpll, dperp = vector_increments(components, index, offsets)
        result = {LONGITUDINAL: _power_means(dpll, orders)}
        if with_transverse:
            result[TRANSVERSE] = _power_means(dperp, orders)
        return result

    if len(components) == 3:
        ux, uy, uz = components
        s_pll, s_perp = vector_moments_3d(
            ux, uy, uz, index[0], index[1], index[2],
            offsets[0], offsets[1], offsets[2], orders, with_transverse,
        )
    else:
        ux, uz = components
        s_pll, s_perp = vector_moments_2d(
            ux, uz, index[0], index[1], offsets[0], offsets[1], orders, with_transverse,
        )

    result = {LONGITUDINAL: s_pll}
    if with_transverse:
        result[TRANSVERSE] = s_perp
    return result
