"""Grid and domain bookkeeping for structure-function runs.

The structure functions are evaluated on the non-negative half of the
displacement lattice only, so every quantity here is expressed in terms of
the *half extent* ``N // 2`` of each axis.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

import numpy as np

__all__ = [
    "GridDomain",
    "OrderRange",
    "grid_spacing",
]


def grid_spacing(n_points: int, length: float) -> float:
    """Return ``length / (n_points - 1)``, or 0 for a degenerate axis."""
    if n_points == 1:
        return 0.0
    return length / float(n_points - 1)


@dataclass(frozen=True)
class OrderRange:
    """Inclusive range of structure-function orders ``[q1, q2]``."""

    q1: int
    q2: int

    def __post_init__(self) -> None:
        if self.q2 < self.q1:
            raise ValueError(f"q2 ({self.q2}) must not be smaller than q1 ({self.q1})")

    @property
    def n_orders(self) -> int:
        return self.q2 - self.q1 + 1

    @property
    def orders(self) -> np.ndarray:
        """Orders as a float array, ready for real-power evaluation."""
        return np.arange(self.q1, self.q2 + 1, dtype=np.float64)

    def order_of(self, order_idx: int) -> int:
        return self.q1 + order_idx


@dataclass(frozen=True)
class GridDomain:
    """Grid sizes, physical extents and derived displacement geometry.

    Parameters
    ----------
    nx, ny, nz : int
        Number of grid points per axis. For two-dimensional runs the field
        lives in the x-z plane and ``ny`` is ignored.
    lx, ly, lz : float
        Physical domain lengths.
    two_dimensional : bool
        Whether the fields are 2-D arrays of shape ``(nx, nz)``.

    Notes
    -----
    The first two entries of :attr:`partitioned_sizes` are the axes that are
    split across processes. In 3-D the z axis is swept locally by every rank.
    """

    nx: int
    ny: int
    nz: int
    lx: float = 1.0
    ly: float = 1.0
    lz: float = 1.0
    two_dimensional: bool = False

    @property
    def dx(self) -> float:
        return grid_spacing(self.nx, self.lx)

    @property
    def dy(self) -> float:
        return grid_spacing(self.ny, self.ly)

    @property
    def dz(self) -> float:
        return grid_spacing(self.nz, self.lz)

    @property
    def ndim(self) -> int:
        return 2 if self.two_dimensional else 3

    @property
    def field_shape(self) -> Tuple[int, ...]:
        if self.two_dimensional:
            return (self.nx, self.nz)
        return (self.nx, self.ny, self.nz)

    @property
    def spacing(self) -> Tuple[float, ...]:
        if self.two_dimensional:
            return (self.dx, self.dz)
        return (self.dx, self.dy, self.dz)

    @property
    def half_extents(self) -> Tuple[int, ...]:
        """Number of valid displacement indices along each field axis."""
        return tuple(n // 2 for n in self.field_shape)

    @property
    def partitioned_sizes(self) -> Tuple[int, int]:
        """Full grid sizes of the two axes distributed over processes."""
        if self.two_dimensional:
            return (self.nx, self.nz)
        return (self.nx, self.ny)

    @property
    def swept_half_extent(self) -> int:
        """Half extent of the locally swept axis (1 when there is none)."""
        if self.two_dimensional:
            return 1
        return self.nz // 2

    def result_shape(self, n_orders: int) -> Tuple[int, ...]:
        return self.half_extents + (n_orders,)

    def offsets(self, index: Tuple[int, ...]) -> Tuple[float, ...]:
        """Physical displacement ``l = i * d`` for a displacement index."""
        return tuple(i * d for i, d in zip(index, self.spacing))

    def overlap_count(self, index: Tuple[int, ...]) -> int:
        """Number of point pairs that stay inside the grid for *index*."""
        count = 1
        for n, i in zip(self.field_shape, index):
            count *= n - i
        return count
