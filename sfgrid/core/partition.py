"""Cost-balanced static partitioning of the displacement lattice.

The cost of a displacement falls off with its magnitude (the overlap region
shrinks), so each rank receives a "ladder" of small indices paired with their
mirrors about ``H/2``. Every rank builds the table for *all* ranks; the table
is tiny compared to the fields.
"""
from __future__ import annotations

import logging
from typing import Iterator, Tuple

import numpy as np

from sfgrid.core.topology import ProcessTopology

logger = logging.getLogger(__name__)

__all__ = [
    "PartitionError",
    "check_partition",
    "compute_index_list",
    "build_index_table",
    "local_pairs",
    "iter_local_displacements",
]


class PartitionError(ValueError):
    """Raised when a process count cannot partition an axis."""


def check_partition(half_extent: int, n_procs: int, axis_name: str = "axis") -> None:
    """Reject (half_extent, n_procs) pairs the partitioner cannot serve.

    Parameters
    ----------
    half_extent : int
        Number of displacement indices along the axis (``N // 2``).
    n_procs : int
        Number of processes along the axis.
    axis_name : str, optional
        Used in the error message.

    Raises
    ------
    PartitionError
        If ``n_procs`` does not divide ``half_extent``, or if the share per
        process is odd while ``n_procs != half_extent``.
    """
    if n_procs <= 0:
        raise PartitionError(f"number of processes along {axis_name} must be positive, got {n_procs}")
    if half_extent <= 0:
        raise PartitionError(f"{axis_name} has no displacements to distribute (N/2 = {half_extent})")
    if half_extent % n_procs != 0:
        raise PartitionError(
            f"{n_procs} processes along {axis_name} do not divide N/2 = {half_extent}; "
            "use a power of two not larger than N/2"
        )
    share = half_extent // n_procs
    if n_procs != half_extent and share % 2 != 0:
        raise PartitionError(
            f"{n_procs} processes along {axis_name} leave an odd share of {share} "
            f"indices out of N/2 = {half_extent}; mirror pairing needs an even share"
        )


def compute_index_list(half_extent: int, n_procs: int, rank: int) -> np.ndarray:
    """Return the indices along one axis owned by *rank*.

    Slot ``i`` (even) holds ``rank + i * n_procs`` and slot ``i + 1`` its
    mirror ``half_extent - 1 - (rank + i * n_procs)``. With one index per
    process there is nothing to mirror.
    """
    list_size = half_extent // n_procs
    index_list = np.empty(list_size, dtype=np.int64)
    for i in range(0, list_size, 2):
        index_list[i] = rank + i * n_procs
        if n_procs != half_extent:
            index_list[i + 1] = half_extent - 1 - index_list[i]
    return index_list


def build_index_table(n1: int, n2: int, topology: ProcessTopology) -> np.ndarray:
    """Build the (axis1, axis2) index pairs of every rank.

    Parameters
    ----------
    n1, n2 : int
        Full grid sizes of the two partitioned axes.
    topology : ProcessTopology
        ``px`` ranks along axis 1, ``py`` along axis 2.

    Returns
    -------
    np.ndarray
        Integer array of shape ``(pairs_per_rank, 2, n_procs)``; row
        ``ny * i + j`` of rank ``r`` holds ``(x_list[i], y_list[j])``.
    """
    h1, h2 = n1 // 2, n2 // 2
    nx_local = h1 // topology.px
    ny_local = h2 // topology.py
    pairs_per_rank = nx_local * ny_local

    index_table = np.empty((pairs_per_rank, 2, topology.n_procs), dtype=np.int64)
    for rank_id in topology:
        rank_x, rank_y = topology.coords(rank_id)
        x_list = compute_index_list(h1, topology.px, rank_x)
        y_list = compute_index_list(h2, topology.py, rank_y)
        for i in range(nx_local):
            rows = slice(ny_local * i, ny_local * (i + 1))
            index_table[rows, 0, rank_id] = x_list[i]
            index_table[rows, 1, rank_id] = y_list

    logger.debug(
        "Index table: %d pairs per rank over a %dx%d process grid",
        pairs_per_rank, topology.px, topology.py,
    )
    return index_table


def local_pairs(index_table: np.ndarray, rank: int) -> np.ndarray:
    """Return the ``(pairs_per_rank, 2)`` slice owned by *rank*."""
    return index_table[:, :, rank]


def iter_local_displacements(
    index_table: np.ndarray,
    rank: int,
    swept_half_extent: int,
    two_dimensional: bool,
) -> Iterator[Tuple[int, ...]]:
    """Yield the full displacement indices processed by *rank*, in order.

    In 3-D every owned ``(x, y)`` pair is followed by a sweep of the whole
    ``z`` half range.
    """
    for a, b in local_pairs(index_table, rank):
        if two_dimensional:
            yield (int(a), int(b))
        else:
            for c in range(swept_half_extent):
                yield (int(a), int(b), c)
