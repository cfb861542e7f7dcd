"""Gathering per-rank results into the full structure-function grids.

Every record carries the displacement index and order index it belongs to,
so the coordinator writes cells by key and the assembled grid does not
depend on the order in which ranks land in the gather buffer.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from sfgrid.core.domain import GridDomain
from sfgrid.core.moments import LONGITUDINAL, SCALAR, TRANSVERSE

logger = logging.getLogger(__name__)

__all__ = [
    "GATHER_MODES",
    "ResultGrids",
    "LocalResults",
    "allocate_result_grids",
    "scatter_records",
    "force_zero_origin",
    "CollectiveAssembler",
]

GATHER_MODES = ("batched", "per_round")


@dataclass
class ResultGrids:
    """Assembled structure-function grids, owned by the coordinating rank.

    Attributes
    ----------
    grids : dict[str, np.ndarray]
        Maps ``"longitudinal"``, ``"transverse"`` or ``"scalar"`` to an array
        of shape ``half_extents + (n_orders,)``.
    writes : np.ndarray
        Number of times each (displacement, order) cell was written.
    """

    grids: Dict[str, np.ndarray]
    writes: np.ndarray

    def __getitem__(self, name: str) -> np.ndarray:
        return self.grids[name]

    def __contains__(self, name: str) -> bool:
        return name in self.grids

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self.grids)

    @property
    def longitudinal(self) -> Optional[np.ndarray]:
        return self.grids.get(LONGITUDINAL)

    @property
    def transverse(self) -> Optional[np.ndarray]:
        return self.grids.get(TRANSVERSE)

    @property
    def scalar(self) -> Optional[np.ndarray]:
        return self.grids.get(SCALAR)


def allocate_result_grids(
    domain: GridDomain,
    n_orders: int,
    *,
    scalar: bool,
    longitudinal_only: bool = False,
) -> ResultGrids:
    """Return zero-initialised grids for the requested kind of run."""
    shape = domain.result_shape(n_orders)
    if scalar:
        names: Sequence[str] = (SCALAR,)
    elif longitudinal_only:
        names = (LONGITUDINAL,)
    else:
        names = (LONGITUDINAL, TRANSVERSE)
    return ResultGrids(
        grids={name: np.zeros(shape, dtype=np.float64) for name in names},
        writes=np.zeros(shape, dtype=np.int64),
    )


@dataclass
class LocalResults:
    """Records computed by a single rank.

    Each record is ``(displacement index, order index, {grid name: value})``.
    The arrays grow with :meth:`append` and are sent as one unit in batched
    mode.
    """

    names: Tuple[str, ...]
    indices: List[Tuple[int, ...]] = field(default_factory=list)
    order_indices: List[int] = field(default_factory=list)
    values: Dict[str, List[float]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        for name in self.names:
            self.values.setdefault(name, [])

    def __len__(self) -> int:
        return len(self.order_indices)

    def append(self, index: Tuple[int, ...], order_idx: int, values: Dict[str, float]) -> None:
        self.indices.append(tuple(index))
        self.order_indices.append(int(order_idx))
        for name in self.names:
            self.values[name].append(float(values[name]))

    def extend(self, index: Tuple[int, ...], moments: Dict[str, np.ndarray]) -> None:
        """Add one record per order from the output of a moment kernel."""
        n_orders = len(moments[self.names[0]])
        for p in range(n_orders):
            self.append(index, p, {name: moments[name][p] for name in self.names})

    def records(self) -> Iterable[Tuple[Tuple[int, ...], int, Dict[str, float]]]:
        for k, (index, p) in enumerate(zip(self.indices, self.order_indices)):
            yield index, p, {name: self.values[name][k] for name in self.names}


def scatter_records(grids: ResultGrids, records: Iterable[Tuple[Tuple[int, ...], int, Dict[str, float]]]) -> int:
    """Write gathered records into their cells; return the number written."""
    n_written = 0
    for index, p, values in records:
        cell = tuple(index) + (p,)
        for name, value in values.items():
            grids.grids[name][cell] = value
        grids.writes[cell] += 1
        n_written += 1
    return n_written


class CollectiveAssembler:
    """Synchronous gather of local records onto a coordinating rank.

    Parameters
    ----------
    comm : mpi4py communicator
        Any object exposing ``Get_rank()`` and the lower-case ``gather``.
    grids : ResultGrids or None
        Destination grids; required on the root, ignored elsewhere.
    root : int, optional
        Coordinating rank. Default is 0.

    Notes
    -----
    Every rank must call the gather methods the same number of times; a rank
    that falls out of step blocks the whole run.
    """

    def __init__(self, comm, grids: Optional[ResultGrids], root: int = 0) -> None:  # noqa: ANN001
        self.comm = comm
        self.root = root
        self.rank = comm.Get_rank()
        if self.is_root and grids is None:
            raise ValueError("The coordinating rank needs result grids to assemble into")
        self.grids = grids

    @property
    def is_root(self) -> bool:
        return self.rank == self.root

    def gather_round(self, index: Tuple[int, ...], order_idx: int, values: Dict[str, float]) -> None:
        """Exchange one (displacement, order) record from every rank."""
        gathered = self.comm.gather((tuple(index), int(order_idx), values), root=self.root)
        if self.is_root:
            scatter_records(self.grids, gathered)

    def gather_batched(self, local: LocalResults) -> None:
        """Exchange all local records of every rank in a single gather."""
        gathered = self.comm.gather(local, root=self.root)
        if self.is_root:
            total = 0
            for rank_results in gathered:
                total += scatter_records(self.grids, rank_results.records())
            logger.debug("Assembled %d records from %d ranks", total, len(gathered))

    def finalize(self) -> Optional[ResultGrids]:
        """Apply the zero-displacement convention and return the grids on root."""
        if not self.is_root:
            return None
        force_zero_origin(self.grids)
        return self.grids


def force_zero_origin(grids: ResultGrids) -> None:
    """Set the all-zero displacement to 0 for every order and grid."""
    for grid in grids.grids.values():
        grid[(0,) * (grid.ndim - 1)] = 0.0
