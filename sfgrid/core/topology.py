"""Mapping between linear process ranks and a 2-D process grid."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, Tuple

__all__ = [
    "ProcessTopology",
]


@dataclass(frozen=True)
class ProcessTopology:
    """Row-major ``px`` by ``py`` arrangement of ``n_procs`` ranks.

    ``py = n_procs // px``; the second coordinate varies fastest, so rank
    ``r`` sits at ``(r // py, r % py)``. Callers guarantee that ``px``
    divides ``n_procs`` (see :func:`sfgrid.utils.config.validate_config`).
    """

    n_procs: int
    px: int

    @property
    def py(self) -> int:
        return self.n_procs // self.px

    def coords(self, rank: int) -> Tuple[int, int]:
        """Return ``(rank_x, rank_y)`` for a linear *rank*."""
        rank_y = rank % self.py
        rank_x = (rank - rank_y) // self.py
        return rank_x, rank_y

    def rank_of(self, rank_x: int, rank_y: int) -> int:
        return rank_x * self.py + rank_y

    def __iter__(self) -> Iterator[int]:
        return iter(range(self.n_procs))
