"""Visualization of structure-function grids.

The grids are functions of the displacement vector. For a quick look they
are averaged over logarithmic shells of ``|l|`` and drawn on log-log axes,
one curve per order.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple
import logging

import numpy as np
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402

from sfgrid.core.domain import GridDomain, OrderRange

logger = logging.getLogger(__name__)

__all__ = [
    "shell_average",
    "plot_structure_functions",
]


def _displacement_magnitude(domain: GridDomain) -> np.ndarray:
    axes = [np.arange(h) * d for h, d in zip(domain.half_extents, domain.spacing)]
    offsets = np.meshgrid(*axes, indexing="ij")
    return np.sqrt(sum(l * l for l in offsets))


def shell_average(
    grid: np.ndarray,
    domain: GridDomain,
    n_bins: int = 20,
) -> Tuple[np.ndarray, np.ndarray]:
    """Average every order of *grid* over logarithmic shells of ``|l|``.

    Parameters
    ----------
    grid : np.ndarray
        Structure functions of shape ``half_extents + (n_orders,)``.
    domain : GridDomain
        Grid the structure functions were computed on.
    n_bins : int
        Number of logarithmic shells.

    Returns
    -------
    r_centers : np.ndarray
        Shell centres of the non-empty shells.
    profiles : np.ndarray
        Shape ``(len(r_centers), n_orders)``.
    """
    r = _displacement_magnitude(domain)
    values = grid.reshape(-1, grid.shape[-1])
    r = r.ravel()

    # The origin is zero by convention and has no place on a log axis
    keep = r > 0
    r = r[keep]
    values = values[keep]
    if r.size == 0:
        return np.empty(0), np.empty((0, grid.shape[-1]))

    edges = np.logspace(np.log10(r.min()), np.log10(r.max()), n_bins + 1)
    edges[-1] *= 1.0 + 1e-12
    which = np.digitize(r, edges) - 1

    centers = []
    profiles = []
    for b in range(n_bins):
        mask = which == b
        if not np.any(mask):
            continue
        centers.append(np.sqrt(edges[b] * edges[b + 1]))
        profiles.append(values[mask].mean(axis=0))
    return np.asarray(centers), np.asarray(profiles)


def plot_structure_functions(
    grid: np.ndarray,
    domain: GridDomain,
    orders: OrderRange,
    label: str = "S_q",
    out_file: Optional[str | Path] = None,
    n_bins: int = 20,
):
    """Plot shell-averaged structure functions against ``|l|``.

    Returns the matplotlib figure; it is also saved when *out_file* is given.
    """
    r_centers, profiles = shell_average(grid, domain, n_bins=n_bins)

    fig, ax = plt.subplots(figsize=(6, 5))
    for p in range(orders.n_orders):
        q = orders.order_of(p)
        positive = profiles[:, p] > 0 if profiles.size else np.zeros(0, dtype=bool)
        ax.loglog(r_centers[positive], profiles[positive, p], "o-", markersize=3, label=f"q = {q}")

    ax.set_xlabel(r"$|\ell|$")
    ax.set_ylabel(label)
    ax.set_title(f"{label} ({domain.ndim}D)")
    ax.grid(True, which="both", alpha=0.3)
    ax.legend()
    fig.tight_layout()

    if out_file is not None:
        fig.savefig(out_file, dpi=150)
        logger.info("Saved plot to %s", out_file)
    return fig
