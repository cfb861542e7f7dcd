"""I/O utilities for field components and structure-function grids.

Fields are read from a single ``.npz`` archive holding one array per
component. Result grids are written one compressed ``.npz`` file per grid and
per order, named ``<stem><q>.npz`` with the array stored under the file stem.
"""

from pathlib import Path
from typing import Dict, List, Mapping, Tuple
import logging

import numpy as np

from sfgrid.core.assembly import ResultGrids
from sfgrid.core.domain import GridDomain, OrderRange

logger = logging.getLogger(__name__)

__all__ = [
    "load_fields",
    "save_result_grids",
    "load_result_grid",
]

_CHECKLIST = (
    "Please check that (a) the archive holds one array per field component, "
    "(b) the array names match the configured field names, and "
    "(c) the array shape matches the configured grid: (Nx, Nz) for 2-D runs, "
    "(Nx, Ny, Nz) for 3-D runs."
)


def load_fields(
    file_path: str | Path,
    names: Mapping[str, str],
    domain: GridDomain,
) -> Dict[str, np.ndarray]:
    """Load field components from a ``*.npz`` archive.

    Parameters
    ----------
    file_path : str | Path
        Archive containing the component arrays.
    names : mapping
        Canonical component name (``v_x``, ``theta``, ...) to array name
        inside the archive.
    domain : GridDomain
        Grid the arrays must match.

    Returns
    -------
    Dict[str, np.ndarray]
        Canonical names mapped to float64 arrays of shape
        ``domain.field_shape``.

    Raises
    ------
    TypeError
        If file_path is not a string or Path object.
    FileNotFoundError
        If the archive does not exist.
    ValueError
        If the file is not an ``.npz`` archive, a component is missing, or an
        array does not match the grid.
    """
    if not isinstance(file_path, (str, Path)):
        raise TypeError(
            f"file_path must be a string or Path object, got {type(file_path).__name__}"
        )

    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Field file not found: {file_path}. {_CHECKLIST}")
    if file_path.suffix != ".npz":
        raise ValueError(
            f"Expected .npz file extension, got '{file_path.suffix}' for {file_path}"
        )

    out: Dict[str, np.ndarray] = {}
    with np.load(file_path) as data:
        for canon_key, array_name in names.items():
            if array_name not in data:
                raise ValueError(
                    f"Array '{array_name}' for {canon_key} not found in {file_path} "
                    f"(available: {sorted(data.files)}). {_CHECKLIST}"
                )
            arr = data[array_name]
            if arr.ndim != domain.ndim:
                raise ValueError(
                    f"Incompatible dimension: '{array_name}' is {arr.ndim}D, "
                    f"expected {domain.ndim}D. {_CHECKLIST}"
                )
            if arr.shape != domain.field_shape:
                raise ValueError(
                    f"Incompatible grid size: '{array_name}' has shape {arr.shape}, "
                    f"expected {domain.field_shape}. {_CHECKLIST}"
                )
            out[canon_key] = arr.astype(np.float64, copy=False)

    logger.info("Loaded %d field component(s) from %s", len(out), file_path)
    return out


def save_result_grids(
    grids: ResultGrids,
    out_dir: str | Path,
    orders: OrderRange,
    stems: Mapping[str, str],
) -> List[Path]:
    """Write one file per grid and order.

    Parameters
    ----------
    grids : ResultGrids
        Assembled grids of shape ``half_extents + (n_orders,)``.
    out_dir : str | Path
        Destination directory, created if needed.
    orders : OrderRange
        Orders matching the last grid axis.
    stems : mapping
        Grid name (``longitudinal`` ...) to output file stem.

    Returns
    -------
    list of Path
        Files written, in order.
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    written: List[Path] = []
    for p in range(orders.n_orders):
        q = orders.order_of(p)
        logger.info("Writing order %d structure functions", q)
        for name in grids.names:
            stem = f"{stems[name]}{q}"
            path = out_dir / f"{stem}.npz"
            np.savez_compressed(path, **{stem: grids[name][..., p]})
            written.append(path)
    return written


def load_result_grid(file_path: str | Path) -> Tuple[str, np.ndarray]:
    """Return ``(stem, array)`` of a file written by :func:`save_result_grids`."""
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Result file not found: {file_path}")
    with np.load(file_path) as data:
        stem = file_path.stem
        if stem not in data:
            raise ValueError(f"Result file {file_path} has no array named '{stem}'")
        return stem, data[stem]
