"""Command-line interface helper for grid structure-function runs.

All options are centralised here so that entry points can import
:func:`parse_cli` and avoid duplicating *argparse* boilerplate. Values given
on the command line override those of a YAML configuration file, which in
turn override the built-in defaults.
"""
from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional
import logging

logger = logging.getLogger(__name__)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

__all__ = [
    "RunConfig",
    "build_parser",
    "parse_cli",
    "str_to_bool",
]


def _default_field_names() -> Dict[str, str]:
    return {"v_x": "v_x", "v_y": "v_y", "v_z": "v_z", "theta": "theta"}


def _default_grid_names() -> Dict[str, str]:
    return {"longitudinal": "SF_Grid_pll", "transverse": "SF_Grid_perp", "scalar": "SF_Grid_scalar"}


@dataclass(slots=True)
class RunConfig:
    """Aggregated, type-checked runtime options.

    Attributes
    ----------
    nx, ny, nz : int
        Grid points per axis. Two-dimensional runs use ``nx`` and ``nz``.
    lx, ly, lz : float
        Physical domain lengths; spacing is ``L / (N - 1)``.
    q1, q2 : int
        Inclusive range of structure-function orders.
    px : int
        Processes along x; the remaining ``P / px`` split y (3-D) or z (2-D).
    scalar : bool
        Compute scalar instead of vector structure functions.
    two_dimensional : bool
        Fields are 2-D arrays in the x-z plane.
    longitudinal_only : bool
        Skip the transverse structure functions.
    test : bool
        Generate analytic fields and validate the results against them.
    input_file : Path or None
        ``.npz`` archive holding the field components.
    field_names : dict
        Array names inside *input_file* for ``v_x``, ``v_y``, ``v_z`` and
        ``theta``.
    output_dir : Path
        Directory receiving one file per grid and order.
    grid_names : dict
        Output file stems for the longitudinal, transverse and scalar grids.
    gather_mode : str
        ``"batched"`` (one gather per rank) or ``"per_round"``.
    backend : str
        ``"numba"`` or ``"numpy"`` moment kernels.
    use_mpi : bool
        Run on ``MPI.COMM_WORLD``; otherwise emulate all ranks in-process.
    n_procs : int or None
        Number of ranks to emulate without MPI; defaults to ``px``.
    log_level : str
        Logging level name for the coordinating rank.
    """

    nx: int = 32
    ny: int = 32
    nz: int = 32
    lx: float = 1.0
    ly: float = 1.0
    lz: float = 1.0
    q1: int = 2
    q2: int = 4
    px: int = 1
    scalar: bool = False
    two_dimensional: bool = False
    longitudinal_only: bool = False
    test: bool = False
    input_file: Optional[Path] = None
    field_names: Dict[str, str] = field(default_factory=_default_field_names)
    output_dir: Path = Path("out")
    grid_names: Dict[str, str] = field(default_factory=_default_grid_names)
    gather_mode: str = "batched"
    backend: str = "numba"
    use_mpi: bool = True
    n_procs: Optional[int] = None
    log_level: str = "INFO"


# ----------------------------------------------------------------------------
# Parser ---------------------------------------------------------------------
# ----------------------------------------------------------------------------

def str_to_bool(value: str) -> bool:
    """Argument parser type accepting ``true``/``false``/``1``/``0``.

    Raises
    ------
    argparse.ArgumentTypeError
        For any other spelling.
    """
    lowered = str(value).strip().lower()
    if lowered in ("true", "1"):
        return True
    if lowered in ("false", "0"):
        return False
    raise argparse.ArgumentTypeError(f"expected true/false/1/0, got {value}")


def _positive_int(value: str) -> int:
    ivalue = int(value)
    if ivalue <= 0:
        raise argparse.ArgumentTypeError(f"expected positive int, got {value}")
    return ivalue


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser; every option defaults to ``None``."""
    parser = argparse.ArgumentParser(
        description="Distributed structure functions of gridded scalar and vector fields",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument("--config", type=Path, default=None, help="YAML configuration file.")
    parser.add_argument("--profile", type=str, default=None, help="Profile of the configuration file to apply.")

    grid = parser.add_argument_group("grid")
    grid.add_argument("-X", "--nx", type=_positive_int, default=None, help="Grid points along x.")
    grid.add_argument("-Y", "--ny", type=_positive_int, default=None, help="Grid points along y (3-D only).")
    grid.add_argument("-Z", "--nz", type=_positive_int, default=None, help="Grid points along z.")
    grid.add_argument("-x", "--lx", type=float, default=None, help="Domain length along x.")
    grid.add_argument("-y", "--ly", type=float, default=None, help="Domain length along y.")
    grid.add_argument("-z", "--lz", type=float, default=None, help="Domain length along z.")

    sf = parser.add_argument_group("structure functions")
    sf.add_argument("--q1", type=int, default=None, help="First order of the range.")
    sf.add_argument("--q2", type=int, default=None, help="Last order of the range.")
    sf.add_argument("-p", "--px", type=_positive_int, default=None, help="Processes along x.")
    sf.add_argument("-s", "--scalar", type=str_to_bool, default=None, help="Scalar structure functions (true/false).")
    sf.add_argument("-d", "--two-dimensional", dest="two_dimensional", type=str_to_bool, default=None, help="2-D fields in the x-z plane (true/false).")
    sf.add_argument("-l", "--longitudinal-only", dest="longitudinal_only", type=str_to_bool, default=None, help="Only longitudinal structure functions (true/false).")
    sf.add_argument("-t", "--test", type=str_to_bool, default=None, help="Run on generated analytic fields and validate (true/false).")

    io = parser.add_argument_group("input / output")
    io.add_argument("--input", dest="input_file", type=Path, default=None, help="Input .npz archive with the field components.")
    io.add_argument("-U", dest="name_v_x", type=str, default=None, help="Array name of the x component.")
    io.add_argument("-V", dest="name_v_y", type=str, default=None, help="Array name of the y component.")
    io.add_argument("-W", dest="name_v_z", type=str, default=None, help="Array name of the z component.")
    io.add_argument("-S", dest="name_theta", type=str, default=None, help="Array name of the scalar field.")
    io.add_argument("--output-dir", dest="output_dir", type=Path, default=None, help="Directory for result files.")
    io.add_argument("-L", dest="grid_longitudinal", type=str, default=None, help="File stem of the longitudinal grids.")
    io.add_argument("-P", dest="grid_transverse", type=str, default=None, help="File stem of the transverse grids.")
    io.add_argument("-M", dest="grid_scalar", type=str, default=None, help="File stem of the scalar grids.")

    run = parser.add_argument_group("execution")
    run.add_argument("--gather-mode", dest="gather_mode", choices=["batched", "per_round"], default=None, help="Gather all local results at once or one record per round.")
    run.add_argument("--backend", choices=["numba", "numpy"], default=None, help="Moment kernel implementation.")
    run.add_argument("--no-mpi", dest="use_mpi", action="store_false", default=None, help="Emulate all ranks in a single process.")
    run.add_argument("-n", "--procs", dest="n_procs", type=_positive_int, default=None, help="Ranks to emulate with --no-mpi (default: px).")
    run.add_argument("--log-level", dest="log_level", type=str.upper, choices=LOG_LEVELS, default=None, help="Logging level.")

    return parser


def parse_cli(argv: Optional[List[str]] = None) -> RunConfig:
    """Parse command-line arguments into a :class:`RunConfig`.

    Parameters
    ----------
    argv : list of str, optional
        Command-line arguments to parse. If None, uses sys.argv[1:].

    Returns
    -------
    RunConfig
        Defaults, overridden by the configuration file (``--config`` or the
        first default location found), overridden by explicit options.

    Raises
    ------
    SystemExit
        If arguments are invalid or help is requested.
    """
    from sfgrid.utils.config import get_default_config_path, load_config, merge_config_with_args

    parser = build_parser()
    args = parser.parse_args(argv)

    config_path = args.config or get_default_config_path()
    if args.profile and config_path is None:
        parser.error("--profile needs a configuration file")

    config = {}
    if config_path is not None:
        logger.debug("Reading configuration from %s", config_path)
        try:
            config = load_config(config_path, profile=args.profile)
        except (FileNotFoundError, KeyError) as err:
            parser.error(str(err))

    return merge_config_with_args(config, args)
