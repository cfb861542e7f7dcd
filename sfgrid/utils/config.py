"""Configuration file support for sfgrid.

This module loads YAML configuration files, merges them with command-line
arguments, supports configuration profiles, and performs the fail-fast
validation that must happen before any rank starts computing.
"""

from __future__ import annotations

import os
import argparse
from pathlib import Path
from typing import Any, Dict, Iterator, Optional
import yaml
import logging

from sfgrid.core.moments import BACKENDS
from sfgrid.core.assembly import GATHER_MODES
from sfgrid.core.partition import check_partition
from sfgrid.utils.cli import LOG_LEVELS, RunConfig

logger = logging.getLogger(__name__)

__all__ = [
    "load_config",
    "apply_profile",
    "merge_config_with_args",
    "validate_config",
    "get_default_config_path",
    "create_config_template",
]


LOCAL_CONFIG_NAMES = ("sfgrid.yaml", ".sfgrid.yaml")
USER_CONFIG = Path(".sfgrid") / "config.yaml"
CONFIG_ENV_VAR = "SFGRID_CONFIG"


def _candidate_config_paths() -> Iterator[Path]:
    for name in LOCAL_CONFIG_NAMES:
        yield Path(name)
    yield Path.home() / USER_CONFIG
    env_value = os.environ.get(CONFIG_ENV_VAR)
    if env_value:
        yield Path(env_value)


def get_default_config_path() -> Optional[Path]:
    """Return the first configuration file found, or None.

    The working directory (``sfgrid.yaml``, then ``.sfgrid.yaml``) wins over
    ``~/.sfgrid/config.yaml``, which wins over ``$SFGRID_CONFIG``.
    """
    return next((path for path in _candidate_config_paths() if path.is_file()), None)


def apply_profile(config: Dict[str, Any], profile: str, source: Path | str = "configuration") -> Dict[str, Any]:
    """Overlay the named entry of ``config['profiles']`` on the rest of *config*.

    Raises
    ------
    KeyError
        If *config* has no such profile.
    """
    profiles = config.get('profiles') or {}
    if profile not in profiles:
        raise KeyError(
            f"Profile '{profile}' not found in {source}; available: {sorted(profiles)}"
        )
    base = {key: value for key, value in config.items() if key != 'profiles'}
    return _deep_merge(base, profiles[profile] or {})


def load_config(config_path: Path | str, profile: Optional[str] = None) -> Dict[str, Any]:
    """Read a YAML run configuration.

    Parameters
    ----------
    config_path : Path or str
        YAML file with the ``program``, ``grid``, ``domain_dimension``,
        ``structure_function``, ``test``, ``io`` and ``run`` sections, any of
        which may be omitted.
    profile : str, optional
        Entry of the ``profiles`` section to overlay on the base sections.

    Returns
    -------
    dict
        Parsed sections; empty for an empty file.

    Raises
    ------
    FileNotFoundError
        If the file does not exist.
    yaml.YAMLError
        If the file is not valid YAML.
    KeyError
        If *profile* is not defined in the file.
    """
    config_path = Path(config_path)
    if not config_path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        config = yaml.safe_load(config_path.read_text()) or {}
    except yaml.YAMLError as exc:
        raise yaml.YAMLError(f"Invalid YAML in {config_path}: {exc}") from exc

    logger.debug("Loaded configuration sections %s from %s", sorted(config), config_path)
    if profile:
        config = apply_profile(config, profile, source=config_path)
    return config


def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Return *base* updated recursively with *overlay*; neither is modified."""
    merged = dict(base)
    for key, value in overlay.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = _deep_merge(current, value)
        merged[key] = value
    return merged


def _pick(cli_value: Any, file_value: Any, default: Any) -> Any:
    if cli_value is not None:
        return cli_value
    if file_value is not None:
        return file_value
    return default


def merge_config_with_args(config: Dict[str, Any], args: argparse.Namespace) -> RunConfig:
    """Merge configuration file values with command-line arguments.

    Command-line arguments take precedence over config file values, which
    take precedence over the :class:`RunConfig` defaults.

    Parameters
    ----------
    config : dict
        Configuration dictionary from YAML file.
    args : argparse.Namespace
        Parsed command-line arguments (unset options are ``None``).

    Returns
    -------
    RunConfig
        Merged configuration.
    """
    defaults = RunConfig()
    program = config.get('program', {}) or {}
    grid = config.get('grid', {}) or {}
    domain = config.get('domain_dimension', {}) or {}
    sf = config.get('structure_function', {}) or {}
    test = config.get('test', {}) or {}
    io = config.get('io', {}) or {}
    run = config.get('run', {}) or {}

    def arg(name: str) -> Any:
        return getattr(args, name, None)

    field_names = dict(defaults.field_names)
    field_names.update(io.get('field_names', {}) or {})
    for key in field_names:
        field_names[key] = _pick(arg(f"name_{key}"), None, field_names[key])

    grid_names = dict(defaults.grid_names)
    grid_names.update(io.get('grid_names', {}) or {})
    for key in grid_names:
        grid_names[key] = _pick(arg(f"grid_{key}"), None, grid_names[key])

    input_file = _pick(arg('input_file'), io.get('input_file'), None)
    output_dir = _pick(arg('output_dir'), io.get('output_dir'), defaults.output_dir)

    return RunConfig(
        nx=int(_pick(arg('nx'), grid.get('Nx'), defaults.nx)),
        ny=int(_pick(arg('ny'), grid.get('Ny'), defaults.ny)),
        nz=int(_pick(arg('nz'), grid.get('Nz'), defaults.nz)),
        lx=float(_pick(arg('lx'), domain.get('Lx'), defaults.lx)),
        ly=float(_pick(arg('ly'), domain.get('Ly'), defaults.ly)),
        lz=float(_pick(arg('lz'), domain.get('Lz'), defaults.lz)),
        q1=int(_pick(arg('q1'), sf.get('q1'), defaults.q1)),
        q2=int(_pick(arg('q2'), sf.get('q2'), defaults.q2)),
        px=int(_pick(arg('px'), program.get('Processors_X'), defaults.px)),
        scalar=bool(_pick(arg('scalar'), program.get('scalar_switch'), defaults.scalar)),
        two_dimensional=bool(_pick(arg('two_dimensional'), program.get('2D_switch'), defaults.two_dimensional)),
        longitudinal_only=bool(_pick(arg('longitudinal_only'), program.get('Only_longitudinal'), defaults.longitudinal_only)),
        test=bool(_pick(arg('test'), test.get('test_switch'), defaults.test)),
        input_file=Path(input_file) if input_file is not None else None,
        field_names=field_names,
        output_dir=Path(output_dir),
        grid_names=grid_names,
        gather_mode=_pick(arg('gather_mode'), run.get('gather_mode'), defaults.gather_mode),
        backend=_pick(arg('backend'), run.get('backend'), defaults.backend),
        use_mpi=bool(_pick(arg('use_mpi'), run.get('use_mpi'), defaults.use_mpi)),
        n_procs=_pick(arg('n_procs'), run.get('n_procs'), defaults.n_procs),
        log_level=str(_pick(arg('log_level'), run.get('log_level'), defaults.log_level)).upper(),
    )


def validate_config(config: RunConfig, n_procs: int) -> None:
    """Validate configuration parameters against the process count.

    Parameters
    ----------
    config : RunConfig
        Configuration to validate.
    n_procs : int
        Total number of processes ``P`` taking part in the run.

    Raises
    ------
    ValueError
        If any parameter is invalid or the process grid cannot partition the
        displacement lattice (:class:`~sfgrid.core.partition.PartitionError`).
    """
    axes = ['nx', 'nz'] if config.two_dimensional else ['nx', 'ny', 'nz']
    for field_name in axes:
        value = getattr(config, field_name)
        if value <= 0:
            raise ValueError(f"{field_name} must be positive, got {value}")
    for field_name in ['lx', 'lz'] if config.two_dimensional else ['lx', 'ly', 'lz']:
        value = getattr(config, field_name)
        if value <= 0:
            raise ValueError(f"{field_name} must be positive, got {value}")

    if config.q2 < config.q1:
        raise ValueError(f"q2 ({config.q2}) must not be smaller than q1 ({config.q1})")

    if n_procs <= 0:
        raise ValueError(f"number of processes must be positive, got {n_procs}")
    if config.px <= 0:
        raise ValueError(f"px must be positive, got {config.px}")
    if config.px > n_procs:
        raise ValueError(
            f"Number of processors in x direction ({config.px}) has to be less than "
            f"or equal to the total number of processors ({n_procs})"
        )
    if n_procs % config.px != 0:
        raise ValueError(f"px ({config.px}) must divide the number of processors ({n_procs})")

    check_partition(config.nx // 2, config.px, axis_name="x")
    if config.two_dimensional:
        check_partition(config.nz // 2, n_procs // config.px, axis_name="z")
    else:
        check_partition(config.ny // 2, n_procs // config.px, axis_name="y")

    if config.gather_mode not in GATHER_MODES:
        raise ValueError(f"gather_mode must be one of {GATHER_MODES}, got {config.gather_mode}")
    if config.backend not in BACKENDS:
        raise ValueError(f"backend must be one of {BACKENDS}, got {config.backend}")
    if str(config.log_level).upper() not in LOG_LEVELS:
        raise ValueError(f"log_level must be one of {LOG_LEVELS}, got {config.log_level}")

    if not config.test and config.input_file is None:
        raise ValueError("An input file is required unless the run is in test mode")


def create_config_template() -> str:
    """Generate a template configuration file with all parameters.

    Returns
    -------
    str
        YAML configuration template as a string.
    """
    template = """# sfgrid Configuration File
#
# Command-line arguments override these values.

program:
  # Scalar (true) or vector (false) structure functions
  scalar_switch: false
  # Compute only the longitudinal vector structure functions
  Only_longitudinal: false
  # 2-D fields in the x-z plane
  2D_switch: false
  # Processes along x; the total must be a multiple of this
  Processors_X: 1

grid:
  Nx: 32
  Ny: 32
  Nz: 32

domain_dimension:
  Lx: 1.0
  Ly: 1.0
  Lz: 1.0

structure_function:
  q1: 2
  q2: 4

test:
  # Generate analytic fields and validate the results
  test_switch: false

io:
  input_file: "in/fields.npz"
  field_names:
    v_x: "v_x"
    v_y: "v_y"
    v_z: "v_z"
    theta: "theta"
  output_dir: "out"
  grid_names:
    longitudinal: "SF_Grid_pll"
    transverse: "SF_Grid_perp"
    scalar: "SF_Grid_scalar"

run:
  # "batched" gathers once per rank, "per_round" once per displacement and order
  gather_mode: "batched"
  # "numba" or "numpy"
  backend: "numba"
  # false emulates n_procs ranks (default: Processors_X) in one process
  use_mpi: true
  n_procs: null
  log_level: "INFO"

# Predefined profiles
profiles:
  # Analytic self-test on a small grid
  quick_test:
    grid:
      Nx: 16
      Ny: 16
      Nz: 16
    test:
      test_switch: true

  # Scalar field on a 2-D slice
  scalar_2d:
    program:
      scalar_switch: true
      2D_switch: true
"""
    return template


if __name__ == "__main__":
    import sys

    if len(sys.argv) > 1:
        output_path = sys.argv[1]
    else:
        output_path = "sfgrid_template.yaml"

    template = create_config_template()
    with open(output_path, 'w') as f:
        f.write(template)

    print(f"Created configuration template: {output_path}")
