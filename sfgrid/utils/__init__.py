"""Utility functions for sfgrid.

This subpackage contains helper functions and utilities used throughout
the package.

Modules
-------
cli
    Command-line interface parsing and the run configuration
config
    YAML configuration files, profiles and validation
log
    Logging configuration and utilities
"""

from sfgrid.utils.cli import parse_cli, RunConfig
from sfgrid.utils.config import load_config, validate_config
from sfgrid.utils.log import setup_logging

__all__ = [
    # CLI
    "parse_cli",
    "RunConfig",
    # Config
    "load_config",
    "validate_config",
    # Logging
    "setup_logging",
]
