"""Logging configuration for sfgrid runs.

Each MPI rank tags its records with its rank; ranks other than the
coordinator only report warnings and errors unless asked otherwise.
"""
import logging
import sys
from typing import Optional, Union

__all__ = [
    "setup_logging",
]


def setup_logging(
    level: Union[int, str] = logging.INFO,
    rank: int = 0,
    log_file: Optional[str] = None,
    quiet_workers: bool = True,
) -> logging.Logger:
    """Configure the ``sfgrid`` logger.

    Args:
        level: Logging level (e.g. logging.DEBUG or "INFO").
        rank: Rank of the calling process, included in every record.
        log_file: Optional path to save logs to a file.
        quiet_workers: Raise non-coordinating ranks to WARNING.

    Returns:
        The configured package logger.
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError(f"Unknown logging level: {level}")
    if quiet_workers and rank != 0:
        level = max(level, logging.WARNING)

    logger = logging.getLogger("sfgrid")
    logger.setLevel(level)

    # Avoid duplicate handlers on repeated setup
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(
        f"%(asctime)s - [rank {rank}] %(name)s - %(levelname)s - %(message)s",
        datefmt='%H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.debug("Logging initialized.")
    return logger
