"""
Shared utilities: logging setup, numeric guards and run seeding.
"""

import logging
import math
import time
from pathlib import Path
from typing import Optional

import numpy as np


def setup_logging(
    log_type: str,
    problem_name: str,
    log_dir: Optional[str] = None,
    level: int = logging.INFO,
    session_id: Optional[int] = None,
) -> logging.Logger:
    """Sets up a logger for a run script, optionally mirrored to a log file."""
    logger = logging.getLogger(f"{log_type}_{problem_name}_logger")
    logger.setLevel(level)

    # Prevent adding multiple handlers if the logger already exists
    if not logger.handlers:
        session = session_id if session_id is not None else int(time.time())
        formatter = logging.Formatter(
            f"%(asctime)s - %(levelname)s - [Session: {session}]-[Problem: {problem_name}] - %(message)s"
        )

        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        logger.addHandler(stream_handler)

        if log_dir is not None:
            log_dir_path = Path(log_dir)
            log_dir_path.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_dir_path / f"{log_type}_logs.log", mode='a')
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    return logger


def is_invalid_number(value: float) -> bool:
    """True for NaN or infinite values."""
    return math.isnan(value) or math.isinf(value)


def in_bounds(value: float, lower: float, upper: float) -> bool:
    """Inclusive range check that also rejects NaN and infinity."""
    return not (is_invalid_number(value) or value < lower or value > upper)


def generate_seed() -> int:
    """Draws a fresh seed from OS entropy."""
    return int(np.random.SeedSequence().entropy)
