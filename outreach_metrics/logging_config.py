"""
Centralized logging configuration for the outreach metrics dashboard.

Usage:
    from outreach_metrics.logging_config import setup_logging

    logger = setup_logging("outreach_metrics", log_level="DEBUG")
    logger.info("Fetch issued")

Library modules only call logging.getLogger(__name__); handlers are attached
once, on the package logger, by the entry point.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s | %(name)s | %(levelname)s | %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


def setup_logging(
    module_name: str = "outreach_metrics",
    log_level: str = "INFO",
    log_dir: Optional[str] = None,
    console_output: bool = True
) -> logging.Logger:
    """
    Set up logging for a module with optional file and console output.

    Args:
        module_name: Logger name (the package name configures every module)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_dir: Directory for daily log files, None for no file output
        console_output: Whether to output to console (stderr)

    Returns:
        Configured logger instance

    Log Levels:
        DEBUG: State transitions, discarded stale responses
        INFO: Fetches issued and applied, workspace selection
        WARNING: Failed fetches, validation problems
        ERROR: Unexpected failures

    Log Files:
        Format: {log_dir}/{module}_{date}.log
    """
    level = getattr(logging, log_level.upper())

    logger = logging.getLogger(module_name)
    logger.setLevel(level)

    # Prevent duplicate handlers if setup_logging called multiple times
    if logger.handlers:
        return logger

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)

        today = datetime.now().strftime("%Y-%m-%d")
        simple_module = module_name.split('.')[-1]
        file_handler = logging.FileHandler(
            log_path / f"{simple_module}_{today}.log", encoding='utf-8'
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # stderr keeps CLI stdout clean for report output
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger
