import logging
import os
import sys


def setup_logger(name: str) -> logging.Logger:
    """Setup a logger with consistent formatting"""
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    level_name = os.getenv("RALLY_LOG_LEVEL", "INFO").upper()
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    return logger
