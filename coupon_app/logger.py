"""
Logging configuration for the coupon service.

Provides a package logger whose level follows the LOG_LEVEL setting.
"""
import logging
import sys
from typing import Optional

from coupon_app.config import settings

logger = logging.getLogger("coupon_app")
logger.setLevel(settings.log_level)

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(settings.log_level)

    formatter = logging.Formatter(
        fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    console_handler.setFormatter(formatter)

    logger.addHandler(console_handler)

# Prevent propagation to root logger (avoid duplicate logs)
logger.propagate = False


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Optional name for the logger (will be appended to 'coupon_app')

    Returns:
        Logger instance
    """
    if name:
        return logging.getLogger(f"coupon_app.{name}")
    return logger
