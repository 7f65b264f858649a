"""Utils package for common utilities.

This package provides utility functions for logging, timing,
volume files and label checks.
"""

from .common import setup_logging, Timer, ensure_directory, load_volume, save_volume, validate_labels

__all__ = [
    "setup_logging",
    "Timer", 
    "ensure_directory",
    "load_volume",
    "save_volume",
    "validate_labels",
]
