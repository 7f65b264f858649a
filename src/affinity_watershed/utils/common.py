"""Common utilities for the affinity watershed pipeline."""

import logging
import time
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np

from ..errors import LabelConsistencyViolation, ShapeMismatch


def setup_logging(level: int = logging.INFO) -> logging.Logger:
    """Setup consistent logging configuration.
    
    Args:
        level: Logging level
        
    Returns:
        Configured logger
    """
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    return logging.getLogger(__name__)


def ensure_directory(path: Union[str, Path]) -> Path:
    """Ensure directory exists, create if necessary.
    
    Args:
        path: Directory path
        
    Returns:
        Path object
    """
    path_obj = Path(path)
    path_obj.mkdir(parents=True, exist_ok=True)
    return path_obj


def load_volume(path: Union[str, Path], expected_ndim: int = 3,
                expected_dtype: Optional[type] = None) -> np.ndarray:
    """Load and validate a volume saved as ``.npy``.
    
    Args:
        path: Path to .npy file
        expected_ndim: 3 for label volumes, 4 for affinity graphs
        expected_dtype: Expected data type, converted if different
        
    Returns:
        Loaded volume array
        
    Raises:
        ShapeMismatch: If the array has the wrong number of dimensions
    """
    volume = np.load(path)
    
    if volume.ndim != expected_ndim:
        raise ShapeMismatch(f"Expected {expected_ndim}D volume, got {volume.ndim}D array")
    
    if expected_dtype and volume.dtype != expected_dtype:
        logging.warning(f"Converting volume dtype from {volume.dtype} to {expected_dtype}")
        volume = volume.astype(expected_dtype)
    
    return volume


def save_volume(volume: np.ndarray, path: Union[str, Path], dtype: Optional[type] = None) -> None:
    """Save volume with optional type conversion.
    
    Args:
        volume: Volume array to save
        path: Output path
        dtype: Optional target dtype
    """
    if dtype and volume.dtype != dtype:
        volume = volume.astype(dtype)
    
    path_obj = Path(path)
    ensure_directory(path_obj.parent)
    np.save(path_obj, volume)


def validate_labels(labels: np.ndarray) -> Tuple[int, int]:
    """Check that a segmentation uses exactly the labels ``1..max_label``.
    
    Args:
        labels: Label array
        
    Returns:
        Tuple of (max_label, num_unique_labels)

    Raises:
        LabelConsistencyViolation: If a voxel is unlabeled or labels have gaps
    """
    if labels.ndim != 3:
        raise ShapeMismatch(f"Expected 3D labels, got {labels.ndim}D array")
    
    unique_labels = np.unique(labels)
    if unique_labels[0] == 0:
        unlabeled = int(np.count_nonzero(labels == 0))
        raise LabelConsistencyViolation(f"{unlabeled} voxels left unlabeled")

    max_label = int(unique_labels[-1])
    if unique_labels.size != max_label:
        raise LabelConsistencyViolation(
            f"Labels are not dense: {unique_labels.size} distinct labels, max label {max_label}"
        )
    
    return max_label, int(unique_labels.size)


class Timer:
    """Simple context manager for timing operations."""
    
    def __init__(self, description: str):
        self.description = description
        self.start_time = None
        self.elapsed = 0.0
    
    def __enter__(self):
        self.start_time = time.time()
        logging.info(f"Starting: {self.description}")
        return self
    
    def __exit__(self, exc_type, exc_val, exc_tb):
        self.elapsed = time.time() - self.start_time
        logging.info(f"Completed: {self.description} ({self.elapsed:.2f}s)")
