"""Watershed Engine Package

Hysteresis watershed over an affinity graph:
- Arena union-find with path compression
- Sequential (ordered) and sparse connected-component engines
- Dense, deterministic relabeling of components
"""

from .data_structures import WatershedResult
from .union_find import UnionFind
from .core import watershed, check_thresholds, check_max_merge_size, dense_labels, METHODS

__all__ = [
    "watershed",
    "check_thresholds",
    "check_max_merge_size",
    "dense_labels",
    "METHODS",
    "UnionFind",
    "WatershedResult",
]
