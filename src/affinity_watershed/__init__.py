"""Affinity Graph Watershed

This package segments 3D volumes from voxel affinity graphs:
- Hysteresis watershed with union-find agglomeration
- Region adjacency graph construction
- Size/affinity-driven region merging
- Slice stack import/export
"""

__version__ = "1.0.0"
__author__ = "Affinity Watershed Team"

from .errors import (
    WatershedError,
    ShapeMismatch,
    EmptyVolume,
    InvalidThreshold,
    MalformedAffinity,
    LabelConsistencyViolation,
)
from .affinity import AffinityGraph
from .engine import watershed, UnionFind, WatershedResult
from .region import (
    RegionGraph, build_region_graph,
    merge, merge_segments, dynamic_size_threshold, DynamicSizeThreshold, MergeResult, MergedSegmentation
)
from .pipeline import segment_affinities, SegmentationResult
from .evaluation import calculate_variation_of_information, partitions_equivalent

from .config import DEFAULT_CONFIG, PipelineConfig
from .slices import list_slices, read_affinity_slices, write_segmentation_slices
from .utils import setup_logging, Timer, ensure_directory

__all__ = [
    # Errors
    "WatershedError",
    "ShapeMismatch",
    "EmptyVolume",
    "InvalidThreshold",
    "MalformedAffinity",
    "LabelConsistencyViolation",

    # Data
    "AffinityGraph",

    # Watershed
    "watershed",
    "UnionFind",
    "WatershedResult",

    # Region graph and merging
    "RegionGraph",
    "build_region_graph",
    "merge",
    "merge_segments",
    "dynamic_size_threshold",
    "DynamicSizeThreshold",
    "MergeResult",
    "MergedSegmentation",

    # Pipeline
    "segment_affinities",
    "SegmentationResult",

    # Evaluation
    "calculate_variation_of_information",
    "partitions_equivalent",

    # Configuration
    "DEFAULT_CONFIG",
    "PipelineConfig",

    # Slice stacks
    "list_slices",
    "read_affinity_slices",
    "write_segmentation_slices",

    # Utilities
    "setup_logging",
    "Timer",
    "ensure_directory",
]
