"""Region Package

Operations on the segments produced by the watershed:
- Region adjacency graph construction (max-aggregated affinities)
- Size/affinity-driven region merging
"""

from .graph import RegionGraph, build_region_graph, AGGREGATION
from .merging import (
    MergePolicy,
    DynamicSizeThreshold,
    dynamic_size_threshold,
    MergeResult,
    MergedSegmentation,
    merge_segments,
    merge,
)

__all__ = [
    "RegionGraph",
    "build_region_graph",
    "AGGREGATION",
    "MergePolicy",
    "DynamicSizeThreshold",
    "dynamic_size_threshold",
    "MergeResult",
    "MergedSegmentation",
    "merge_segments",
    "merge",
]
