"""Size/affinity-driven region merging.

Undersized regions are folded into their strongest neighbour until a fixed
point is reached. Whether a region may merge across an edge is decided by a
policy, a pure function ``(size, affinity) -> merge_threshold``: the region
merges across the edge when ``size < merge_threshold``.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, NamedTuple

import numpy as np
from skimage.segmentation import relabel_sequential
from tqdm import tqdm

from ..errors import InvalidThreshold, LabelConsistencyViolation, ShapeMismatch
from ..utils.common import Timer
from .graph import RegionGraph

logger = logging.getLogger(__name__)

MergePolicy = Callable[[int, float], int]


@dataclass(frozen=True)
class DynamicSizeThreshold:
    """Merge regions smaller than ``min_size`` across edges of at least ``threshold``."""
    min_size: int
    threshold: float

    def __call__(self, size: int, affinity: float) -> int:
        # not enough affinity, never merge
        if affinity < self.threshold:
            return 0
        return self.min_size


def dynamic_size_threshold(min_size: int, threshold: float) -> DynamicSizeThreshold:
    """Build the default merge policy.

    Args:
        min_size: Regions with fewer voxels are eligible for elimination
        threshold: Minimum aggregated affinity an edge needs to be merged across

    Raises:
        InvalidThreshold: If ``min_size`` is negative or ``threshold`` non-finite
    """
    if isinstance(min_size, bool) or not isinstance(min_size, (int, np.integer)) or min_size < 0:
        raise InvalidThreshold(f"min_size must be a non-negative integer, got {min_size!r}")
    try:
        finite = math.isfinite(threshold)
    except TypeError:
        raise InvalidThreshold(f"merge threshold must be a number, got {threshold!r}")
    if not finite:
        raise InvalidThreshold(f"merge threshold must be finite, got {threshold}")
    return DynamicSizeThreshold(int(min_size), float(threshold))


class MergeResult(NamedTuple):
    """Output of :func:`merge_segments`.

    Labels are compacted to ``1..num_segments`` in ascending order of the
    surviving pre-merge labels; ``region_sizes[0]`` is 0.
    """
    segmentation: np.ndarray
    region_graph: RegionGraph
    region_sizes: np.ndarray
    num_segments: int
    num_merges: int


class MergedSegmentation(NamedTuple):
    """Output of :func:`merge`."""
    segmentation: np.ndarray
    region_graph: RegionGraph


def _best_neighbor(graph: RegionGraph, label: int, size: int, policy: MergePolicy):
    best, best_weight = None, None
    for nbr, w in graph.neighbors(label).items():
        if not size < policy(size, w):
            continue
        if best is None or w > best_weight or (w == best_weight and nbr < best):
            best, best_weight = nbr, w
    return best


def _resolve(remap: np.ndarray) -> np.ndarray:
    while True:
        nxt = remap[remap]
        if np.array_equal(nxt, remap):
            return remap
        remap = nxt


def merge_segments(
    segmentation: np.ndarray,
    region_graph: RegionGraph,
    region_sizes: np.ndarray,
    policy: MergePolicy,
) -> MergeResult:
    """Merge regions with ``policy`` until no further merge is possible.

    Each pass visits the live regions in ascending ``(size, label)`` order
    (snapshot taken at the start of the pass). A visited region merges into
    the qualifying neighbour with the highest affinity, lowest label on ties.
    The survivor's size grows by the victim's size, the victim's edges are
    redirected to the survivor and its voxels are relabeled. Passes repeat
    until one merges nothing.

    The inputs are not modified.

    Args:
        segmentation: Label volume with labels ``1..n``
        region_graph: Region graph of ``segmentation``
        region_sizes: Voxel counts indexed by label (length ``n + 1``)
        policy: Callable ``(size, affinity) -> merge_threshold``

    Returns:
        MergeResult

    Raises:
        ShapeMismatch: If ``region_sizes`` does not have ``n + 1`` entries
        LabelConsistencyViolation: If sizes, graph and segmentation disagree
    """
    num_segments = region_graph.num_segments
    sizes = np.array(region_sizes, dtype=np.int64)
    if sizes.shape != (num_segments + 1,):
        raise ShapeMismatch(
            f"Expected {num_segments + 1} region sizes, got {sizes.shape[0]}"
        )
    if int(sizes.sum()) != segmentation.size:
        raise LabelConsistencyViolation(
            f"Region sizes sum to {int(sizes.sum())}, volume has {segmentation.size} voxels"
        )

    labels = np.array(segmentation, dtype=np.uint32)
    if labels.min() < 1 or labels.max() > num_segments:
        raise LabelConsistencyViolation(
            f"Segmentation labels must lie in 1..{num_segments}, "
            f"found range {labels.min()}..{labels.max()}"
        )
    if not np.array_equal(np.bincount(labels.ravel(), minlength=num_segments + 1), sizes):
        raise LabelConsistencyViolation("Region sizes do not match the segmentation")

    graph = region_graph.copy()
    graph.validate()
    remap = np.arange(num_segments + 1, dtype=np.int64)

    total_merges = 0
    pass_index = 0
    with Timer("Region merging"):
        while True:
            pass_index += 1
            order = sorted(graph.nodes, key=lambda l: (sizes[l], l))
            merges = 0
            for label in tqdm(order, desc=f"Merge pass {pass_index}", disable=not order):
                if label not in graph:
                    continue
                size = int(sizes[label])
                target = _best_neighbor(graph, label, size, policy)
                if target is None:
                    continue

                graph.merge_nodes(target, label)
                sizes[target] += sizes[label]
                sizes[label] = 0
                remap[label] = target
                merges += 1

            logger.debug(f"Merge pass {pass_index}: {merges} merges, {len(graph)} regions left")
            if merges == 0:
                break
            remap = _resolve(remap)
            labels = remap[labels].astype(np.uint32)
            total_merges += merges

    graph.validate()
    relabeled, forward, _ = relabel_sequential(labels)
    mapping = np.zeros(num_segments + 1, dtype=np.int64)
    mapping[np.asarray(forward.in_values)] = np.asarray(forward.out_values)

    survivors = np.array(graph.nodes, dtype=np.int64)
    new_count = int(survivors.size)
    if np.count_nonzero(mapping[survivors]) != new_count:
        raise LabelConsistencyViolation("Region graph references labels absent from the segmentation")

    new_sizes = np.zeros(new_count + 1, dtype=np.int64)
    new_sizes[mapping[survivors]] = sizes[survivors]
    new_graph = graph.relabel(mapping, new_count)

    logger.info(f"Region merging: {total_merges} merges, {num_segments} -> {new_count} regions")
    return MergeResult(
        relabeled.astype(np.uint32), new_graph, new_sizes, new_count, total_merges
    )


def merge(
    segmentation: np.ndarray,
    region_graph: RegionGraph,
    region_sizes: np.ndarray,
    min_size: int,
    affinity_threshold: float,
) -> MergedSegmentation:
    """Merge regions smaller than ``min_size`` across edges >= ``affinity_threshold``.

    Returns:
        ``(segmentation, region_graph)``. Use :func:`merge_segments` for the
        region sizes and merge count as well.
    """
    policy = dynamic_size_threshold(min_size, affinity_threshold)
    result = merge_segments(segmentation, region_graph, region_sizes, policy)
    return MergedSegmentation(result.segmentation, result.region_graph)


__all__ = [
    "MergePolicy",
    "DynamicSizeThreshold",
    "dynamic_size_threshold",
    "MergeResult",
    "MergedSegmentation",
    "merge_segments",
    "merge",
]
