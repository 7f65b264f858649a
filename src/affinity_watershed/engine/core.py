"""Hysteresis watershed on an affinity graph.

Voxels are merged with a union-find in three steps:

1. Edges with weight >= ``t_high`` are merged unconditionally.
2. Edges with weight < ``t_low`` are discarded.
3. The remaining edges are merged in strictly descending weight order, ties
   broken by linear voxel index (C order over ``(x, y, z)``) and then by axis.

Components are then relabeled to ``1..num_segments`` in ascending order of
their smallest linear voxel index.
"""

import logging
import math
from typing import Optional, Union

import numpy as np
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import connected_components
from tqdm import tqdm

from ..affinity import AffinityGraph
from ..errors import InvalidThreshold
from ..utils.common import Timer
from .data_structures import WatershedResult
from .union_find import UnionFind

logger = logging.getLogger(__name__)

METHODS = ("auto", "union_find", "sparse")


def check_thresholds(t_low: float, t_high: float) -> None:
    """Validate the hysteresis thresholds.

    Raises:
        InvalidThreshold: If a threshold is non-finite or ``t_low > t_high``
    """
    for name, value in (("t_low", t_low), ("t_high", t_high)):
        try:
            finite = math.isfinite(value)
        except TypeError:
            raise InvalidThreshold(f"{name} must be a number, got {value!r}")
        if not finite:
            raise InvalidThreshold(f"{name} must be finite, got {value}")
    if t_low > t_high:
        raise InvalidThreshold(f"t_low ({t_low}) must not exceed t_high ({t_high})")


def check_max_merge_size(max_merge_size) -> None:
    """Validate the optional plateau size (``None`` or an integer >= 1).

    Raises:
        InvalidThreshold: For any other value
    """
    if max_merge_size is None:
        return
    if (isinstance(max_merge_size, bool) or not isinstance(max_merge_size, (int, np.integer))
            or max_merge_size < 1):
        raise InvalidThreshold(f"max_merge_size must be a positive integer, got {max_merge_size!r}")


def dense_labels(components: np.ndarray) -> tuple:
    """Relabel per-voxel component ids to ``1..n`` by first occurrence.

    Args:
        components: Flat array of arbitrary component ids, one per voxel

    Returns:
        Tuple of (flat ``uint32`` labels, number of components)
    """
    _, first, inverse = np.unique(components, return_index=True, return_inverse=True)
    order = np.argsort(first, kind="stable")
    rank = np.empty_like(order)
    rank[order] = np.arange(order.size)
    labels = (rank[inverse.ravel()] + 1).astype(np.uint32)
    return labels, int(order.size)


def _union_find_components(
    sources: np.ndarray,
    targets: np.ndarray,
    weights: np.ndarray,
    axes: np.ndarray,
    num_voxels: int,
    t_low: np.floating,
    t_high: np.floating,
    max_merge_size: Optional[int],
) -> np.ndarray:
    uf = UnionFind(num_voxels)

    high = weights >= t_high
    logger.debug(f"Merging {int(high.sum())} edges above t_high")
    for a, b in zip(sources[high].tolist(), targets[high].tolist()):
        uf.union(a, b)
    logger.debug(f"{uf.num_components} components after unconditional merge")

    mid = (weights >= t_low) & ~high
    mid_sources = sources[mid]
    mid_targets = targets[mid]
    # lexsort: last key is primary
    order = np.lexsort((axes[mid], mid_sources, -weights[mid]))

    merged = 0
    for a, b in tqdm(
        zip(mid_sources[order].tolist(), mid_targets[order].tolist()),
        total=order.size,
        desc="Ordered merge",
        disable=order.size == 0,
    ):
        if uf.union(a, b, max_size=max_merge_size):
            merged += 1
    logger.debug(f"Ordered pass merged {merged} of {order.size} edges")

    return uf.roots()


def _sparse_components(
    sources: np.ndarray,
    targets: np.ndarray,
    weights: np.ndarray,
    num_voxels: int,
    t_low: np.floating,
) -> np.ndarray:
    # Plain union of every edge >= t_low is order independent, so the
    # partition equals the connected components of that edge set.
    keep = weights >= t_low
    graph = coo_matrix(
        (np.ones(int(keep.sum()), dtype=np.int8), (sources[keep], targets[keep])),
        shape=(num_voxels, num_voxels),
    )
    _, components = connected_components(graph, directed=False)
    return components


def watershed(
    affinity_graph: Union[AffinityGraph, np.ndarray],
    t_low: float,
    t_high: float,
    max_merge_size: Optional[int] = None,
    method: str = "auto",
) -> WatershedResult:
    """Segment an affinity graph into regions.

    Args:
        affinity_graph: AffinityGraph, or a raw ``(x, y, z, 3)`` array
        t_low: Edges below this weight never cause a merge
        t_high: Edges at or above this weight are always merged
        max_merge_size: Optional plateau rule: an ordered-pass edge is not
            merged when both components already hold at least this many
            voxels. ``None`` (default) means plain union.
        method: ``"union_find"`` runs the sequential reference algorithm,
            ``"sparse"`` uses ``scipy.sparse.csgraph`` (only valid without a
            plateau rule), ``"auto"`` picks ``"sparse"`` when possible

    Returns:
        WatershedResult ``(segmentation, region_sizes, num_segments)``

    Raises:
        InvalidThreshold: For bad thresholds or plateau size
        ShapeMismatch, EmptyVolume, MalformedAffinity: For bad input arrays
    """
    check_thresholds(t_low, t_high)
    check_max_merge_size(max_merge_size)
    if method not in METHODS:
        raise ValueError(f"method must be one of {METHODS}, got {method!r}")
    if method == "sparse" and max_merge_size is not None:
        raise ValueError("The sparse method cannot apply a plateau rule (max_merge_size)")

    if not isinstance(affinity_graph, AffinityGraph):
        affinity_graph = AffinityGraph(affinity_graph)

    if method == "auto":
        method = "sparse" if max_merge_size is None else "union_find"

    shape = affinity_graph.shape
    num_voxels = affinity_graph.num_voxels
    # thresholds are compared in the storage precision of the weights
    weight_type = affinity_graph.data.dtype.type
    low = weight_type(t_low)
    high = weight_type(t_high)

    logger.info(
        f"Watershed on {shape[0]}x{shape[1]}x{shape[2]} volume "
        f"(t_low={t_low}, t_high={t_high}, method={method})"
    )

    with Timer("Watershed"):
        sources, targets, weights, axes = affinity_graph.edges()
        if method == "sparse":
            components = _sparse_components(sources, targets, weights, num_voxels, low)
        else:
            components = _union_find_components(
                sources, targets, weights, axes, num_voxels, low, high, max_merge_size
            )

        labels, num_segments = dense_labels(components)
        segmentation = labels.reshape(shape)
        region_sizes = np.bincount(labels, minlength=num_segments + 1).astype(np.int64)

    logger.info(f"found {num_segments} segments")
    return WatershedResult(segmentation, region_sizes, num_segments)


__all__ = ["watershed", "check_thresholds", "check_max_merge_size", "dense_labels", "METHODS"]
