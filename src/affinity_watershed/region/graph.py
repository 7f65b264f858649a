"""Region adjacency graph over segment labels.

Each edge between two adjacent regions carries one aggregated affinity: the
**maximum** weight of all voxel-edges crossing the boundary between them. The
same rule is used when merges redirect edges onto an existing one, so the
graph always equals what a fresh build over the current labeling would give.
"""

import logging
from typing import Dict, Iterator, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from ..affinity import AffinityGraph
from ..errors import LabelConsistencyViolation, ShapeMismatch
from ..utils.common import Timer

logger = logging.getLogger(__name__)

AGGREGATION = "max"


class RegionGraph:
    """Undirected graph with one node per live region label."""

    def __init__(self, num_segments: int):
        self.num_segments = int(num_segments)
        self._adjacency: Dict[int, Dict[int, float]] = {
            label: {} for label in range(1, self.num_segments + 1)
        }

    def __contains__(self, label: int) -> bool:
        return label in self._adjacency

    def __len__(self) -> int:
        return len(self._adjacency)

    def __repr__(self) -> str:
        return f"RegionGraph(nodes={len(self)}, edges={self.num_edges})"

    @property
    def nodes(self) -> List[int]:
        return sorted(self._adjacency)

    @property
    def num_edges(self) -> int:
        return sum(len(nbrs) for nbrs in self._adjacency.values()) // 2

    def _check_node(self, label: int) -> None:
        if label not in self._adjacency:
            raise LabelConsistencyViolation(f"Region graph has no node {label}")

    def add_edge(self, a: int, b: int, weight: float) -> None:
        """Add an edge, keeping the maximum weight if it already exists."""
        a, b = int(a), int(b)
        if a == b:
            raise LabelConsistencyViolation(f"Self-edge on region {a}")
        self._check_node(a)
        self._check_node(b)
        weight = float(weight)
        current = self._adjacency[a].get(b)
        if current is None or weight > current:
            self._adjacency[a][b] = weight
            self._adjacency[b][a] = weight

    def weight(self, a: int, b: int) -> Optional[float]:
        return self._adjacency.get(a, {}).get(b)

    def neighbors(self, label: int) -> Dict[int, float]:
        """Return ``{neighbour_label: affinity}`` for a region."""
        self._check_node(label)
        return dict(self._adjacency[label])

    def edges(self) -> Iterator[Tuple[int, int, float]]:
        """Yield ``(a, b, affinity)`` with ``a < b`` in ascending order."""
        for a in sorted(self._adjacency):
            for b in sorted(self._adjacency[a]):
                if a < b:
                    yield a, b, self._adjacency[a][b]

    def merge_nodes(self, survivor: int, victim: int) -> None:
        """Fold ``victim`` into ``survivor`` and retire the victim's node.

        The victim's edges are redirected to the survivor. Duplicate edges keep
        the maximum weight; the edge between the two disappears.
        """
        if survivor == victim:
            raise LabelConsistencyViolation(f"Cannot merge region {victim} into itself")
        self._check_node(survivor)
        self._check_node(victim)

        victim_edges = self._adjacency.pop(victim)
        self._adjacency[survivor].pop(victim, None)
        for nbr, w in victim_edges.items():
            if nbr == survivor:
                continue
            del self._adjacency[nbr][victim]
            self.add_edge(survivor, nbr, w)

    def relabel(self, mapping: np.ndarray, num_segments: int) -> "RegionGraph":
        """Return a copy with every label ``l`` renamed to ``mapping[l]``."""
        graph = RegionGraph(num_segments)
        for old in self._adjacency:
            if int(mapping[old]) not in graph:
                raise LabelConsistencyViolation(
                    f"Label {old} maps to {int(mapping[old])}, outside 1..{num_segments}"
                )
        for a, b, w in self.edges():
            graph.add_edge(int(mapping[a]), int(mapping[b]), w)
        return graph

    def copy(self) -> "RegionGraph":
        graph = RegionGraph(0)
        graph.num_segments = self.num_segments
        graph._adjacency = {k: dict(v) for k, v in self._adjacency.items()}
        return graph

    def validate(self) -> None:
        """Check symmetry and that every edge references a live node.

        Raises:
            LabelConsistencyViolation: If the graph is inconsistent
        """
        for a, nbrs in self._adjacency.items():
            for b, w in nbrs.items():
                if b == a:
                    raise LabelConsistencyViolation(f"Self-edge on region {a}")
                if b not in self._adjacency:
                    raise LabelConsistencyViolation(
                        f"Edge ({a}, {b}) references retired label {b}"
                    )
                if self._adjacency[b].get(a) != w:
                    raise LabelConsistencyViolation(f"Edge ({a}, {b}) is not symmetric")

    def to_dataframe(self) -> pd.DataFrame:
        """Edge table with columns ``label_a``, ``label_b``, ``affinity``."""
        rows = list(self.edges())
        return pd.DataFrame(rows, columns=["label_a", "label_b", "affinity"])


def build_region_graph(
    affinity_graph: Union[AffinityGraph, np.ndarray],
    segmentation: np.ndarray,
    num_segments: int,
) -> RegionGraph:
    """Derive the region adjacency graph from an affinity graph and labeling.

    Scans every voxel-edge once. Edges whose endpoints carry different labels
    are grouped by unordered label pair and reduced with ``max``.

    Args:
        affinity_graph: AffinityGraph (or raw ``(x, y, z, 3)`` array)
        segmentation: Label volume of shape ``(x, y, z)``, labels ``1..num_segments``
        num_segments: Number of regions; every label gets a node

    Returns:
        RegionGraph

    Raises:
        ShapeMismatch: If the segmentation does not match the affinity volume
        LabelConsistencyViolation: If a voxel is unlabeled or out of range
    """
    if not isinstance(affinity_graph, AffinityGraph):
        affinity_graph = AffinityGraph(affinity_graph)

    segmentation = np.asarray(segmentation)
    if segmentation.shape != affinity_graph.shape:
        raise ShapeMismatch(
            f"Segmentation shape {segmentation.shape} does not match "
            f"affinity volume {affinity_graph.shape}"
        )
    if segmentation.min() < 1 or segmentation.max() > num_segments:
        raise LabelConsistencyViolation(
            f"Segmentation labels must lie in 1..{num_segments}, "
            f"found range {segmentation.min()}..{segmentation.max()}"
        )

    graph = RegionGraph(num_segments)

    with Timer("Region graph construction"):
        lows, highs, weights = [], [], []
        shape = segmentation.shape
        for axis in range(3):
            if shape[axis] < 2:
                continue
            inner = [slice(None)] * 3
            outer = [slice(None)] * 3
            inner[axis] = slice(0, shape[axis] - 1)
            outer[axis] = slice(1, shape[axis])
            inner, outer = tuple(inner), tuple(outer)

            current = segmentation[inner]
            neighbor = segmentation[outer]
            boundary = current != neighbor
            if not boundary.any():
                continue

            a = current[boundary].astype(np.int64)
            b = neighbor[boundary].astype(np.int64)
            lows.append(np.minimum(a, b))
            highs.append(np.maximum(a, b))
            weights.append(affinity_graph.channel(axis)[inner][boundary])

        if lows:
            crossings = pd.DataFrame({
                "label_a": np.concatenate(lows),
                "label_b": np.concatenate(highs),
                "affinity": np.concatenate(weights),
            })
            aggregated = crossings.groupby(["label_a", "label_b"], sort=True)["affinity"].max()
            for (a, b), w in aggregated.items():
                graph.add_edge(a, b, w)

    logger.info(f"Region graph: {len(graph)} regions, {graph.num_edges} edges")
    return graph


__all__ = ["RegionGraph", "build_region_graph", "AGGREGATION"]
