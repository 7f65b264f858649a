"""Comparison metrics for segmentations.

Two segmentations are considered the same when they induce the same
partition of voxels, whatever label values they use:
- Variation of Information (VI) between labelings, 0 for identical partitions
- Exact partition equivalence (equal up to a relabeling permutation)
- Summary statistics of region sizes
"""

import logging
from typing import Dict

import numpy as np

logger = logging.getLogger(__name__)


def _contingency(labels_a: np.ndarray, labels_b: np.ndarray):
    """Return the non-zero joint counts and both marginals."""
    a_inv = np.unique(labels_a.ravel(), return_inverse=True)[1].ravel()
    b_values, b_inv = np.unique(labels_b.ravel(), return_inverse=True)
    b_inv = b_inv.ravel()

    # 1D joint index over (a, b) pairs; only observed pairs are kept
    joint_index = a_inv.astype(np.int64) * b_values.size + b_inv.astype(np.int64)
    _, joint_counts = np.unique(joint_index, return_counts=True)
    return (
        joint_counts.astype(float),
        np.bincount(a_inv).astype(float),
        np.bincount(b_inv).astype(float),
    )


def calculate_variation_of_information(
    labels_a: np.ndarray,
    labels_b: np.ndarray,
) -> float:
    """Compute Variation of Information (VI) between two labelings.

    VI(X, Y) = H(X) + H(Y) - 2 I(X; Y) = 2 H(X, Y) - H(X) - H(Y),
    lower is better (0 if the partitions are identical).

    Args:
        labels_a: 3D labeled volume A
        labels_b: 3D labeled volume B

    Returns:
        float: VI value in bits (>=0)
    """
    if labels_a.shape != labels_b.shape:
        raise ValueError("labels_a and labels_b must have the same shape")
    if labels_a.size == 0:
        return 0.0

    joint, pa, pb = _contingency(labels_a, labels_b)
    n = float(labels_a.size)

    def entropy(counts: np.ndarray) -> float:
        p = counts[counts > 0] / n
        return float(-np.sum(p * np.log2(p)))

    vi = 2.0 * entropy(joint) - entropy(pa) - entropy(pb)
    # Numerical guard
    return float(max(0.0, vi))


def partitions_equivalent(labels_a: np.ndarray, labels_b: np.ndarray) -> bool:
    """Return True if both labelings group the voxels identically.

    This holds exactly when every label of A co-occurs with one label of B
    and vice versa, i.e. the labelings differ by a permutation.
    """
    if labels_a.shape != labels_b.shape:
        return False
    if labels_a.size == 0:
        return True
    joint, pa, pb = _contingency(labels_a, labels_b)
    return joint.size == pa.size == pb.size


def region_size_summary(region_sizes: np.ndarray) -> Dict[str, float]:
    """Summarise region sizes (index 0, the unassigned label, is ignored).

    Returns:
        Dict with ``count``, ``min``, ``max``, ``mean`` and ``median``
    """
    sizes = np.asarray(region_sizes)[1:]
    if sizes.size == 0:
        return {"count": 0, "min": 0, "max": 0, "mean": 0.0, "median": 0.0}
    return {
        "count": int(sizes.size),
        "min": int(sizes.min()),
        "max": int(sizes.max()),
        "mean": float(sizes.mean()),
        "median": float(np.median(sizes)),
    }


__all__ = [
    "calculate_variation_of_information",
    "partitions_equivalent",
    "region_size_summary",
]
