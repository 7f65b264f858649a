"""Result containers for the watershed stage."""

from typing import NamedTuple

import numpy as np


class WatershedResult(NamedTuple):
    """Output of :func:`watershed`.

    Unpacks as ``(segmentation, region_sizes, num_segments)``.

    Attributes:
        segmentation: ``uint32`` label volume, labels ``1..num_segments``
        region_sizes: Voxel count per label; index 0 is always 0
        num_segments: Number of regions found
    """
    segmentation: np.ndarray
    region_sizes: np.ndarray
    num_segments: int


__all__ = ["WatershedResult"]
