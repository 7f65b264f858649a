"""Affinity graph container.

An affinity graph stores one weight per voxel and axis: ``aff[x, y, z, a]`` is
the predicted affinity between voxel ``(x, y, z)`` and its neighbour one step
along axis ``a``. The weight stored at the last voxel along an axis has no
neighbour and is never traversed.
"""

import logging
from typing import Iterator, Tuple

import numpy as np

from .errors import EmptyVolume, MalformedAffinity, ShapeMismatch

logger = logging.getLogger(__name__)

NUM_AXES = 3


class AffinityGraph:
    """Read-only 4D affinity array of shape ``(size_x, size_y, size_z, 3)``.

    Args:
        data: 4D array of affinities. Copied and frozen as ``float32``, or as
            ``float64`` when the input already carries that precision.

    Raises:
        ShapeMismatch: If ``data`` is not 4D or its last dimension is not 3
        EmptyVolume: If any spatial dimension is zero
        MalformedAffinity: If any weight is NaN or infinite, or the dtype is not real
    """

    def __init__(self, data: np.ndarray):
        data = np.asarray(data)
        if data.ndim != 4 or data.shape[-1] != NUM_AXES:
            raise ShapeMismatch(
                f"Affinity graph must have shape (x, y, z, {NUM_AXES}), got {data.shape}"
            )
        if int(np.prod(data.shape[:3])) == 0:
            raise EmptyVolume(f"Affinity graph has no voxels (shape={data.shape})")

        if not (np.issubdtype(data.dtype, np.floating) or np.issubdtype(data.dtype, np.integer)
                or data.dtype == np.bool_):
            raise MalformedAffinity(f"Affinity weights must be real numbers, got dtype {data.dtype}")

        # copy, so later writes to the caller's array cannot leak in
        weights = np.array(data, dtype=np.result_type(data.dtype, np.float32), order="C")
        if not np.isfinite(weights).all():
            bad = int(np.count_nonzero(~np.isfinite(weights)))
            raise MalformedAffinity(f"Affinity graph contains {bad} non-finite weights")
        weights.setflags(write=False)

        self._data = weights
        logger.debug(f"Created affinity graph of size {self.size_x}x{self.size_y}x{self.size_z}")

    @classmethod
    def from_channels(
        cls, aff_x: np.ndarray, aff_y: np.ndarray, aff_z: np.ndarray
    ) -> "AffinityGraph":
        """Stack three per-axis 3D volumes into one affinity graph."""
        channels = [np.asarray(c) for c in (aff_x, aff_y, aff_z)]
        shapes = {c.shape for c in channels}
        if len(shapes) != 1:
            raise ShapeMismatch(
                f"Per-axis affinity volumes differ in shape: {[c.shape for c in channels]}"
            )
        if channels[0].ndim != 3:
            raise ShapeMismatch(f"Expected 3D per-axis volumes, got {channels[0].ndim}D")
        return cls(np.stack(channels, axis=-1))

    @property
    def data(self) -> np.ndarray:
        return self._data

    @property
    def shape(self) -> Tuple[int, int, int]:
        """Spatial shape ``(size_x, size_y, size_z)``."""
        return tuple(int(s) for s in self._data.shape[:3])

    @property
    def size_x(self) -> int:
        return self.shape[0]

    @property
    def size_y(self) -> int:
        return self.shape[1]

    @property
    def size_z(self) -> int:
        return self.shape[2]

    @property
    def num_voxels(self) -> int:
        return int(np.prod(self.shape))

    def channel(self, axis: int) -> np.ndarray:
        """Return the read-only 3D weight volume for one axis."""
        return self._data[..., axis]

    def axis_edges(self, axis: int) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
        """Return the real voxel-edges along one axis.

        Boundary weights (last voxel along ``axis``) are excluded.

        Returns:
            Tuple ``(sources, targets, weights)`` where sources and targets are
            linear voxel indices in C order over ``(x, y, z)``.
        """
        shape = self.shape
        if shape[axis] < 2:
            empty = np.empty(0, dtype=np.int64)
            return empty, empty.copy(), np.empty(0, dtype=self._data.dtype)

        index = np.arange(self.num_voxels, dtype=np.int64).reshape(shape)
        inner = [slice(None)] * 3
        inner[axis] = slice(0, shape[axis] - 1)
        inner = tuple(inner)
        outer = [slice(None)] * 3
        outer[axis] = slice(1, shape[axis])
        outer = tuple(outer)

        sources = index[inner].ravel()
        targets = index[outer].ravel()
        weights = self.channel(axis)[inner].ravel()
        return sources, targets, weights

    def iter_axis_edges(self) -> Iterator[Tuple[int, np.ndarray, np.ndarray, np.ndarray]]:
        """Yield ``(axis, sources, targets, weights)`` for each axis."""
        for axis in range(NUM_AXES):
            yield (axis,) + self.axis_edges(axis)

    def edges(self) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray]:
        """Return all real voxel-edges of the graph.

        Returns:
            Tuple ``(sources, targets, weights, axes)`` of flat arrays
        """
        parts = list(self.iter_axis_edges())
        sources = np.concatenate([p[1] for p in parts])
        targets = np.concatenate([p[2] for p in parts])
        weights = np.concatenate([p[3] for p in parts])
        axes = np.concatenate([np.full(p[1].size, p[0], dtype=np.int8) for p in parts])
        return sources, targets, weights, axes

    def __repr__(self) -> str:
        return f"AffinityGraph(shape={self.shape})"


__all__ = ["AffinityGraph", "NUM_AXES"]
