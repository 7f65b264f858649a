"""Arena-backed union-find over voxel indices."""

import numpy as np


class UnionFind:
    """Disjoint sets over ``0..n-1`` with path compression and union by size.

    Component records live in two integer arrays (``parent`` and ``size``)
    indexed by element id; there are no linked node objects.
    """

    def __init__(self, n: int):
        self.parent = np.arange(n, dtype=np.int64)
        self.size = np.ones(n, dtype=np.int64)
        self.num_components = int(n)

    def __len__(self) -> int:
        return self.parent.size

    def find(self, i: int) -> int:
        parent = self.parent
        root = int(i)
        while parent[root] != root:
            root = int(parent[root])
        # path compression
        while parent[i] != root:
            nxt = int(parent[i])
            parent[i] = root
            i = nxt
        return root

    def union(self, a: int, b: int, max_size=None) -> bool:
        """Merge the components of ``a`` and ``b``.

        Args:
            a, b: Element ids
            max_size: If given, refuse the union when both components already
                hold at least this many elements

        Returns:
            True if two distinct components were merged
        """
        ra = self.find(a)
        rb = self.find(b)
        if ra == rb:
            return False

        size = self.size
        if max_size is not None and size[ra] >= max_size and size[rb] >= max_size:
            return False

        if size[ra] < size[rb] or (size[ra] == size[rb] and rb < ra):
            ra, rb = rb, ra
        self.parent[rb] = ra
        size[ra] += size[rb]
        self.num_components -= 1
        return True

    def component_size(self, i: int) -> int:
        return int(self.size[self.find(i)])

    def roots(self) -> np.ndarray:
        """Return the root of every element (fully compresses the forest)."""
        parent = self.parent
        while True:
            grand = parent[parent]
            if np.array_equal(grand, parent):
                break
            parent = grand
        self.parent = parent
        return parent.copy()


__all__ = ["UnionFind"]
