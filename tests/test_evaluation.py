import sys
from pathlib import Path

import numpy as np
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
from affinity_watershed.evaluation import (
    calculate_variation_of_information, partitions_equivalent, region_size_summary
)


def test_permuted_labels_are_equivalent():
    a = np.array([1, 1, 2, 3, 3, 2]).reshape(2, 3, 1)
    b = np.array([5, 5, 9, 4, 4, 9]).reshape(2, 3, 1)
    assert partitions_equivalent(a, b)
    assert calculate_variation_of_information(a, b) == pytest.approx(0.0)


def test_split_region_is_not_equivalent():
    a = np.array([1, 1, 2, 2]).reshape(2, 2, 1)
    b = np.array([1, 3, 2, 2]).reshape(2, 2, 1)
    assert not partitions_equivalent(a, b)
    assert not partitions_equivalent(b, a)
    # one half-region split off: VI = 0.5 bit
    assert calculate_variation_of_information(a, b) == pytest.approx(0.5)


def test_shape_mismatch():
    a = np.ones((2, 2, 1))
    assert not partitions_equivalent(a, np.ones((2, 1, 2)))
    with pytest.raises(ValueError):
        calculate_variation_of_information(a, np.ones((4, 1, 1)))


def test_region_size_summary():
    summary = region_size_summary(np.array([0, 4, 1, 7]))
    assert summary == {"count": 3, "min": 1, "max": 7, "mean": 4.0, "median": 4.0}
    assert region_size_summary(np.array([0]))["count"] == 0
