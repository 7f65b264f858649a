#!/usr/bin/env python3
"""Test package imports and basic functionality."""

import unittest
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))


class TestPackageImports(unittest.TestCase):
    """Test that all main package components can be imported."""

    def test_main_package_import(self):
        """Test main package imports without errors."""
        import affinity_watershed
        self.assertTrue(hasattr(affinity_watershed, '__version__'))
        self.assertTrue(callable(affinity_watershed.watershed))

    def test_engine_imports(self):
        """Test watershed engine imports."""
        from affinity_watershed.engine import watershed, UnionFind, WatershedResult
        self.assertTrue(callable(watershed))
        self.assertEqual(WatershedResult._fields, ('segmentation', 'region_sizes', 'num_segments'))

    def test_region_imports(self):
        """Test region graph and merging imports."""
        from affinity_watershed.region import (
            build_region_graph, merge, merge_segments, dynamic_size_threshold
        )
        self.assertTrue(callable(build_region_graph))
        self.assertTrue(callable(merge))
        self.assertTrue(callable(merge_segments))
        self.assertTrue(callable(dynamic_size_threshold))

    def test_error_hierarchy(self):
        """Every pipeline error derives from WatershedError."""
        from affinity_watershed import errors
        for name in ("ShapeMismatch", "EmptyVolume", "InvalidThreshold",
                     "MalformedAffinity", "LabelConsistencyViolation"):
            self.assertTrue(issubclass(getattr(errors, name), errors.WatershedError))
        self.assertTrue(issubclass(errors.InvalidThreshold, ValueError))
        self.assertTrue(issubclass(errors.LabelConsistencyViolation, RuntimeError))

    def test_utils_imports(self):
        """Test utility imports."""
        from affinity_watershed.utils import setup_logging, Timer, ensure_directory
        from affinity_watershed.slices import list_slices, section_sort_key
        self.assertTrue(callable(setup_logging))
        self.assertTrue(callable(list_slices))
        self.assertTrue(callable(section_sort_key))

    def test_config_imports(self):
        """Test configuration imports."""
        from affinity_watershed.config import DEFAULT_CONFIG, PipelineConfig
        self.assertIsNotNone(DEFAULT_CONFIG)
        self.assertTrue(hasattr(PipelineConfig, 'load_from_file'))


class TestBasicFunctionality(unittest.TestCase):
    """Test basic functionality of key components."""

    def test_section_sort_functionality(self):
        """Test natural sorting utility."""
        from affinity_watershed.slices import section_sort_key

        test_files = ['aff1.tif', 'aff10.tif', 'aff2.tif', 'aff20.tif']
        test_paths = [Path(f) for f in test_files]

        alpha_sorted = [p.name for p in sorted(test_paths)]
        natural_sorted = [p.name for p in sorted(test_paths, key=section_sort_key)]

        self.assertNotEqual(alpha_sorted, natural_sorted)
        self.assertEqual(natural_sorted, ['aff1.tif', 'aff2.tif', 'aff10.tif', 'aff20.tif'])

    def test_mixed_names_sort(self):
        """Names mixing digits and text in the same position still sort."""
        from affinity_watershed.slices import section_sort_key

        names = ['b.tif', '3.tif', 'a1.tif']
        ordered = [p.name for p in sorted((Path(n) for n in names), key=section_sort_key)]
        self.assertEqual(ordered, ['3.tif', 'a1.tif', 'b.tif'])

    def test_shorter_name_first(self):
        """A name that is a prefix of another sorts first."""
        from affinity_watershed.slices import section_sort_key

        ordered = sorted([Path("aff1x.tif"), Path("aff1.tif")], key=section_sort_key)
        self.assertEqual([p.name for p in ordered], ["aff1.tif", "aff1x.tif"])

    def test_validate_labels(self):
        """Dense labelings pass, gaps and unlabeled voxels fail."""
        import numpy as np
        from affinity_watershed.errors import LabelConsistencyViolation
        from affinity_watershed.utils import validate_labels

        self.assertEqual(validate_labels(np.array([1, 2, 2, 3]).reshape(2, 2, 1)), (3, 3))
        with self.assertRaises(LabelConsistencyViolation):
            validate_labels(np.array([1, 0, 2, 2]).reshape(2, 2, 1))
        with self.assertRaises(LabelConsistencyViolation):
            validate_labels(np.array([1, 3, 3, 3]).reshape(2, 2, 1))

    def test_config_structure(self):
        """Test configuration structure."""
        from affinity_watershed.config import DEFAULT_CONFIG

        self.assertTrue(hasattr(DEFAULT_CONFIG, 'watershed'))
        self.assertTrue(hasattr(DEFAULT_CONFIG, 'merge'))
        self.assertTrue(hasattr(DEFAULT_CONFIG, 'io'))
        self.assertFalse(DEFAULT_CONFIG.merge.enable_region_merge)


if __name__ == '__main__':
    unittest.main()
