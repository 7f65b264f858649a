import sys
from pathlib import Path

import cv2
import numpy as np
import pandas as pd
import pytest
import tifffile

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
from affinity_watershed.errors import EmptyVolume, ShapeMismatch
from affinity_watershed.slices import (
    count_slices,
    list_slices,
    read_affinity_slices,
    read_segmentation_slices,
    save_region_table,
    slice_filename,
    write_segmentation_slices,
)


def write_stack(directory, sections):
    """Write 2D (rows=y, cols=x) uint8 images as slice_000.png, ..."""
    directory.mkdir(parents=True, exist_ok=True)
    for z, img in enumerate(sections):
        cv2.imwrite(str(directory / f"slice_{z:03d}.png"), img)


@pytest.fixture
def affinity_dirs(tmp_path):
    """Three per-axis directories with two 3x4 (rows x cols) sections each."""
    rng = np.random.default_rng(0)
    stacks = {}
    for name in ("aff_x", "aff_y", "aff_z"):
        sections = [rng.integers(0, 256, size=(3, 4), dtype=np.uint8) for _ in range(2)]
        write_stack(tmp_path / name, sections)
        stacks[name] = sections
    return tmp_path, stacks


def test_read_affinity_slices(affinity_dirs):
    base, stacks = affinity_dirs
    aff = read_affinity_slices(base / "aff_x", base / "aff_y", base / "aff_z")

    # images are (y, x); the graph is (x, y, z)
    assert aff.shape == (4, 3, 2)
    for axis, name in enumerate(("aff_x", "aff_y", "aff_z")):
        for z, img in enumerate(stacks[name]):
            expected = img.T.astype(np.float32) / 255.0
            assert np.allclose(aff.data[:, :, z, axis], expected)


def test_read_float_tiff(tmp_path):
    """Float TIFF slices are read without rescaling."""
    img = np.array([[0.1, 0.9], [0.5, 0.25]], dtype=np.float32)
    for name in ("x", "y", "z"):
        (tmp_path / name).mkdir()
        cv2.imwrite(str(tmp_path / name / "s0.tif"), img)
    aff = read_affinity_slices(tmp_path / "x", tmp_path / "y", tmp_path / "z")
    assert np.allclose(aff.data[:, :, 0, 0], img.T)


def test_max_sections(affinity_dirs):
    base, _ = affinity_dirs
    aff = read_affinity_slices(base / "aff_x", base / "aff_y", base / "aff_z", max_sections=1)
    assert aff.shape == (4, 3, 1)


def test_mismatched_counts(affinity_dirs):
    base, _ = affinity_dirs
    (base / "aff_z" / "slice_001.png").unlink()
    with pytest.raises(ShapeMismatch):
        count_slices(base / "aff_x", base / "aff_y", base / "aff_z")


def test_empty_directories(tmp_path):
    for name in ("x", "y", "z"):
        (tmp_path / name).mkdir()
    with pytest.raises(EmptyVolume):
        read_affinity_slices(tmp_path / "x", tmp_path / "y", tmp_path / "z")


def test_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        count_slices(tmp_path / "nope")


def test_inconsistent_slice_size(affinity_dirs):
    base, _ = affinity_dirs
    cv2.imwrite(str(base / "aff_y" / "slice_001.png"), np.zeros((5, 5), dtype=np.uint8))
    with pytest.raises(ShapeMismatch):
        read_affinity_slices(base / "aff_x", base / "aff_y", base / "aff_z")


def test_natural_section_order(tmp_path):
    """slice_10 comes after slice_2."""
    for name in ("x", "y", "z"):
        d = tmp_path / name
        d.mkdir()
        cv2.imwrite(str(d / "slice_2.png"), np.full((2, 2), 0, dtype=np.uint8))
        cv2.imwrite(str(d / "slice_10.png"), np.full((2, 2), 255, dtype=np.uint8))
    aff = read_affinity_slices(tmp_path / "x", tmp_path / "y", tmp_path / "z")
    assert np.all(aff.data[:, :, 0, :] == 0.0)
    assert np.all(aff.data[:, :, 1, :] == 1.0)


def test_list_slices_filters_and_deduplicates(tmp_path):
    """Overlapping patterns list a file once; directories and other formats are skipped."""
    for name in ("s10.tif", "s2.tif", "s1.png", "notes.txt"):
        (tmp_path / name).write_bytes(b"")
    (tmp_path / "s3.tif").mkdir()

    names = [p.name for p in list_slices(tmp_path)]
    assert names == ["s1.png", "s2.tif", "s10.tif"]

    overlapping = [p.name for p in list_slices(tmp_path, ("*.tif", "s*.tif"))]
    assert overlapping == ["s2.tif", "s10.tif"]


def test_slice_filename():
    assert slice_filename(0, 0.3, 0.9, 0.5, 100) == "watershed_00000_0.3_0.9_0.5_100.tif"
    assert slice_filename(12, 0.25, 1.0, 0.0, 0, ext=".tiff") == "watershed_00012_0.25_1_0_0.tiff"


def test_write_and_read_segmentation(tmp_path):
    segmentation = np.arange(1, 25, dtype=np.uint32).reshape(4, 3, 2)
    params = {"t_low": 0.3, "t_high": 0.9, "merge_affinity_threshold": 0.5, "min_size": 10}

    paths = write_segmentation_slices(segmentation, tmp_path / "out", params)

    assert [p.name for p in paths] == [
        "watershed_00000_0.3_0.9_0.5_10.tif",
        "watershed_00001_0.3_0.9_0.5_10.tif",
    ]
    assert tifffile.imread(str(paths[0])).shape == (3, 4)
    assert np.array_equal(read_segmentation_slices(paths), segmentation)


def test_write_rejects_non_tiff(tmp_path):
    params = {"t_low": 0.3, "t_high": 0.9, "merge_affinity_threshold": 0.5, "min_size": 10}
    with pytest.raises(ValueError):
        write_segmentation_slices(np.ones((2, 2, 1), dtype=np.uint32), tmp_path, params, ext="png")


def test_save_region_table(tmp_path):
    out_csv = tmp_path / "tables" / "sizes.csv"
    save_region_table(np.array([0, 5, 3]), out_csv)
    df = pd.read_csv(out_csv)
    assert df["label"].tolist() == [1, 2]
    assert df["size"].tolist() == [5, 3]
