"""Slice stack import/export for affinity graphs and segmentations.

Affinities arrive as three directories (one per axis) of 2D images, one image
per z-section. Images are stored as ``(rows, cols) = (y, x)`` and transposed
into the ``(x, y)`` layout of :class:`AffinityGraph`.
"""

import logging
import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import cv2
import numpy as np
import pandas as pd
import tifffile
from tqdm import tqdm

from .affinity import AffinityGraph
from .errors import EmptyVolume, ShapeMismatch
from .utils.common import ensure_directory

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

SLICE_FORMATS = ("*.tif", "*.tiff", "*.png")

_DIGITS = re.compile(r"(\d+)")


def section_sort_key(path: Path) -> tuple:
    """Order slice files by the numbers in their names.

    ``aff_2.tif`` sorts before ``aff_10.tif``. Number runs compare as integers
    and rank ahead of text in the same position, so mixed names still compare.
    """
    key = []
    for part in _DIGITS.split(path.stem):
        if not part:
            continue
        key.append((0, int(part), "") if part.isdigit() else (1, 0, part.lower()))
    return tuple(key) + ((-1, 0, path.name),)


def list_slices(directory: PathLike, supported_formats: Sequence[str] = None) -> List[Path]:
    """Return the section files of one directory in section order.

    Files matched by several patterns (``*.tif`` and ``*.TIF`` on a
    case-insensitive filesystem) are listed once.
    """
    patterns = SLICE_FORMATS if supported_formats is None else supported_formats
    found = {p for pattern in patterns for p in Path(directory).glob(pattern) if p.is_file()}
    return sorted(found, key=section_sort_key)


def count_slices(*directories: PathLike, supported_formats: Sequence[str] = None) -> int:
    """Return the common number of slices in the given directories.

    Raises:
        FileNotFoundError: If a directory does not exist
        ShapeMismatch: If the directories hold different numbers of files
        EmptyVolume: If the directories hold no files
    """
    counts = []
    for directory in directories:
        if not Path(directory).is_dir():
            raise FileNotFoundError(f"Directory does not exist: {directory}")
        counts.append(len(list_slices(directory, supported_formats)))

    if len(set(counts)) > 1:
        raise ShapeMismatch(f"directories contain different number of files: {counts}")
    if not counts or counts[0] == 0:
        raise EmptyVolume("directories contain no files")
    return counts[0]


def read_slice(path: PathLike) -> np.ndarray:
    """Read one affinity image as ``float32`` in ``(x, y)`` layout.

    Integer images are scaled to [0, 1] by the maximum of their dtype.
    """
    img = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if img is None:
        raise OSError(f"Failed to read image: {path}")
    if img.ndim == 3:
        logger.warning(f"{path} has {img.shape[2]} channels, using the first")
        img = img[..., 0]

    if np.issubdtype(img.dtype, np.integer):
        data = img.astype(np.float32) / np.iinfo(img.dtype).max
    else:
        data = img.astype(np.float32)
    return data.T


def read_affinity_slices(
    aff_x_dir: PathLike,
    aff_y_dir: PathLike,
    aff_z_dir: PathLike,
    max_sections: Optional[int] = None,
    supported_formats: Sequence[str] = None,
) -> AffinityGraph:
    """Assemble an AffinityGraph from three per-axis slice directories.

    Args:
        aff_x_dir, aff_y_dir, aff_z_dir: Directories of per-section images
        max_sections: Read only the first N sections (None = all)
        supported_formats: Glob patterns for slice files

    Returns:
        AffinityGraph of shape ``(size_x, size_y, size_z, 3)``
    """
    size_z = count_slices(aff_x_dir, aff_y_dir, aff_z_dir, supported_formats=supported_formats)
    if max_sections is not None:
        if max_sections < 1:
            raise ValueError(f"max_sections must be positive, got {max_sections}")
        if max_sections < size_z:
            logger.warning(f"Reading only {max_sections} of {size_z} sections")
        size_z = min(size_z, max_sections)

    files = [
        list_slices(d, supported_formats)[:size_z]
        for d in (aff_x_dir, aff_y_dir, aff_z_dir)
    ]

    first = read_slice(files[0][0])
    size_x, size_y = first.shape
    logger.info(f"reading affinity graph of size {size_x}x{size_y}x{size_z}")

    data = np.zeros((size_x, size_y, size_z, 3), dtype=np.float32)
    for z in tqdm(range(size_z), desc="Reading sections"):
        for axis in range(3):
            path = files[axis][z]
            section = first if (axis == 0 and z == 0) else read_slice(path)
            if section.shape != (size_x, size_y):
                raise ShapeMismatch(
                    f"{path} has shape {section.shape[::-1]}, expected {(size_y, size_x)}"
                )
            data[:, :, z, axis] = section

    return AffinityGraph(data)


def slice_filename(
    z: int,
    t_low: float,
    t_high: float,
    merge_threshold: float,
    min_size: int,
    ext: str = "tif",
) -> str:
    """Export name encoding the run parameters, e.g. ``watershed_00000_0.3_0.9_0.5_100.tif``."""
    return (
        f"watershed_{z:05d}_{t_low:g}_{t_high:g}_{merge_threshold:g}_{min_size}."
        f"{ext.lstrip('.')}"
    )


def write_segmentation_slices(
    segmentation: np.ndarray,
    out_dir: PathLike,
    params: Dict[str, float],
    ext: str = "tif",
) -> List[Path]:
    """Write one ``uint32`` label image per z-section.

    Args:
        segmentation: Label volume of shape ``(x, y, z)``
        out_dir: Output directory (created if needed)
        params: Mapping with ``t_low``, ``t_high``, ``merge_affinity_threshold``
            and ``min_size`` (e.g. ``SegmentationResult.metadata``)
        ext: File extension, TIFF only

    Returns:
        List of written paths
    """
    if segmentation.ndim != 3:
        raise ShapeMismatch(f"Expected 3D segmentation, got {segmentation.ndim}D array")
    if ext.lstrip('.').lower() not in ("tif", "tiff"):
        raise ValueError(f"Label slices are written as TIFF, got extension {ext!r}")

    out_path = ensure_directory(out_dir)
    written = []
    for z in tqdm(range(segmentation.shape[2]), desc="Writing sections"):
        name = slice_filename(
            z,
            params['t_low'],
            params['t_high'],
            params['merge_affinity_threshold'],
            params['min_size'],
            ext,
        )
        path = out_path / name
        tifffile.imwrite(path, np.ascontiguousarray(segmentation[:, :, z].T, dtype=np.uint32))
        written.append(path)

    logger.info(f"Wrote {len(written)} sections to {out_path}")
    return written


def read_segmentation_slices(paths: Sequence[PathLike]) -> np.ndarray:
    """Read exported label slices back into an ``(x, y, z)`` volume."""
    if not paths:
        raise EmptyVolume("No segmentation slices given")
    sections = [tifffile.imread(str(p)).T for p in paths]
    shapes = {s.shape for s in sections}
    if len(shapes) != 1:
        raise ShapeMismatch(f"Segmentation slices differ in shape: {sorted(shapes)}")
    return np.stack(sections, axis=-1).astype(np.uint32)


def save_region_table(region_sizes: np.ndarray, out_csv: PathLike) -> None:
    """Save region sizes to a CSV file with ``label,size`` columns."""
    sizes = np.asarray(region_sizes)
    df = pd.DataFrame({'label': np.arange(1, sizes.size), 'size': sizes[1:]})
    ensure_directory(Path(out_csv).parent)
    df.to_csv(out_csv, index=False)
    logger.info("Saved region table to %s", out_csv)


__all__ = [
    "SLICE_FORMATS",
    "section_sort_key",
    "list_slices",
    "count_slices",
    "read_slice",
    "read_affinity_slices",
    "slice_filename",
    "write_segmentation_slices",
    "read_segmentation_slices",
    "save_region_table",
]
