"""Check that the per-axis affinity directories hold matching slice stacks.

Usage:
    python scripts/check_file_count.py <aff_x_dir> <aff_y_dir> <aff_z_dir>
"""

import sys
from pathlib import Path

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from affinity_watershed.errors import WatershedError
from affinity_watershed.slices import count_slices
from affinity_watershed.slices import list_slices


def check_files(directories):
    """Report slice counts per directory and whether they are consistent."""
    print("=" * 70)
    for directory in directories:
        folder = Path(directory)
        if not folder.exists():
            print(f"Folder not found: {directory}")
            continue
        files = list_slices(folder)
        print(f"{folder}: {len(files)} slices")
        for i, f in enumerate(files[:3]):
            print(f"   {i+1}. {f.name}")

    try:
        n = count_slices(*directories)
    except (WatershedError, FileNotFoundError) as e:
        print(f"\nInconsistent input: {e}")
        print("=" * 70)
        return 1

    print(f"\nAll directories hold {n} slices")
    print("=" * 70)
    return 0


if __name__ == "__main__":
    if len(sys.argv) < 4:
        print("Usage: python scripts/check_file_count.py <aff_x_dir> <aff_y_dir> <aff_z_dir>")
        sys.exit(1)

    sys.exit(check_files(sys.argv[1:4]))
