#!/usr/bin/env python3
"""Run the affinity graph watershed on per-axis slice directories.

usage: run_watershed.py <aff_x_dir> <aff_y_dir> <aff_z_dir> <t_l> <t_h> <t_s> <ms>
"""

import sys
from pathlib import Path

# Add src to Python path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from affinity_watershed.cli import main


if __name__ == "__main__":
    sys.exit(main())
