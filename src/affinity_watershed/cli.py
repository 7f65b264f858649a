"""Command line entry point.

usage: affinity-watershed <aff_x_dir> <aff_y_dir> <aff_z_dir> <t_low> <t_high> <t_s> <min_size>

Exit status is 0 on success and 1 on a usage, input or pipeline error.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import PipelineConfig
from .errors import WatershedError
from .pipeline import segment_affinities
from .slices import read_affinity_slices, save_region_table, write_segmentation_slices
from .utils.common import ensure_directory, save_volume, setup_logging

logger = logging.getLogger(__name__)


class _ArgumentParser(argparse.ArgumentParser):
    """Reports usage errors with exit status 1 like every other failure."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="affinity-watershed",
        description="Segment an affinity graph stored as per-axis slice directories",
        epilog="""
Examples:
  # Watershed only (region merging disabled)
  affinity-watershed aff_x/ aff_y/ aff_z/ 0.3 0.9 0.5 100

  # Watershed followed by region merging
  affinity-watershed aff_x/ aff_y/ aff_z/ 0.3 0.9 0.5 100 --enable-region-merge
        """,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument("aff_x_dir", help="Directory of x-affinity slices")
    parser.add_argument("aff_y_dir", help="Directory of y-affinity slices")
    parser.add_argument("aff_z_dir", help="Directory of z-affinity slices")
    parser.add_argument("t_low", type=float, help="Low threshold (edges below never merge)")
    parser.add_argument("t_high", type=float, help="High threshold (edges at or above always merge)")
    parser.add_argument("t_s", type=float, help="Minimum affinity for region merging")
    parser.add_argument("min_size", type=int, help="Regions smaller than this are merged")
    parser.add_argument("--output-dir", default=".",
                        help="Directory for exported label slices (default: current directory)")
    parser.add_argument("--config", type=str,
                        help="Path to YAML configuration file")
    parser.add_argument("--enable-region-merge", action="store_true",
                        help="Run the region merging stage after the watershed")
    parser.add_argument("--max-sections", type=int, default=None,
                        help="Process only the first N sections")
    parser.add_argument("--save-npy", action="store_true",
                        help="Also save the label volume and region table")
    parser.add_argument("--verbose", action="store_true",
                        help="Enable verbose logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    log_level = logging.DEBUG if args.verbose else logging.INFO
    setup_logging(log_level)

    try:
        base = PipelineConfig.load_from_file(args.config) if args.config else PipelineConfig()
        config = PipelineConfig.from_args(
            args.t_low, args.t_high, args.t_s, args.min_size,
            enable_region_merge=args.enable_region_merge,
            base=base,
        )
        if args.max_sections is not None:
            config.io.max_sections = args.max_sections
        config.validate()

        logger.info(
            f"Performing affinity graph watershed on volumes "
            f"{args.aff_x_dir}, {args.aff_y_dir}, {args.aff_z_dir}"
        )
        affinity = read_affinity_slices(
            args.aff_x_dir, args.aff_y_dir, args.aff_z_dir,
            max_sections=config.io.max_sections,
            supported_formats=config.io.supported_formats,
        )

        result = segment_affinities(affinity, config)

        output_dir = ensure_directory(args.output_dir)
        write_segmentation_slices(
            result.segmentation, output_dir, result.metadata, ext=config.io.output_extension
        )
        if args.save_npy:
            save_volume(result.segmentation, Path(output_dir) / "segmentation.npy")
            save_region_table(result.region_sizes, Path(output_dir) / "region_sizes.csv")

    except (WatershedError, FileNotFoundError, OSError, ValueError) as e:
        logger.error(f"{e}")
        return 1

    logger.info(f"found {result.num_segments} segments, results saved to {output_dir}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
