"""Configuration settings for the affinity watershed pipeline.

Default thresholds:
- t_low = 0.3, t_high = 0.9 (hysteresis band of the watershed)
- region merging is wired but disabled unless ``enable_region_merge`` is set
"""

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml

from .engine.core import check_max_merge_size
from .errors import InvalidThreshold


@dataclass
class WatershedConfig:
    """Configuration for the hysteresis watershed."""
    t_low: float = 0.3  # Edges below never merge
    t_high: float = 0.9  # Edges at or above always merge
    max_merge_size: Optional[int] = None  # Plateau rule (None = plain union)
    method: str = "auto"  # "auto", "union_find" or "sparse"


@dataclass
class MergeConfig:
    """Configuration for size/affinity region merging."""
    enable_region_merge: bool = False  # Stage is off by default
    min_size: int = 0  # Regions below this size are eligible
    merge_affinity_threshold: float = 0.0  # Minimum edge affinity to merge across


@dataclass
class IOConfig:
    """Configuration for slice import/export."""
    supported_formats: tuple = ("*.tif", "*.tiff", "*.png")  # Slice glob patterns
    output_extension: str = "tif"  # Exported label slice format
    max_sections: Optional[int] = None  # Read only the first N sections (None = all)


@dataclass
class PipelineConfig:
    """Main pipeline configuration."""
    watershed: WatershedConfig = None
    merge: MergeConfig = None
    io: IOConfig = None

    def __post_init__(self):
        if self.watershed is None:
            self.watershed = WatershedConfig()
        if self.merge is None:
            self.merge = MergeConfig()
        if self.io is None:
            self.io = IOConfig()

    # Global settings
    verbose: bool = False

    def validate(self) -> None:
        """Check parameter preconditions.

        Raises:
            InvalidThreshold: If a threshold is non-finite, ``t_low > t_high``,
                ``min_size`` is negative, or ``max_merge_size`` is not a
                positive integer
            ValueError: If ``max_sections`` is not a positive integer
        """
        ws = self.watershed
        for name, value in (("t_low", ws.t_low), ("t_high", ws.t_high),
                            ("merge_affinity_threshold", self.merge.merge_affinity_threshold)):
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise InvalidThreshold(f"{name} must be a finite number, got {value!r}")
        if ws.t_low > ws.t_high:
            raise InvalidThreshold(f"t_low ({ws.t_low}) must not exceed t_high ({ws.t_high})")
        min_size = self.merge.min_size
        if isinstance(min_size, bool) or not isinstance(min_size, int) or min_size < 0:
            raise InvalidThreshold(f"min_size must be a non-negative integer, got {self.merge.min_size!r}")
        check_max_merge_size(ws.max_merge_size)
        max_sections = self.io.max_sections
        if max_sections is not None and (
            isinstance(max_sections, bool) or not isinstance(max_sections, int) or max_sections < 1
        ):
            raise ValueError(f"max_sections must be a positive integer, got {max_sections!r}")

    @classmethod
    def from_args(
        cls,
        t_low: float,
        t_high: float,
        merge_affinity_threshold: float,
        min_size: int,
        enable_region_merge: bool = False,
        base: Optional["PipelineConfig"] = None,
    ) -> "PipelineConfig":
        """Build a configuration from the positional CLI parameters."""
        config = base if base is not None else cls()
        config.watershed.t_low = float(t_low)
        config.watershed.t_high = float(t_high)
        config.merge.merge_affinity_threshold = float(merge_affinity_threshold)
        config.merge.min_size = int(min_size)
        config.merge.enable_region_merge = bool(enable_region_merge or config.merge.enable_region_merge)
        return config

    @classmethod
    def load_from_file(cls, config_path: str) -> 'PipelineConfig':
        """Load configuration from YAML file."""
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to load configuration from {config_path}: {e}")

        if not isinstance(data, dict):
            raise ValueError(f"Failed to load configuration from {config_path}: expected a mapping")

        config = cls()
        try:
            config._update_from_dict(data)
        except (TypeError, ValueError, AttributeError) as e:
            raise ValueError(f"Invalid value in configuration {config_path}: {e}")
        return config

    def _update_from_dict(self, data: dict) -> None:
        # Update watershed config if present
        if 'watershed' in data:
            ws_data = data['watershed'] or {}
            self.watershed = WatershedConfig(
                t_low=float(ws_data.get('t_low', 0.3)),
                t_high=float(ws_data.get('t_high', 0.9)),
                max_merge_size=ws_data.get('max_merge_size'),
                method=ws_data.get('method', 'auto')
            )

        # Update merge config if present
        if 'merge' in data:
            mg_data = data['merge'] or {}
            self.merge = MergeConfig(
                enable_region_merge=bool(mg_data.get('enable_region_merge', False)),
                min_size=int(mg_data.get('min_size', 0)),
                merge_affinity_threshold=float(mg_data.get('merge_affinity_threshold', 0.0))
            )

        # Update io config if present
        if 'io' in data:
            io_data = data['io'] or {}
            self.io = IOConfig(
                supported_formats=tuple(io_data.get('supported_formats', ("*.tif", "*.tiff", "*.png"))),
                output_extension=io_data.get('output_extension', 'tif'),
                max_sections=io_data.get('max_sections')
            )

        if 'global' in data:
            self.verbose = bool((data['global'] or {}).get('verbose', False))

    def save_to_file(self, config_path: str) -> None:
        """Save configuration to YAML file."""
        config_dict = {
            'watershed': {
                't_low': self.watershed.t_low,
                't_high': self.watershed.t_high,
                'max_merge_size': self.watershed.max_merge_size,
                'method': self.watershed.method
            },
            'merge': {
                'enable_region_merge': self.merge.enable_region_merge,
                'min_size': self.merge.min_size,
                'merge_affinity_threshold': self.merge.merge_affinity_threshold
            },
            'io': {
                'supported_formats': list(self.io.supported_formats),
                'output_extension': self.io.output_extension,
                'max_sections': self.io.max_sections
            },
            'global': {
                'verbose': self.verbose
            }
        }

        # Ensure directory exists
        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w', encoding='utf-8') as f:
            yaml.dump(config_dict, f, default_flow_style=False, indent=2)


# Default configuration instance
DEFAULT_CONFIG = PipelineConfig()
