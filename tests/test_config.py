import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
from affinity_watershed.config import DEFAULT_CONFIG, PipelineConfig
from affinity_watershed.errors import InvalidThreshold


def test_defaults():
    config = PipelineConfig()
    assert config.watershed.t_low <= config.watershed.t_high
    assert config.merge.enable_region_merge is False
    assert config.watershed.max_merge_size is None
    config.validate()


def test_yaml_round_trip(tmp_path):
    config = PipelineConfig()
    config.watershed.t_low = 0.25
    config.watershed.max_merge_size = 500
    config.merge.enable_region_merge = True
    config.merge.min_size = 40
    config.io.max_sections = 3

    path = tmp_path / "configs" / "run.yaml"
    config.save_to_file(str(path))
    loaded = PipelineConfig.load_from_file(str(path))

    assert loaded.watershed.t_low == 0.25
    assert loaded.watershed.max_merge_size == 500
    assert loaded.merge.enable_region_merge is True
    assert loaded.merge.min_size == 40
    assert loaded.io.max_sections == 3
    assert loaded.io.supported_formats == config.io.supported_formats


def test_partial_yaml_uses_defaults(tmp_path):
    path = tmp_path / "partial.yaml"
    path.write_text("merge:\n  min_size: 12\n", encoding="utf-8")
    loaded = PipelineConfig.load_from_file(str(path))
    assert loaded.merge.min_size == 12
    assert loaded.watershed.t_high == DEFAULT_CONFIG.watershed.t_high


def test_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        PipelineConfig.load_from_file(str(tmp_path / "absent.yaml"))


def test_malformed_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("watershed: [unclosed\n", encoding="utf-8")
    with pytest.raises(ValueError):
        PipelineConfig.load_from_file(str(path))


def test_from_args():
    config = PipelineConfig.from_args(0.2, 0.95, 0.4, 25, enable_region_merge=True)
    assert config.watershed.t_low == 0.2
    assert config.watershed.t_high == 0.95
    assert config.merge.merge_affinity_threshold == 0.4
    assert config.merge.min_size == 25
    assert config.merge.enable_region_merge is True
    # the shared default is untouched
    assert DEFAULT_CONFIG.merge.min_size == 0


@pytest.mark.parametrize("t_low,t_high,min_size", [
    (0.9, 0.1, 0),
    (float("nan"), 0.5, 0),
    (0.1, float("inf"), 0),
    (0.1, 0.5, -3),
])
def test_validate_rejects(t_low, t_high, min_size):
    config = PipelineConfig.from_args(t_low, t_high, 0.5, min_size)
    with pytest.raises(InvalidThreshold):
        config.validate()


@pytest.mark.parametrize("max_merge_size", ["3", True, 0, 2.5])
def test_validate_rejects_max_merge_size(max_merge_size):
    config = PipelineConfig()
    config.watershed.max_merge_size = max_merge_size
    with pytest.raises(InvalidThreshold):
        config.validate()


def test_validate_rejects_max_sections():
    config = PipelineConfig()
    config.io.max_sections = "2"
    with pytest.raises(ValueError):
        config.validate()


def test_null_value_in_yaml(tmp_path):
    path = tmp_path / "null.yaml"
    path.write_text("merge:\n  min_size:\n", encoding="utf-8")
    with pytest.raises(ValueError):
        PipelineConfig.load_from_file(str(path))
