"""
Tests for AnalysisConfig
"""

import json
from pathlib import Path

import pytest

from colony_pigmentation.config import AnalysisConfig
from colony_pigmentation.core.aggregator import AggregationPolicy
from colony_pigmentation.core.pigmentation_profiler import PigmentationSample
from colony_pigmentation.errors import ConfigurationError
from colony_pigmentation.utils.color_space import RGBColor
from colony_pigmentation.utils.sample_series_io import write_series


@pytest.fixture
def baseline_file(tmp_path):
    path = tmp_path / "baseline.csv"
    write_series([PigmentationSample(i / 4, 0.1 * i, 0.0, (i,)) for i in range(5)], path)
    return path


def test_defaults():
    config = AnalysisConfig()

    assert config.output_dir == Path("output")
    assert config.background_key_color == RGBColor(51, 57, 62)
    assert config.background_threshold == 0.15
    assert config.pigmentation_key_color == RGBColor(128, 61, 51)
    assert config.baseline_pigmentation == 0.436
    assert config.horizontal_samples == 200
    assert config.area_of_interest_height_percentage == 0.2
    assert config.downscale_factor == 1.0
    assert config.parallelize is True
    assert config.aggregation_policy is AggregationPolicy.SUCCESSFUL_ONLY


def test_from_dict_parses_values():
    config = AnalysisConfig.from_dict(
        {
            "output_dir": "results",
            "background_key_color": "#000000",
            "pigmentation_key_color": "FF0000",
            "aggregation_policy": "require-all",
            "horizontal_samples": 10,
        }
    )

    assert config.output_dir == Path("results")
    assert config.background_key_color == RGBColor.BLACK
    assert config.pigmentation_key_color == RGBColor(255, 0, 0)
    assert config.aggregation_policy is AggregationPolicy.REQUIRE_ALL
    assert config.horizontal_samples == 10


def test_dict_round_trip():
    config = AnalysisConfig(output_dir=Path("somewhere"), baseline_pigmentation=0.3, micrometers_per_pixel=2.5)
    data = config.to_dict()

    assert json.loads(json.dumps(data)) == data
    assert AnalysisConfig.from_dict(data) == config


@pytest.mark.parametrize(
    "data",
    [
        {"unknown_key": 1},
        {"background_key_color": "#GGGGGG"},
        {"aggregation_policy": "sometimes"},
    ],
)
def test_from_dict_invalid(data):
    with pytest.raises(ConfigurationError):
        AnalysisConfig.from_dict(data)


@pytest.mark.parametrize(
    "data",
    [
        {"horizontal_samples": "abc"},
        {"horizontal_samples": 5.5},
        {"max_workers": True},
        {"parallelize": "yes"},
        {"background_threshold": "0.2"},
        {"micrometers_per_pixel": [1.0]},
    ],
)
def test_from_dict_wrong_value_type(data):
    with pytest.raises(ConfigurationError, match=next(iter(data))):
        AnalysisConfig.from_dict(data)


def test_from_dict_accepts_integer_for_float():
    config = AnalysisConfig.from_dict({"background_threshold": 0, "micrometers_per_pixel": 2})

    assert config.background_threshold == 0.0
    assert isinstance(config.background_threshold, float)
    assert config.micrometers_per_pixel == 2.0


def test_load(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({"horizontal_samples": 50, "parallelize": False}))

    config = AnalysisConfig.load(path)
    assert config.horizontal_samples == 50
    assert config.parallelize is False


def test_load_missing_file(tmp_path):
    with pytest.raises(ConfigurationError):
        AnalysisConfig.load(tmp_path / "missing.json")


def test_load_invalid_json(tmp_path):
    path = tmp_path / "config.json"
    path.write_text("{not json")

    with pytest.raises(ConfigurationError):
        AnalysisConfig.load(path)


# ================================================================
# Validation
# ================================================================


def test_validate_defaults(tmp_path):
    AnalysisConfig(output_dir=tmp_path).validate()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"background_threshold": 1.5},
        {"baseline_pigmentation": -0.1},
        {"area_of_interest_height_percentage": 2.0},
        {"downscale_factor": 0.0},
        {"horizontal_samples": 0},
        {"hole_area_ratio": -1.0},
        {"max_workers": 0},
        {"micrometers_per_pixel": 0.0},
    ],
)
def test_validate_rejects(tmp_path, kwargs):
    with pytest.raises(ConfigurationError):
        AnalysisConfig(output_dir=tmp_path, **kwargs).validate()


def test_output_path_is_a_file(tmp_path):
    path = tmp_path / "file"
    path.write_text("")

    with pytest.raises(ConfigurationError, match="not a folder"):
        AnalysisConfig(output_dir=path).validate()


def test_missing_output_dir_is_accepted(tmp_path):
    AnalysisConfig(output_dir=tmp_path / "new").validate()


# ================================================================
# Baseline series
# ================================================================


def test_baseline_series(tmp_path, baseline_file):
    config = AnalysisConfig(output_dir=tmp_path, baseline_series_path=baseline_file, horizontal_samples=5)
    config.validate()

    assert config.load_baseline_series() == pytest.approx([0.0, 0.1, 0.2, 0.3, 0.4])
    assert config.profiler_config(config.load_baseline_series()).baseline_series == pytest.approx(
        [0.0, 0.1, 0.2, 0.3, 0.4]
    )


def test_baseline_series_length_mismatch(tmp_path, baseline_file):
    config = AnalysisConfig(output_dir=tmp_path, baseline_series_path=baseline_file, horizontal_samples=6)
    with pytest.raises(ConfigurationError):
        config.validate()


def test_baseline_series_missing_file(tmp_path):
    config = AnalysisConfig(output_dir=tmp_path, baseline_series_path=tmp_path / "missing.csv")
    with pytest.raises(ConfigurationError):
        config.validate()


def test_baseline_series_malformed(tmp_path):
    path = tmp_path / "baseline.csv"
    path.write_text("garbage\n1,2\n")

    config = AnalysisConfig(output_dir=tmp_path, baseline_series_path=path, horizontal_samples=1)
    with pytest.raises(ConfigurationError):
        config.validate()


def test_snapshot_includes_baseline_values(baseline_file):
    config = AnalysisConfig(baseline_series_path=baseline_file, horizontal_samples=5)
    snapshot = config.snapshot(config.load_baseline_series())

    assert snapshot["baseline_series_path"] == str(baseline_file)
    assert snapshot["baseline_series"] == pytest.approx([0.0, 0.1, 0.2, 0.3, 0.4])


def test_stage_configs():
    config = AnalysisConfig(downscale_factor=0.5, background_threshold=0.3, hole_area_ratio=0.1)

    assert config.image_config().downscale_factor == 0.5
    assert config.mask_config().threshold == 0.3
    assert config.cleaner_config().hole_area_ratio == 0.1
    assert config.raw_profiler_config().horizontal_samples is None
    assert config.profiler_config().horizontal_samples == 200
