"""
Run-level configuration of a colony analysis.

``AnalysisConfig`` holds every user facing parameter, can be loaded from a
JSON file and is snapshotted next to the results. Each stage receives its own
dataclass config built from it.
"""

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union, get_args, get_origin

from colony_pigmentation.core.aggregator import AggregationPolicy
from colony_pigmentation.core.background_masker import DEFAULT_BACKGROUND_KEY_COLOR, MaskConfig
from colony_pigmentation.core.image_loader import ImageConfig
from colony_pigmentation.core.pigmentation_profiler import DEFAULT_PIGMENTATION_KEY_COLOR, ProfilerConfig
from colony_pigmentation.core.region_cleaner import CleanerConfig
from colony_pigmentation.errors import ConfigurationError, FormatError, ResourceError
from colony_pigmentation.utils.color_space import RGBColor
from colony_pigmentation.utils.file_io import read_json
from colony_pigmentation.utils.sample_series_io import read_series

logger = logging.getLogger(__name__)

_COLOR_FIELDS = ("background_key_color", "pigmentation_key_color")
_PATH_FIELDS = ("output_dir", "baseline_series_path")


def _coerce_scalar(field_type: Any, value: Any) -> Any:
    """
    Check a JSON scalar against the declared bool / int / float field type.

    Integers are accepted for float fields; bools are never accepted as numbers.

    Raises:
        TypeError: value doesn't match the field type
    """
    if get_origin(field_type) is Union:
        field_type = next(arg for arg in get_args(field_type) if arg is not type(None))

    if field_type is bool:
        if isinstance(value, bool):
            return value
    elif field_type is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    elif field_type is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
    else:
        return value
    raise TypeError(f"expected {field_type.__name__}, got {type(value).__name__} {value!r}")


@dataclass
class AnalysisConfig:
    """
    Attributes:
        output_dir: directory receiving artifacts and run outputs
        background_key_color / background_threshold: segmentation chroma key
        pigmentation_key_color: color of maximum pigmentation
        baseline_pigmentation: scalar baseline subtracted from every pixel
        baseline_series_path: sample-series CSV whose averages replace the scalar baseline
        horizontal_samples: bucket count of the sampled profile
        area_of_interest_height_percentage: share of the colony height sampled
        downscale_factor: 0~1 factor applied to both image sides after loading
        hole_area_ratio / speckle_area_ratio: region cleaner area floors
        parallelize / max_workers: per-image worker pool
        aggregation_policy: how failed images affect the average
        micrometers_per_pixel: when set, colony size is also reported in mm²
        detailed_progress: log the duration of every stage
    """

    output_dir: Optional[Path] = Path("output")
    background_key_color: RGBColor = field(default_factory=lambda: DEFAULT_BACKGROUND_KEY_COLOR)
    background_threshold: float = 0.15
    pigmentation_key_color: RGBColor = field(default_factory=lambda: DEFAULT_PIGMENTATION_KEY_COLOR)
    baseline_pigmentation: float = 0.436
    baseline_series_path: Optional[Path] = None
    horizontal_samples: int = 200
    area_of_interest_height_percentage: float = 0.2
    downscale_factor: float = 1.0
    hole_area_ratio: float = 0.2
    speckle_area_ratio: float = 0.02
    parallelize: bool = True
    max_workers: int = 4
    aggregation_policy: AggregationPolicy = AggregationPolicy.SUCCESSFUL_ONLY
    micrometers_per_pixel: Optional[float] = None
    detailed_progress: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisConfig":
        """
        Build a config from JSON-compatible values (colors as hex strings).

        Raises:
            ConfigurationError: unknown key or unparsable value
        """
        field_types = {f.name: f.type for f in fields(cls)}
        unknown = set(data) - set(field_types)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys: {sorted(unknown)}")

        values = {}
        try:
            for key, value in data.items():
                if value is None:
                    values[key] = None
                elif key in _COLOR_FIELDS:
                    values[key] = value if isinstance(value, RGBColor) else RGBColor.from_hex(value)
                elif key in _PATH_FIELDS:
                    values[key] = Path(value)
                elif key == "aggregation_policy":
                    values[key] = AggregationPolicy(value)
                else:
                    values[key] = _coerce_scalar(field_types[key], value)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid value for {key}: {e}")
        return cls(**values)

    @classmethod
    def load(cls, path: Path) -> "AnalysisConfig":
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Configuration file {path} doesn't exist")
        try:
            data = read_json(path)
        except ValueError as e:
            raise ConfigurationError(f"Configuration file {path} is not valid JSON: {e}")
        logger.info(f"Loaded configuration from {path}")
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        data = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, RGBColor):
                value = value.hex_string
            elif isinstance(value, Path):
                value = str(value)
            elif isinstance(value, AggregationPolicy):
                value = value.value
            data[f.name] = value
        return data

    def validate(self) -> None:
        """
        Check every parameter before any image is processed.

        Raises:
            ConfigurationError: first invalid parameter found
        """
        if self.output_dir is None:
            raise ConfigurationError("An output directory is required")
        if self.output_dir.exists() and not self.output_dir.is_dir():
            raise ConfigurationError(f'Output path "{self.output_dir}" is not a folder')
        if self.max_workers < 1:
            raise ConfigurationError(f"max_workers must be at least 1, got {self.max_workers}")
        if self.micrometers_per_pixel is not None and self.micrometers_per_pixel <= 0:
            raise ConfigurationError(f"micrometers_per_pixel must be positive, got {self.micrometers_per_pixel}")
        if self.baseline_series_path is not None and not self.baseline_series_path.is_file():
            raise ConfigurationError(f'Baseline pigmentation file "{self.baseline_series_path}" doesn\'t exist')

        self.image_config().validate()
        self.mask_config().validate()
        self.cleaner_config().validate()
        self.profiler_config(self.load_baseline_series()).validate()

    def load_baseline_series(self) -> Optional[List[float]]:
        """
        Average pigmentation values of the baseline series file, if configured.

        Raises:
            ConfigurationError: unreadable or malformed file
        """
        if self.baseline_series_path is None:
            return None
        try:
            samples = read_series(self.baseline_series_path)
        except (FormatError, ResourceError) as e:
            raise ConfigurationError(f"Invalid baseline pigmentation file: {e}")
        return [sample.average_pigmentation for sample in samples]

    def image_config(self) -> ImageConfig:
        return ImageConfig(downscale_factor=self.downscale_factor)

    def mask_config(self) -> MaskConfig:
        return MaskConfig(background_key_color=self.background_key_color, threshold=self.background_threshold)

    def cleaner_config(self) -> CleanerConfig:
        return CleanerConfig(hole_area_ratio=self.hole_area_ratio, speckle_area_ratio=self.speckle_area_ratio)

    def profiler_config(self, baseline_series: Optional[List[float]] = None) -> ProfilerConfig:
        """Sampled profile: configured bucket count, baseline series when given."""
        return ProfilerConfig(
            pigmentation_key_color=self.pigmentation_key_color,
            baseline_pigmentation=self.baseline_pigmentation,
            baseline_series=baseline_series,
            area_of_interest_height_percentage=self.area_of_interest_height_percentage,
            horizontal_samples=self.horizontal_samples,
        )

    def raw_profiler_config(self) -> ProfilerConfig:
        """Raw profile: scalar baseline, one bucket per colony column."""
        return ProfilerConfig(
            pigmentation_key_color=self.pigmentation_key_color,
            baseline_pigmentation=self.baseline_pigmentation,
            area_of_interest_height_percentage=self.area_of_interest_height_percentage,
        )

    def snapshot(self, baseline_series: Optional[List[float]] = None) -> Dict[str, Any]:
        """Parameters as written to parameters.json, with the baseline values in use."""
        data = self.to_dict()
        if baseline_series is not None:
            data["baseline_series"] = list(baseline_series)
        return data
