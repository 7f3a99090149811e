"""
Colony Analysis Pipeline

Chains the per-image stages and the cross-image average:

ImageLoader → BackgroundMasker → RegionCleaner → PigmentationProfiler
(per image, optionally on a worker pool) → aggregate (after every worker finished)

Every stage result is written under its own artifact directory of the run's
output directory.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from colony_pigmentation.config import AnalysisConfig
from colony_pigmentation.core.aggregator import AggregationPolicy, SampleAccumulator, aggregate
from colony_pigmentation.core.background_masker import BackgroundMasker
from colony_pigmentation.core.colony_measurements import ColonySize, measure_colony_size
from colony_pigmentation.core.geometry import Rect
from colony_pigmentation.core.image_loader import ImageLoader
from colony_pigmentation.core.pigmentation_profiler import (
    PigmentationProfiler,
    PigmentationSample,
    ProfilerConfig,
    area_of_interest,
    colony_bounding_rect,
    one_dimension_histogram,
)
from colony_pigmentation.core.pixel_buffer import ImageBuffer, MaskBuffer
from colony_pigmentation.core.region_cleaner import RegionCleaner
from colony_pigmentation.errors import AggregationError, ColonyAnalysisError, FormatError, ResourceError
from colony_pigmentation.utils.file_io import FileIO, ensure_dir, write_json
from colony_pigmentation.utils.sample_series_io import read_series, write_one_dimension_series, write_series
from colony_pigmentation.utils.timing import log_duration
from colony_pigmentation.visualizer import ColonyVisualizer

logger = logging.getLogger(__name__)

ORIGINAL_IMAGES_DIR = "OriginalImages"
MASKED_COLONIES_DIR = "MaskedColonies"
BACKGROUND_REMOVED_DIR = "BackgroundRemoved"
DRAWN_PIGMENTATION_DIR = "DrawnPigmentation"
DRAWN_PIGMENTATION_ROI_DIR = "DrawnPigmentationROI"
RAW_HISTOGRAM_DIR = "RawPigmentationHistogram"
SAMPLED_HISTOGRAM_DIR = "SampledPigmentationHistogram"
PIGMENTATION_SERIES_DIR = "PigmentationSeries"
METADATA_DIR = "Metadata"

AVERAGE_SERIES_FILE = "average_pigmentation.csv"
AVERAGE_SERIES_1D_FILE = "average_pigmentation_1d.csv"
AVERAGE_CHART_FILE = "average_pigmentation.png"
PARAMETERS_FILE = "parameters.json"

IMAGE_EXTENSION = ".png"


class PipelineError(ColonyAnalysisError):
    """Run could not start"""

    pass


@dataclass
class ImageAnalysis:
    """Outcome of one successfully analyzed image"""

    image_path: Path
    samples: List[PigmentationSample]
    raw_samples: List[PigmentationSample]
    bounding_rect: Rect
    area_of_interest: Rect
    colony_size: ColonySize
    processing_time_ms: float = 0.0

    @property
    def name(self) -> str:
        return self.image_path.stem


@dataclass
class ImageFailure:
    index: int
    image_path: Path
    error: str


@dataclass
class RunResult:
    analyses: List[ImageAnalysis] = field(default_factory=list)
    failures: List[ImageFailure] = field(default_factory=list)
    average: Optional[List[PigmentationSample]] = None
    aggregation_error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return not self.failures and self.aggregation_error is None


class ColonyAnalysisPipeline:
    """
    End-to-end colony pigmentation analysis.

    Example:
        >>> pipeline = ColonyAnalysisPipeline(AnalysisConfig(output_dir=Path("output")))
        >>> result = pipeline.run(["plates/01.jpg", "plates/02.jpg"])
        >>> result.average[0].average_pigmentation
    """

    def __init__(self, config: AnalysisConfig):
        """
        Args:
            config: run configuration, validated here

        Raises:
            ConfigurationError: any invalid parameter, before any image is touched
        """
        config.validate()
        self.config = config
        self.output_dir = Path(config.output_dir)
        self.baseline_series = config.load_baseline_series()

        self.image_loader = ImageLoader(config.image_config())
        self.masker = BackgroundMasker(config.mask_config())
        self.cleaner = RegionCleaner(config.cleaner_config())
        self.raw_profiler = PigmentationProfiler(config.raw_profiler_config())
        self.sampled_profiler = PigmentationProfiler(config.profiler_config(self.baseline_series))
        self.drawing_config = ProfilerConfig(
            pigmentation_key_color=config.pigmentation_key_color,
            baseline_pigmentation=config.baseline_pigmentation,
        )
        self.visualizer = ColonyVisualizer()
        self.file_io = FileIO()

        logger.info("ColonyAnalysisPipeline initialized")

    def process(self, image_path: Path) -> ImageAnalysis:
        """
        Analyze one image and write its artifacts.

        Raises:
            ResourceError: unreadable image or unwritable artifact
            DegenerateInputError: no usable colony after cleaning
            ConfigurationError: more sampled buckets than colony columns
        """
        start_time = time.perf_counter()
        image_path = Path(image_path)
        name = image_path.stem
        detailed = self.config.detailed_progress

        logger.info(f"Processing image: {image_path}")

        with log_duration(f"Load image: {name}", detailed):
            image = self.image_loader.load(image_path)
            self._save_image(image, ORIGINAL_IMAGES_DIR, name)

        with log_duration(f"Mask colony: {name}", detailed):
            mask = self.masker.create_mask(image)
            self.cleaner.clean(mask)
            self._save_image(mask, MASKED_COLONIES_DIR, name)
            bounding_rect = colony_bounding_rect(mask)
            aoi_rect, aoi_mask = area_of_interest(
                mask, self.config.area_of_interest_height_percentage, bounding_rect
            )

        with log_duration(f"Remove background: {name}", detailed):
            self._save_image(self.visualizer.remove_background(image, mask), BACKGROUND_REMOVED_DIR, name)

        with log_duration(f"Draw pigmentation: {name}", detailed):
            drawn = self.visualizer.draw_pigmentation(image, mask, self.drawing_config)
            self._save_image(drawn, DRAWN_PIGMENTATION_DIR, name)
            drawn_roi = self.visualizer.draw_pigmentation(image, mask, self.sampled_profiler.config, crop=True)
            self._save_image(drawn_roi, DRAWN_PIGMENTATION_ROI_DIR, name)

        with log_duration(f"Pigmentation histogram: {name}", detailed):
            raw_samples = self.raw_profiler.profile_area(image, aoi_rect, aoi_mask)
            write_series(raw_samples, self._artifact_path(RAW_HISTOGRAM_DIR, name, ".csv"))
            samples = self.sampled_profiler.profile_area(image, aoi_rect, aoi_mask)
            write_series(samples, self._artifact_path(SAMPLED_HISTOGRAM_DIR, name, ".csv"))

        with log_duration(f"Pigmentation series: {name}", detailed):
            write_one_dimension_series(
                one_dimension_histogram(samples), self._artifact_path(PIGMENTATION_SERIES_DIR, name, ".csv")
            )

        analysis = ImageAnalysis(
            image_path=image_path,
            samples=samples,
            raw_samples=raw_samples,
            bounding_rect=bounding_rect,
            area_of_interest=aoi_rect,
            colony_size=measure_colony_size(mask),
            processing_time_ms=(time.perf_counter() - start_time) * 1000,
        )
        self._save_metadata(analysis)

        logger.info(
            f"Analyzed {image_path}: colony {analysis.colony_size.square_pixels} px, "
            f"{len(samples)} samples in {analysis.processing_time_ms:.1f}ms"
        )
        return analysis

    def process_batch(self, image_paths: Sequence[Path], accumulator: SampleAccumulator) -> RunResult:
        """
        Analyze every image, in parallel when configured.

        A failing image is logged and recorded; it never stops its siblings.
        Returns once every dispatched image reached success or failure.
        """
        image_paths = [Path(p) for p in image_paths]
        parallel = self.config.parallelize and len(image_paths) > 1
        logger.info(f"Batch processing {len(image_paths)} images (parallel={parallel})")

        result = RunResult()

        def analyze(path: Path) -> ImageAnalysis:
            analysis = self.process(path)
            accumulator.append(str(path), analysis.samples)
            return analysis

        def record_failure(index: int, path: Path, error: Exception):
            if isinstance(error, ColonyAnalysisError):
                logger.error(f"Error analyzing image {index} ({path}): {error}")
            else:
                logger.error(f"Unexpected error analyzing image {index} ({path}): {error}", exc_info=error)
            result.failures.append(ImageFailure(index, path, str(error)))

        if parallel:
            with ThreadPoolExecutor(max_workers=self.config.max_workers) as executor:
                future_to_index = {executor.submit(analyze, path): index for index, path in enumerate(image_paths)}

                for future in as_completed(future_to_index):
                    index = future_to_index[future]
                    try:
                        result.analyses.append(future.result())
                    except Exception as e:
                        record_failure(index, image_paths[index], e)
        else:
            for index, path in enumerate(image_paths):
                try:
                    result.analyses.append(analyze(path))
                except Exception as e:
                    record_failure(index, path, e)

        result.analyses.sort(key=lambda analysis: str(analysis.image_path))
        result.failures.sort(key=lambda failure: failure.index)

        logger.info(f"Batch processing complete: {len(result.analyses)} succeeded, {len(result.failures)} failed")
        return result

    def run(self, image_paths: Sequence[Path]) -> RunResult:
        """
        Analyze ``image_paths`` and write the averaged profile.

        Raises:
            PipelineError: no images given
            ResourceError: output directory cannot be created
        """
        if not image_paths:
            raise PipelineError("No images specified")

        logger.info(f"Analyzing {len(image_paths)} images")
        ensure_dir(self.output_dir)
        write_json(self.config.snapshot(self.baseline_series), self.output_dir / PARAMETERS_FILE)

        accumulator = SampleAccumulator()
        result = self.process_batch(image_paths, accumulator)

        with log_duration("Average pigmentation across images", self.config.detailed_progress):
            try:
                result.average = aggregate(accumulator, len(result.failures), self.config.aggregation_policy)
                write_run_outputs(result.average, self.output_dir, self.visualizer)
            except (AggregationError, ResourceError) as e:
                logger.error(f"Failed to average pigmentation: {e}")
                result.aggregation_error = str(e)

        logger.info("Finished!")
        return result

    def _artifact_path(self, directory: str, name: str, extension: str) -> Path:
        return self.output_dir / directory / f"{name}{extension}"

    def _save_image(self, image: Union[ImageBuffer, MaskBuffer], directory: str, name: str) -> None:
        self.file_io.save_image(self._artifact_path(directory, name, IMAGE_EXTENSION), image)

    def _save_metadata(self, analysis: ImageAnalysis) -> None:
        metadata: Dict[str, Any] = {
            "image_path": str(analysis.image_path),
            "bounding_rect": analysis.bounding_rect.as_dict(),
            "area_of_interest": analysis.area_of_interest.as_dict(),
            "colony_size_px": analysis.colony_size.square_pixels,
            "sample_count": len(analysis.samples),
            "processing_time_ms": analysis.processing_time_ms,
        }
        if self.config.micrometers_per_pixel is not None:
            metadata["colony_size_mm2"] = analysis.colony_size.square_millimeters(self.config.micrometers_per_pixel)

        try:
            write_json(metadata, self._artifact_path(METADATA_DIR, analysis.name, ".json"))
        except OSError as e:
            raise ResourceError(f"Failed to write metadata for {analysis.image_path}: {e}")


def write_run_outputs(
    average: List[PigmentationSample], output_dir: Path, visualizer: Optional[ColonyVisualizer] = None
) -> None:
    """Averaged profile as CSV, its 1D series and the profile chart."""
    output_dir = Path(output_dir)
    visualizer = visualizer or ColonyVisualizer()

    write_series(average, output_dir / AVERAGE_SERIES_FILE)
    write_one_dimension_series(one_dimension_histogram(average), output_dir / AVERAGE_SERIES_1D_FILE)
    visualizer.save_figure(visualizer.plot_profile(average), output_dir / AVERAGE_CHART_FILE)
    logger.info(f"Average pigmentation saved to {output_dir / AVERAGE_SERIES_FILE}")


def average_series_files(
    series_paths: Sequence[Path],
    output_dir: Path,
    policy: AggregationPolicy = AggregationPolicy.SUCCESSFUL_ONLY,
) -> RunResult:
    """
    Average previously written sample-series files.

    Unreadable or malformed files count as failures and are handled by ``policy``.
    """
    if not series_paths:
        raise PipelineError("No sample series files specified")

    result = RunResult()
    accumulator = SampleAccumulator()
    for index, path in enumerate(Path(p) for p in series_paths):
        try:
            accumulator.append(str(path), read_series(path))
        except (FormatError, ResourceError) as e:
            logger.error(f"Error reading sample series {index} ({path}): {e}")
            result.failures.append(ImageFailure(index, path, str(e)))

    try:
        result.average = aggregate(accumulator, len(result.failures), policy)
        ensure_dir(Path(output_dir))
        write_run_outputs(result.average, output_dir)
    except (AggregationError, ResourceError) as e:
        logger.error(f"Failed to average pigmentation: {e}")
        result.aggregation_error = str(e)
    return result
