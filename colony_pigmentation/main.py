"""
Main CLI Entry Point

Colony pigmentation analysis command line program.
"""

import argparse
import glob
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List

from colony_pigmentation.config import AnalysisConfig
from colony_pigmentation.core.aggregator import AggregationPolicy
from colony_pigmentation.errors import ConfigurationError
from colony_pigmentation.pipeline import ColonyAnalysisPipeline, PipelineError, RunResult, average_series_files

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_CONFIGURATION_ERROR = 2


def setup_logging(debug: bool = False):
    """Single stdout handler for the whole process"""
    level = logging.DEBUG if debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(
        logging.Formatter(fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S")
    )

    logging.basicConfig(level=level, handlers=[handler], force=True)


def expand_paths(patterns: List[str]) -> List[Path]:
    """Expand wildcards; plain paths are kept even when they don't exist."""
    paths = []
    for pattern in patterns:
        if any(char in pattern for char in "*?["):
            paths.extend(Path(p) for p in sorted(glob.glob(pattern)))
        else:
            paths.append(Path(pattern))
    return paths


def build_config(args) -> AnalysisConfig:
    """
    Config file values (``--config``) overridden by explicitly passed flags.

    Raises:
        ConfigurationError: unreadable config file or invalid value
    """
    data: Dict[str, Any] = AnalysisConfig.load(Path(args.config)).to_dict() if args.config else {}

    overrides = {
        "output_dir": args.output_path,
        "background_key_color": args.background_key_color,
        "background_threshold": args.background_threshold,
        "pigmentation_key_color": args.pigmentation_color,
        "baseline_pigmentation": args.baseline_pigmentation,
        "baseline_series_path": args.baseline_series,
        "horizontal_samples": args.sample_count,
        "area_of_interest_height_percentage": args.roi_height,
        "downscale_factor": args.downscale_factor,
        "parallelize": args.parallelize,
        "max_workers": args.max_workers,
        "aggregation_policy": args.aggregation_policy,
        "micrometers_per_pixel": args.micrometers_per_pixel,
        "detailed_progress": args.detailed_progress,
    }
    data.update({key: value for key, value in overrides.items() if value is not None})
    return AnalysisConfig.from_dict(data)


def print_summary(result: RunResult, total: int, output_dir: Path):
    print("\n" + "=" * 60)
    print("  Colony Pigmentation Summary")
    print("=" * 60)
    print(f"  Total inputs:  {total}")
    print(f"  Succeeded:     {total - len(result.failures)}")
    print(f"  Failed:        {len(result.failures)}")
    for failure in result.failures:
        print(f"    - [{failure.index}] {failure.image_path}: {failure.error}")
    if result.aggregation_error:
        print(f"  Average:       FAILED ({result.aggregation_error})")
    else:
        print(f"  Average:       {output_dir}")
    print("=" * 60 + "\n")


def cmd_analyze(args) -> int:
    """Run the full pipeline over the given images"""
    config = build_config(args)
    pipeline = ColonyAnalysisPipeline(config)

    image_paths = expand_paths(args.images)
    if not image_paths:
        raise PipelineError(f"No images found matching patterns: {args.images}")

    result = pipeline.run(image_paths)
    print_summary(result, len(image_paths), pipeline.output_dir)
    return EXIT_OK if result.succeeded else EXIT_FAILURES


def cmd_average(args) -> int:
    """Average existing sample-series CSV files"""
    series_paths = expand_paths(args.series)
    policy = AggregationPolicy(args.aggregation_policy or AggregationPolicy.SUCCESSFUL_ONLY.value)
    output_dir = Path(args.output_path or "output")

    result = average_series_files(series_paths, output_dir, policy)
    print_summary(result, len(series_paths), output_dir)
    return EXIT_OK if result.succeeded else EXIT_FAILURES


def add_analyze_arguments(parser: argparse.ArgumentParser):
    parser.add_argument(
        "--images",
        nargs="+",
        required=True,
        help="Paths to the images to analyze. Wildcards are expanded, e.g. 'images/*.jpg'",
    )
    parser.add_argument("--config", help="JSON file with analysis parameters; flags override its values")
    parser.add_argument("--output-path", help="Directory where the results will be saved (default: output/)")
    parser.add_argument(
        "--detailed-progress",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Log the duration of every stage of every image",
    )
    parser.add_argument(
        "--downscale-factor",
        type=float,
        help="Value in (0, 1] multiplied by the width and height of each image before processing (default: 1)",
    )
    parser.add_argument(
        "--background-key-color",
        help="Hex RGB color separating colonies from the background (default: #33393E)",
    )
    parser.add_argument(
        "--background-threshold",
        type=float,
        help="0~1. Higher means pixels must differ more from the background color to be foreground (default: 0.15)",
    )
    parser.add_argument("--pigmentation-color", help="Hex RGB color of maximum pigmentation (default: #803D33)")
    parser.add_argument(
        "--baseline-pigmentation",
        type=float,
        help="0~1 pigmentation considered background noise and subtracted from every value (default: 0.436)",
    )
    parser.add_argument(
        "--baseline-series",
        help="Sample-series CSV whose averages are used as per-sample baselines; overrides --baseline-pigmentation",
    )
    parser.add_argument("--sample-count", type=int, help="Number of samples of the pigmentation profile (default: 200)")
    parser.add_argument(
        "--roi-height",
        type=float,
        help="0~1 share of the colony height considered for pigmentation (default: 0.2)",
    )
    parser.add_argument(
        "--parallelize",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Analyze images in parallel (default: on)",
    )
    parser.add_argument("--max-workers", type=int, help="Worker threads when parallelizing (default: 4)")
    add_policy_argument(parser)
    parser.add_argument(
        "--micrometers-per-pixel",
        type=float,
        help="Pixel side length in µm; adds colony size in mm² to the metadata",
    )


def add_policy_argument(parser: argparse.ArgumentParser):
    parser.add_argument(
        "--aggregation-policy",
        choices=[policy.value for policy in AggregationPolicy],
        help="Average only successful inputs, or fail the average when any input failed (default: successful-only)",
    )


def main(argv: List[str] = None) -> int:
    """Entry point; returns the process exit code"""
    parser = argparse.ArgumentParser(
        description="Colony pigmentation analysis",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyze colony images and average their pigmentation",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  colony-pigmentation analyze --images 'plates/*.jpg' --output-path results/
  colony-pigmentation analyze --images 'plates/*.jpg' --baseline-series control/average_pigmentation.csv
        """,
    )
    add_analyze_arguments(analyze_parser)

    average_parser = subparsers.add_parser(
        "average",
        help="Average existing sample-series CSV files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  colony-pigmentation average --series 'results/SampledPigmentationHistogram/*.csv' --output-path combined/
        """,
    )
    average_parser.add_argument("--series", nargs="+", required=True, help="Sample-series CSV files (wildcards allowed)")
    average_parser.add_argument("--output-path", help="Directory where the results will be saved (default: output/)")
    add_policy_argument(average_parser)

    args = parser.parse_args(argv)

    setup_logging(args.debug)
    logger = logging.getLogger(__name__)

    if not args.command:
        parser.print_help()
        return EXIT_OK

    try:
        if args.command == "analyze":
            return cmd_analyze(args)
        elif args.command == "average":
            return cmd_average(args)

    except (ConfigurationError, PipelineError) as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIGURATION_ERROR

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return EXIT_FAILURES

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
