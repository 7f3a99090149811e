"""
Cross-image averaging of pigmentation profiles.
"""

import logging
import threading
from enum import Enum
from typing import List, Sequence

import numpy as np

from colony_pigmentation.core.pigmentation_profiler import PigmentationSample
from colony_pigmentation.errors import AggregationError

logger = logging.getLogger(__name__)


class AggregationPolicy(str, Enum):
    """What to do with the results of a batch in which some images failed."""

    SUCCESSFUL_ONLY = "successful-only"
    REQUIRE_ALL = "require-all"


def average_samples(series_list: Sequence[Sequence[PigmentationSample]]) -> List[PigmentationSample]:
    """
    Average N equal-length profiles bucket by bucket.

    ``average_pigmentation`` is the mean of the per-image averages and
    ``standard_deviation`` their (population) spread between images; ``x`` and
    the column indices come from the first series.

    Raises:
        AggregationError: no series, or series of different lengths
    """
    if not series_list:
        raise AggregationError("Cannot average an empty list of sample series")

    lengths = {len(series) for series in series_list}
    if len(lengths) != 1:
        raise AggregationError(f"All sample series should have the same length, got lengths {sorted(lengths)}")

    averages = np.array([[sample.average_pigmentation for sample in series] for series in series_list])
    means = averages.mean(axis=0)
    deviations = averages.std(axis=0)

    result = [
        PigmentationSample(
            x=template.x,
            average_pigmentation=float(mean),
            standard_deviation=float(deviation),
            included_column_indices=template.included_column_indices,
        )
        for template, mean, deviation in zip(series_list[0], means, deviations)
    ]
    logger.info(f"Averaged {len(series_list)} sample series of {len(result)} samples")
    return result


class SampleAccumulator:
    """
    Run-scoped, thread-safe collection of completed sample series.

    Example:
        >>> accumulator = SampleAccumulator()
        >>> accumulator.append("a.jpg", samples)
        >>> average_samples(accumulator.series())
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._entries = []

    def append(self, source: str, samples: Sequence[PigmentationSample]) -> None:
        with self._lock:
            self._entries.append((source, list(samples)))

    def series(self) -> List[List[PigmentationSample]]:
        """Snapshot of the collected series, ordered by source name."""
        with self._lock:
            entries = sorted(self._entries, key=lambda entry: entry[0])
        return [samples for _, samples in entries]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def aggregate(
    accumulator: SampleAccumulator, failed_count: int, policy: AggregationPolicy = AggregationPolicy.SUCCESSFUL_ONLY
) -> List[PigmentationSample]:
    """
    Apply ``policy`` and average the collected series.

    Raises:
        AggregationError: strict policy with failures, or nothing to average
    """
    if policy is AggregationPolicy.REQUIRE_ALL and failed_count > 0:
        raise AggregationError(f"{failed_count} image(s) failed and the aggregation policy requires all to succeed")
    if failed_count > 0:
        logger.warning(f"Averaging {len(accumulator)} successful series, excluding {failed_count} failed image(s)")
    return average_samples(accumulator.series())
