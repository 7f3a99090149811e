"""
Sample-series text format

    x, average, stddev, columns
    0.0,0.61,0.05,10-11-12
    ...

One row per PigmentationSample; the last field holds the hyphen-joined
column indices the sample was computed from and may be empty.
"""

import logging
from pathlib import Path
from typing import List, Sequence

from colony_pigmentation.core.pigmentation_profiler import PigmentationSample
from colony_pigmentation.errors import FormatError, ResourceError

logger = logging.getLogger(__name__)

SERIES_HEADER = "x, average, stddev, columns"


def format_series(samples: Sequence[PigmentationSample]) -> str:
    rows = [SERIES_HEADER]
    for sample in samples:
        columns = "-".join(str(index) for index in sample.included_column_indices)
        rows.append(f"{sample.x!r},{sample.average_pigmentation!r},{sample.standard_deviation!r},{columns}")
    return "\n".join(rows) + "\n"


def parse_series(contents: str) -> List[PigmentationSample]:
    """
    Parse the text of a sample-series file.

    Blank lines are skipped. Row indices in errors are line numbers of the
    text counted from 0, so the header is row 0 unless blank lines precede it.

    Raises:
        FormatError: missing rows, wrong header, or a malformed data row
    """
    header_index = None
    last_index, last_row = 0, contents
    samples = []
    for row_index, row in enumerate(contents.splitlines()):
        if not row.strip():
            continue
        last_index, last_row = row_index, row

        if header_index is None:
            if row.strip() != SERIES_HEADER:
                raise FormatError(f'Invalid header. Expected "{SERIES_HEADER}"', row_index=row_index, content=row)
            header_index = row_index
            continue

        fields = row.split(",")
        if len(fields) != 4:
            raise FormatError(f"Expected 4 fields, found {len(fields)}", row_index=row_index, content=row)

        try:
            x, average, deviation = (float(value) for value in fields[:3])
        except ValueError:
            raise FormatError("Expected floating point x, average and stddev", row_index=row_index, content=row)

        columns = fields[3].strip()
        try:
            indices = tuple(int(value) for value in columns.split("-")) if columns else ()
        except ValueError:
            raise FormatError("Expected hyphen separated integer column indices", row_index=row_index, content=row)

        samples.append(
            PigmentationSample(
                x=x, average_pigmentation=average, standard_deviation=deviation, included_column_indices=indices
            )
        )

    if not samples:
        rows = 0 if header_index is None else 1
        raise FormatError(f"Invalid number of rows: {rows}. Expected > 1", row_index=last_index, content=last_row)
    return samples


def write_series(samples: Sequence[PigmentationSample], filepath: Path) -> None:
    """
    Raises:
        ResourceError: file cannot be written
    """
    _write_text(Path(filepath), format_series(samples))


def read_series(filepath: Path) -> List[PigmentationSample]:
    """
    Raises:
        ResourceError: file cannot be read
        FormatError: malformed contents
    """
    filepath = Path(filepath)
    try:
        contents = filepath.read_text(encoding="utf-8")
    except OSError as e:
        raise ResourceError(f"Failed to read sample series {filepath}: {e}")

    try:
        samples = parse_series(contents)
    except FormatError as e:
        logger.error(f"Malformed sample series {filepath}: {e}")
        raise

    logger.debug(f"Read {len(samples)} samples from {filepath}")
    return samples


def write_one_dimension_series(values: Sequence[float], filepath: Path) -> None:
    """One ``%f`` formatted value per line."""
    _write_text(Path(filepath), "\n".join("%f" % value for value in values))


def _write_text(filepath: Path, contents: str) -> None:
    try:
        filepath.parent.mkdir(parents=True, exist_ok=True)
        filepath.write_text(contents, encoding="utf-8")
    except OSError as e:
        raise ResourceError(f"Failed to write {filepath}: {e}")
