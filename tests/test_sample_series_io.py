"""
Tests for the sample-series CSV format
"""

import pytest

from colony_pigmentation.core.pigmentation_profiler import PigmentationSample
from colony_pigmentation.errors import FormatError, ResourceError
from colony_pigmentation.utils.sample_series_io import (
    SERIES_HEADER,
    format_series,
    parse_series,
    read_series,
    write_one_dimension_series,
    write_series,
)

SAMPLES = [
    PigmentationSample(0.0, 0.61, 0.05, (10, 11, 12)),
    PigmentationSample(0.5, 0.1 + 0.2, 0.0, (13,)),
    PigmentationSample(1.0, 0.0, 0.0, ()),
]


# ================================================================
# Writing
# ================================================================


def test_format_series():
    text = format_series(SAMPLES[:1])
    assert text == "x, average, stddev, columns\n0.0,0.61,0.05,10-11-12\n"


def test_write_and_read_series(tmp_path):
    path = tmp_path / "nested" / "series.csv"
    write_series(SAMPLES, path)

    assert path.read_text().splitlines()[0] == SERIES_HEADER
    # Floats survive exactly
    assert read_series(path) == SAMPLES


def test_write_one_dimension_series(tmp_path):
    path = tmp_path / "series_1d.csv"
    write_one_dimension_series([0.0, 0.25, 1.0], path)

    assert path.read_text() == "0.000000\n0.250000\n1.000000"


def test_write_to_unwritable_location(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("not a directory")

    with pytest.raises(ResourceError):
        write_series(SAMPLES, blocker / "series.csv")


# ================================================================
# Parsing
# ================================================================


def test_parse_ignores_empty_lines():
    text = "x, average, stddev, columns\n\n0.0,0.5,0.1,1-2\n\n1.0,0.25,0.0,3\n"
    samples = parse_series(text)

    assert samples == [
        PigmentationSample(0.0, 0.5, 0.1, (1, 2)),
        PigmentationSample(1.0, 0.25, 0.0, (3,)),
    ]


def test_parse_empty_columns():
    (sample,) = parse_series("x, average, stddev, columns\n0.5,0.5,0.0,\n")
    assert sample.included_column_indices == ()


def test_parse_header_only():
    with pytest.raises(FormatError, match="number of rows") as exc_info:
        parse_series("x, average, stddev, columns\n\n")

    assert exc_info.value.row_index == 0
    assert exc_info.value.content == SERIES_HEADER


def test_parse_empty_text():
    with pytest.raises(FormatError, match="number of rows: 0") as exc_info:
        parse_series("")
    assert exc_info.value.row_index == 0


def test_error_row_index_is_line_number():
    text = f"{SERIES_HEADER}\n0.0,0.5,0.1,1\n\n\n0.5,0.5\n"

    with pytest.raises(FormatError, match="fields") as exc_info:
        parse_series(text)

    assert exc_info.value.row_index == 4
    assert exc_info.value.content == "0.5,0.5"
    assert text.splitlines()[exc_info.value.row_index] == "0.5,0.5"


def test_parse_wrong_header():
    with pytest.raises(FormatError) as exc_info:
        parse_series("x,y\n0.0,0.5,0.1,1\n")
    assert exc_info.value.row_index == 0


@pytest.mark.parametrize(
    "row, reason",
    [
        ("0.0,0.5,0.1", "fields"),
        ("0.0,0.5,0.1,1,2", "fields"),
        ("zero,0.5,0.1,1", "floating point"),
        ("0.0,0.5,0.1,1-a", "integer"),
    ],
)
def test_parse_malformed_row(row, reason):
    text = f"{SERIES_HEADER}\n0.0,0.5,0.1,1\n{row}\n"

    with pytest.raises(FormatError, match=reason) as exc_info:
        parse_series(text)

    assert exc_info.value.row_index == 2
    assert exc_info.value.content == row
    assert "row 2" in str(exc_info.value)


def test_read_missing_file(tmp_path):
    with pytest.raises(ResourceError):
        read_series(tmp_path / "missing.csv")


def test_read_malformed_file(tmp_path):
    path = tmp_path / "broken.csv"
    path.write_text("not a series")

    with pytest.raises(FormatError):
        read_series(path)
