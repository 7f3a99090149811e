"""
Exception hierarchy shared by every stage of the colony analysis.

ColonyAnalysisError
 ├── ConfigurationError   invalid parameters, detected before any image work
 ├── ResourceError        unreadable image, unwritable output path
 ├── DegenerateInputError empty mask / degenerate bounding rectangle
 ├── FormatError          malformed sample-series file
 └── AggregationError     series that cannot be averaged together
"""

from typing import Optional


class ColonyAnalysisError(Exception):
    """Base exception for colony analysis errors"""

    pass


class ConfigurationError(ColonyAnalysisError, ValueError):
    """Invalid numeric range, bucket count or baseline series"""

    pass


class ResourceError(ColonyAnalysisError):
    """Image or output location could not be read or written"""

    pass


class DegenerateInputError(ColonyAnalysisError):
    """Mask without a usable colony"""

    pass


class FormatError(ColonyAnalysisError):
    """Malformed sample-series file"""

    def __init__(self, message: str, row_index: Optional[int] = None, content: Optional[str] = None):
        self.row_index = row_index
        self.content = content
        if row_index is not None:
            message = f"{message} (row {row_index}: {content!r})"
        super().__init__(message)


class AggregationError(ColonyAnalysisError):
    """Sample series could not be averaged"""

    pass
