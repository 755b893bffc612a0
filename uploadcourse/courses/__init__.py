"""Course row parsing and processing."""

from .helpers import generate_shortname, increment_idnumber, increment_shortname, parse_row
from .processor import CourseProcessor, RowError, read_rows

__all__ = [
    "CourseProcessor",
    "RowError",
    "generate_shortname",
    "increment_idnumber",
    "increment_shortname",
    "parse_row",
    "read_rows",
]
