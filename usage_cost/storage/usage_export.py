"""
Usage export parsing.

Reads the delimited usage export into typed records. The export has a
header row followed by one row per usage bucket:

    organization_id,n_requests,operation,n_context_tokens_total,
    n_generated_tokens_total,usage_type,model,timestamp,user
"""

import csv
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, Iterator, List, Sequence, Tuple

from .models import RawUsageRecord

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = (
    "organization_id",
    "n_requests",
    "operation",
    "n_context_tokens_total",
    "n_generated_tokens_total",
    "usage_type",
    "model",
    "timestamp",
    "user",
)


class UsageExportError(ValueError):
    """Raised when a row of the usage export cannot be parsed."""

    def __init__(self, line: int, message: str):
        super().__init__(f"Line {line}: {message}")
        self.line = line


def _parse_int(value: str, column: str, line: int) -> int:
    try:
        return int(value)
    except ValueError:
        raise UsageExportError(line, f"'{column}' must be an integer, got {value!r}")


def parse_usage_row(row: Sequence[str], line: int) -> RawUsageRecord:
    """Convert one export row into a RawUsageRecord.

    Args:
        row: Column values in export order
        line: 1-based line number for error messages

    Raises:
        UsageExportError: If the row has the wrong shape or bad numbers
    """
    if len(row) != len(EXPORT_COLUMNS):
        raise UsageExportError(
            line, f"expected {len(EXPORT_COLUMNS)} columns, got {len(row)}"
        )

    epoch_seconds = _parse_int(row[7], "timestamp", line)
    try:
        timestamp = datetime.fromtimestamp(epoch_seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        raise UsageExportError(line, f"'timestamp' out of range: {epoch_seconds}")

    return RawUsageRecord(
        organization_id=row[0],
        request_count=_parse_int(row[1], "n_requests", line),
        operation=row[2],
        input_token_count=_parse_int(row[3], "n_context_tokens_total", line),
        output_token_count=_parse_int(row[4], "n_generated_tokens_total", line),
        usage_type=row[5],
        model=row[6],
        timestamp=timestamp,
        user_id=row[8],
    )


def _parse_numbered_rows(
    numbered_rows: Iterable[Tuple[int, Sequence[str]]], skip_header: bool
) -> List[RawUsageRecord]:
    records = []
    for index, (line, row) in enumerate(numbered_rows):
        if skip_header and index == 0:
            continue
        if not row or all(not value.strip() for value in row):
            continue
        records.append(parse_usage_row(row, line))
    return records


def _file_rows(reader) -> Iterator[Tuple[int, List[str]]]:
    """Yield rows with the file line each one starts on."""
    start = 1
    for row in reader:
        yield start, row
        start = reader.line_num + 1


def parse_usage_rows(rows: Iterable[Sequence[str]], skip_header: bool = True) -> List[RawUsageRecord]:
    """Parse export rows into records, skipping the header and blank rows.

    Rows are numbered from 1 in iteration order.
    """
    return _parse_numbered_rows(enumerate(rows, start=1), skip_header)


def read_usage_export(path: str, delimiter: str = ",") -> List[RawUsageRecord]:
    """Read a usage export file into records.

    Args:
        path: Path to the CSV export
        delimiter: Column delimiter

    Returns:
        Records in file order

    Raises:
        FileNotFoundError: If the export file doesn't exist
        UsageExportError: If any row is malformed
    """
    export_path = Path(path)
    if not export_path.exists():
        raise FileNotFoundError(f"Usage export file not found: {path}")

    with open(export_path, "r", encoding="utf-8", newline="") as f:
        reader = csv.reader(f, delimiter=delimiter)
        records = _parse_numbered_rows(_file_rows(reader), skip_header=True)

    logger.info("Read %d usage records from %s", len(records), path)
    return records
