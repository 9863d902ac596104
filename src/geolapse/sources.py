"""
Point event sources.

A source is any iterator of PointEvent. The CSV reader here accepts files
with ``timestamp,lat,lon`` columns, one event per row; timestamps may be
integer epoch seconds or ISO-8601 strings.
"""

import csv
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional, Union


@dataclass(frozen=True)
class PointEvent:
    """One timestamped, optionally geolocated event."""

    timestamp: int
    latitude: Optional[float] = None
    longitude: Optional[float] = None


def parse_timestamp(value: str) -> int:
    """
    Convert epoch seconds or an ISO-8601 string to epoch seconds.

    Naive datetimes are taken as UTC.

    Example:
        >>> parse_timestamp("1109635200")
        1109635200
        >>> parse_timestamp("2005-03-01T00:00:00Z")
        1109635200
    """
    text = value.strip()
    try:
        return int(text)
    except ValueError:
        pass

    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"Unrecognised timestamp: {value!r}")

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def _parse_coordinate(value: str) -> Optional[float]:
    text = value.strip()
    if not text:
        return None
    return float(text)


def read_point_csv(path: Union[str, Path]) -> Iterator[PointEvent]:
    """
    Stream point events from a ``timestamp,lat,lon`` CSV file.

    A header row whose first field is not a timestamp is skipped. Empty
    latitude/longitude fields yield events without coordinates.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If a row has too few fields or unparseable values
    """
    path = Path(path)
    with open(path, "r", newline="", encoding="utf-8") as fh:
        reader = csv.reader(fh)
        for row in reader:
            if not row or not any(field.strip() for field in row):
                continue

            if reader.line_num == 1 and row[0].strip().lower() in ("timestamp", "time", "ts"):
                continue

            if len(row) < 3:
                raise ValueError(
                    f"{path}:{reader.line_num}: expected timestamp,lat,lon, got {len(row)} fields"
                )

            try:
                event = PointEvent(
                    timestamp=parse_timestamp(row[0]),
                    latitude=_parse_coordinate(row[1]),
                    longitude=_parse_coordinate(row[2]),
                )
            except ValueError as e:
                raise ValueError(f"{path}:{reader.line_num}: {e}")
            yield event
