"""The plausible_timeseries table and conversion of Plausible result rows into it."""

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, List

from sync_planner import TIMESERIES_METRICS, format_utc_timestamp

TABLE_NAME = "plausible_timeseries"
PRIMARY_KEY = ["timestamp"]

# Formats of the time:hour dimension, a naive local time in the dashboard's timezone
_DIMENSION_FORMATS = (
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%dT%H:%M:%S",
)


def table_schema() -> dict:
    """
    Schema of the plausible_timeseries table, in the format returned by the schema function.
    """
    return {
        "table": TABLE_NAME,
        "primary_key": PRIMARY_KEY,
        "columns": {
            "timestamp": "UTC_DATETIME",  # Start of the hour bucket in UTC
            "visitors": "LONG",
            "visits": "LONG",
            "pageviews": "LONG",
            "bounce_rate": "DOUBLE",  # Percentage
            "visit_duration": "DOUBLE",  # Seconds
        },
    }


@dataclass(frozen=True)
class TimeseriesRecord:
    """One hourly row of the plausible_timeseries table."""

    timestamp: str
    visitors: Any
    pageviews: Any
    bounce_rate: Any
    visit_duration: Any
    visits: Any

    def as_row(self) -> Dict[str, Any]:
        return asdict(self)


def parse_dimension_datetime(value: str) -> datetime:
    """Parse a naive time dimension string such as '2024-01-01 05:00'."""
    text = str(value).strip()
    for fmt in _DIMENSION_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    raise ValueError(f"Unrecognized Plausible time dimension: {value!r}")


def to_utc_timestamp(value: str, timezone) -> str:
    """
    Interpret a naive dimension string in the reporting timezone and return it as a UTC
    ISO-8601 string. During the autumn DST overlap the earlier, summer-time reading is used.
    """
    local = timezone.localize(parse_dimension_datetime(value), is_dst=True)
    return format_utc_timestamp(local)


def record_from_result(result: dict, timezone) -> TimeseriesRecord:
    """
    Convert one entry of the Plausible "results" list into a TimeseriesRecord.
    Expected shape: {"dimensions": ["YYYY-MM-DD HH:MM"], "metrics": [visitors, visits, ...]}
    """
    dimensions = result.get("dimensions") or []
    metrics = result.get("metrics") or []
    if not dimensions:
        raise ValueError(f"Plausible result row has no time dimension: {result!r}")
    if len(metrics) != len(TIMESERIES_METRICS):
        raise ValueError(
            f"Expected {len(TIMESERIES_METRICS)} metrics per row, got {len(metrics)}: {result!r}"
        )

    values = dict(zip(TIMESERIES_METRICS, metrics))
    return TimeseriesRecord(
        timestamp=to_utc_timestamp(dimensions[0], timezone),
        visitors=values["visitors"],
        pageviews=values["pageviews"],
        bounce_rate=values["bounce_rate"],
        visit_duration=values["visit_duration"],
        visits=values["visits"],
    )


def records_from_results(results: List[dict], timezone) -> List[TimeseriesRecord]:
    return [record_from_result(result, timezone) for result in results]
