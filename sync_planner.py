"""Decides which time window and pagination offset the next Plausible query covers."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Union

import pytz

from checkpoint import Checkpoint
from config import SyncConfig

# Metrics requested for every timeseries row, in the order Plausible returns them
TIMESERIES_METRICS = ["visitors", "visits", "pageviews", "bounce_rate", "visit_duration"]
TIMESERIES_DIMENSIONS = ["time:hour"]

PROBE_METRICS = ["visitors"]
PROBE_DIMENSIONS = ["time:day"]

ALL_TIME = "all"
SINGLE_DAY = "day"


class SyncMode(Enum):
    """Enumeration for the kinds of invocation."""

    PROBE = "probe"
    INITIAL = "initial"
    INCREMENTAL = "incremental"
    CONTINUATION = "continuation"


@dataclass(frozen=True)
class QueryWindow:
    """Either a Plausible date range preset ("all", "day") or a concrete [start, end) pair."""

    preset: Optional[str] = None
    start: Optional[str] = None
    end: Optional[str] = None

    @classmethod
    def all_time(cls) -> "QueryWindow":
        return cls(preset=ALL_TIME)

    @classmethod
    def single_day(cls) -> "QueryWindow":
        return cls(preset=SINGLE_DAY)

    @classmethod
    def between(cls, start: str, end: str) -> "QueryWindow":
        return cls(start=start, end=end)

    @property
    def is_all_time(self) -> bool:
        return self.preset == ALL_TIME

    def to_date_range(self) -> Union[str, List[str]]:
        if self.preset is not None:
            return self.preset
        return [self.start, self.end]


@dataclass(frozen=True)
class QueryRequest:
    """One page request to the Plausible Stats API."""

    window: QueryWindow
    offset: int
    page_size: int
    mode: SyncMode

    @property
    def is_probe(self) -> bool:
        return self.mode is SyncMode.PROBE

    def to_query(self, site_id: str) -> dict:
        """Build the JSON body for POST /api/v2/query."""
        query = {
            "site_id": site_id,
            "date_range": self.window.to_date_range(),
            "metrics": list(PROBE_METRICS if self.is_probe else TIMESERIES_METRICS),
            "dimensions": list(PROBE_DIMENSIONS if self.is_probe else TIMESERIES_DIMENSIONS),
            "pagination": {"limit": self.page_size, "offset": self.offset},
        }
        if not self.is_probe:
            # Ask Plausible for the row count of the whole window so exhaustion can be detected
            query["include"] = {"total_rows": True}
        return query


def format_utc_timestamp(dt: datetime) -> str:
    """
    Format an aware datetime as a fixed-width ISO-8601 UTC string with millisecond precision,
    e.g. 2024-01-02T05:00:00.000Z. Fixed width keeps string order equal to time order.
    """
    dt = dt.astimezone(pytz.UTC)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def _utc_now() -> datetime:
    return datetime.now(pytz.UTC)


class SyncPlanner:
    """Computes the next QueryRequest from the previous checkpoint."""

    def __init__(self, config: SyncConfig, clock: Optional[Callable[[], datetime]] = None):
        self.config = config
        self.clock = clock or _utc_now

    def plan(self, checkpoint: Checkpoint) -> QueryRequest:
        """
        Without a watermark the whole history is requested. Otherwise the window runs from the
        watermark up to the current wall clock time, so rows at the watermark itself are fetched
        again and overwritten downstream.

        A pending offset continues the current window one page further. The step is a full page
        even if the previous page came back short, since exhaustion is judged on total rows.
        """
        if checkpoint.last_completed_timestamp is None:
            window = QueryWindow.all_time()
        else:
            window = QueryWindow.between(
                checkpoint.last_completed_timestamp, format_utc_timestamp(self.clock())
            )

        if checkpoint.pending_offset is None:
            offset = 0
        else:
            offset = checkpoint.pending_offset + self.config.page_size

        return QueryRequest(
            window=window,
            offset=offset,
            page_size=self.config.page_size,
            mode=self.mode_for(checkpoint),
        )

    @staticmethod
    def mode_for(checkpoint: Checkpoint) -> SyncMode:
        if checkpoint.pending_offset is not None:
            return SyncMode.CONTINUATION
        if checkpoint.last_completed_timestamp is not None:
            return SyncMode.INCREMENTAL
        return SyncMode.INITIAL

    @staticmethod
    def probe_request() -> QueryRequest:
        """Smallest possible query, used only to validate credentials."""
        return QueryRequest(
            window=QueryWindow.single_day(), offset=0, page_size=1, mode=SyncMode.PROBE
        )
