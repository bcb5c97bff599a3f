"""Rolls pagination state forward after a page of results has been fetched."""

from dataclasses import dataclass, field, replace
from numbers import Number
from typing import Any, List, Optional, Tuple

from fivetran_connector_sdk import Logging as log

from checkpoint import Checkpoint
from config import SyncConfig
from sync_planner import QueryWindow
from timeseries import TimeseriesRecord


@dataclass(frozen=True)
class PageResult:
    """Records returned by one fetch, with the window row count Plausible reported."""

    records: List[TimeseriesRecord] = field(default_factory=list)
    total_rows: Any = None
    window: Optional[QueryWindow] = None
    offset: int = 0

    @property
    def has_total_rows(self) -> bool:
        return isinstance(self.total_rows, Number) and not isinstance(self.total_rows, bool)


class CheckpointAdvancer:
    """Computes the next checkpoint and whether the current window has more pages."""

    def __init__(self, config: SyncConfig):
        self.config = config

    def has_more(self, request_offset: int, page: PageResult) -> bool:
        """
        More rows exist when the window holds rows beyond the end of the page just requested.
        A window whose total equals request_offset + page_size is exhausted.
        """
        if page.has_total_rows:
            return page.total_rows > request_offset + self.config.page_size

        if not page.records:
            return False

        # Without a total, a full page may be followed by more rows; a short page is the last one.
        log.warning(
            f"Plausible response has no usable total_rows ({page.total_rows!r}); "
            "inferring pagination from the page size"
        )
        return len(page.records) >= self.config.page_size

    def advance(
        self, checkpoint: Checkpoint, request_offset: int, page: PageResult
    ) -> Tuple[Checkpoint, bool]:
        """
        Return (new_checkpoint, has_more) without mutating checkpoint.

        - More rows remain: remember the offset just consumed, keep the watermark.
        - Window drained with rows: the newest row timestamp becomes the watermark and the
          pending offset is cleared.
        - Window drained without rows: the checkpoint is returned unchanged.
        """
        has_more = self.has_more(request_offset, page)

        if has_more:
            return replace(checkpoint, pending_offset=request_offset), True

        if page.records:
            # Timestamps are fixed-width UTC strings, so string order is time order
            max_date_time = max(record.timestamp for record in page.records)
            return Checkpoint(last_completed_timestamp=max_date_time, pending_offset=None), False

        return checkpoint, False
