"""One step of the incremental sync: plan the query, fetch a page, advance the checkpoint."""

from dataclasses import dataclass
from typing import List

from fivetran_connector_sdk import Logging as log

from checkpoint import Checkpoint
from checkpoint_advancer import CheckpointAdvancer
from plausible_client import PlausibleClient
from sync_planner import SyncPlanner
from timeseries import TimeseriesRecord


@dataclass(frozen=True)
class SyncStep:
    """Rows to deliver, the checkpoint to persist after delivering them, and the continuation flag."""

    records: List[TimeseriesRecord]
    checkpoint: Checkpoint
    has_more: bool

    def rows(self) -> List[dict]:
        return [record.as_row() for record in self.records]


def run_sync_step(
    client: PlausibleClient,
    planner: SyncPlanner,
    advancer: CheckpointAdvancer,
    checkpoint: Checkpoint,
) -> SyncStep:
    """
    Fetch the page that follows checkpoint. Any exception propagates before a new checkpoint
    is produced, so a failed step can be retried from the same checkpoint.
    """
    request = planner.plan(checkpoint)
    log.fine(f"Planned {request.mode.value} query at offset {request.offset}")

    page = client.fetch_page(request)
    new_checkpoint, has_more = advancer.advance(checkpoint, request.offset, page)

    log.info(
        f"Returning {len(page.records)} rows, hasMore={has_more}, "
        f"newState={new_checkpoint.to_state()}"
    )
    return SyncStep(records=page.records, checkpoint=new_checkpoint, has_more=has_more)
