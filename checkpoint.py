"""Durable resumption state carried between sync invocations."""

from dataclasses import dataclass
from typing import Optional

# State keys written by the function connector. Kept stable so that state saved by
# earlier deployments keeps resuming.
WATERMARK_KEY = "lastDateTime"
PENDING_OFFSET_KEY = "lastOffset"


@dataclass(frozen=True)
class Checkpoint:
    """
    Incremental sync state.

    last_completed_timestamp is the watermark: the greatest row timestamp of the last fully
    drained window, as an ISO-8601 UTC string. pending_offset is the offset of the last page
    consumed from a window that still has rows left. It is None, never 0, once a window completes.
    """

    last_completed_timestamp: Optional[str] = None
    pending_offset: Optional[int] = None

    @classmethod
    def from_state(cls, state: Optional[dict]) -> "Checkpoint":
        """
        Build a Checkpoint from a state dictionary. Unknown keys are ignored.
        Raises:
            ValueError: if the pending offset is not a non-negative integer.
        """
        state = state or {}
        watermark = state.get(WATERMARK_KEY) or None
        return cls(
            last_completed_timestamp=str(watermark) if watermark is not None else None,
            pending_offset=_parse_offset(state.get(PENDING_OFFSET_KEY)),
        )

    def to_state(self) -> dict:
        """Serialize to a state dictionary, omitting absent fields."""
        state = {}
        if self.last_completed_timestamp is not None:
            state[WATERMARK_KEY] = self.last_completed_timestamp
        if self.pending_offset is not None:
            state[PENDING_OFFSET_KEY] = self.pending_offset
        return state


def _parse_offset(value) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError(f"Invalid {PENDING_OFFSET_KEY} in state: {value!r}")
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    elif isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or value < 0:
        raise ValueError(f"Invalid {PENDING_OFFSET_KEY} in state: {value!r}")
    return value
