"""DJ session state machine and persistence."""

from dj.serialization import deserialize_dj_state, serialize_dj_state
from dj.workflow import (
    DJSession,
    elapsed_label,
    format_play_history,
    source_label,
    was_recently_played,
)

__all__ = [
    "DJSession",
    "deserialize_dj_state",
    "elapsed_label",
    "format_play_history",
    "serialize_dj_state",
    "source_label",
    "was_recently_played",
]
