from .session import (
    EntryDirection,
    EntryOutcome,
    SessionState,
    StreamEntry,
    StreamSessionRecord,
)

__all__ = [
    "EntryDirection",
    "EntryOutcome",
    "SessionState",
    "StreamEntry",
    "StreamSessionRecord",
]
