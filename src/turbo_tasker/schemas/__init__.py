"""Pydantic models for events, scan state and staged actions."""

from turbo_tasker.schemas.events import (
    CommitAcknowledgement,
    Compressibility,
    ProgressEvent,
    RankedResource,
    RankSnapshot,
)
from turbo_tasker.schemas.scan import (
    ProgressRecord,
    ScanCounters,
    ScanSnapshot,
    ScanStatus,
)
from turbo_tasker.schemas.staging import (
    AckStatus,
    ActionKind,
    CommitAttempt,
    StagedAction,
    StagingSummary,
)

__all__ = [
    "AckStatus",
    "ActionKind",
    "CommitAcknowledgement",
    "CommitAttempt",
    "Compressibility",
    "ProgressEvent",
    "ProgressRecord",
    "RankedResource",
    "RankSnapshot",
    "ScanCounters",
    "ScanSnapshot",
    "ScanStatus",
    "StagedAction",
    "StagingSummary",
]
