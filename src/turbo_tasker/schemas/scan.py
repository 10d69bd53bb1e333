"""Scan session schemas."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from turbo_tasker.schemas.events import ProgressEvent
from turbo_tasker.utils import format_elapsed

BYTES_PER_GB = 1024**3


class ScanStatus(str, Enum):
    STOPPED = "Stopped"
    SCANNING = "Scanning"
    COMPLETED = "Completed"
    FAILED = "Failed"


class ScanCounters(BaseModel):
    """Running totals of a scan. Only ever grow while scanning."""

    resources_seen: int = 0
    directories_seen: int = 0
    files_seen: int = 0
    bytes_seen: int = 0

    def apply(self, event: ProgressEvent) -> None:
        """Add the deltas of one progress event."""
        self.resources_seen += event.resources
        self.directories_seen += event.directories
        self.files_seen += event.files
        self.bytes_seen += event.size


class ProgressRecord(BaseModel):
    """Raw progress payload as received, kept for display."""

    received_at: datetime = Field(default_factory=datetime.now)
    raw: str
    event: ProgressEvent


class ScanSnapshot(BaseModel):
    """Immutable view of a scan session for display surfaces."""

    model_config = ConfigDict(frozen=True)

    status: ScanStatus
    path: Optional[str] = None
    started_at: Optional[datetime] = None
    elapsed_ms: int = 0
    counters: ScanCounters = Field(default_factory=ScanCounters)
    log_length: int = 0

    @property
    def elapsed_display(self) -> str:
        return format_elapsed(self.elapsed_ms)

    @property
    def size_gb(self) -> float:
        return self.counters.bytes_seen / BYTES_PER_GB

    @property
    def resources_per_second(self) -> float:
        if self.elapsed_ms <= 0:
            return 0.0
        return self.counters.resources_seen / (self.elapsed_ms / 1000)

    @property
    def gb_per_second(self) -> float:
        if self.elapsed_ms <= 0:
            return 0.0
        return self.size_gb / (self.elapsed_ms / 1000)
