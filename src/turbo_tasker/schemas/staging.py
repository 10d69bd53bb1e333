"""Staged action schemas.

A staged action is a user-selected, not yet committed operation against a
resource. Entries are keyed by path inside the staging store; acknowledgements
coming back from the backend only ever change ``ack_status``.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

ACKNOWLEDGED_RESULTS = {"success", "ok", "acknowledged", "done"}


class ActionKind(str, Enum):
    """Operations a user can stage against a resource."""

    DELETE = "delete"
    COMPRESS = "compress"


class AckStatus(str, Enum):
    """Backend acknowledgement state of a staged action."""

    PENDING = "pending"
    ACKNOWLEDGED = "acknowledged"
    FAILED = "failed"

    @classmethod
    def from_result(cls, result: Union[str, "AckStatus"]) -> "AckStatus":
        """Map a backend result status onto an acknowledgement state.

        Anything the backend does not report as a success counts as failed.
        """
        if isinstance(result, AckStatus):
            return result
        if str(result).strip().lower() in ACKNOWLEDGED_RESULTS:
            return cls.ACKNOWLEDGED
        return cls.FAILED


class StagedAction(BaseModel):
    """A pending action for one resource path."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(min_length=1)
    action: ActionKind
    bytes: int = Field(ge=0)
    ack_status: AckStatus = AckStatus.PENDING

    def to_payload(self) -> Dict[str, Union[str, int]]:
        """Shape expected by the external commit operation."""
        return {"action": self.action.value, "path": self.path, "bytes": self.bytes}


class CommitAttempt(BaseModel):
    """Point-in-time snapshot of the staged actions sent to the backend."""

    model_config = ConfigDict(frozen=True)

    correlation_id: str
    actions: Tuple[StagedAction, ...]
    submitted_at: datetime = Field(default_factory=datetime.now)

    @property
    def paths(self) -> List[str]:
        return [action.path for action in self.actions]

    @property
    def total_bytes(self) -> int:
        return sum(action.bytes for action in self.actions)

    def payload(self) -> List[Dict[str, Union[str, int]]]:
        return [action.to_payload() for action in self.actions]


class StagingSummary(BaseModel):
    """Totals shown above the staging table."""

    total_bytes: int = Field(default=0, description="Bytes in scope of all staged actions")
    reclaimed_bytes: int = Field(default=0, description="Bytes of acknowledged deletions")
    deleted_files: int = Field(default=0, description="Number of acknowledged deletions")
    compressed_bytes: int = Field(default=0, description="Bytes of acknowledged compressions")
    pending: int = 0
    acknowledged: int = 0
    failed: int = 0

    @property
    def staged(self) -> int:
        return self.pending + self.acknowledged + self.failed
