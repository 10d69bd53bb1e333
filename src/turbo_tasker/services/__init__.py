from .commit_coordinator import CommitCoordinator, CommitOperation
from .rank_store import RankStore
from .scan_session import ElapsedClock, ScanOperation, ScanSession
from .staging_store import StagingStore
from .workspace import Workspace

__all__ = [
    "CommitCoordinator",
    "CommitOperation",
    "ElapsedClock",
    "RankStore",
    "ScanOperation",
    "ScanSession",
    "StagingStore",
    "Workspace",
]
