"""Composition of the channel, the scan session and the stores."""

from typing import List, Optional, Union

from loguru import logger

from turbo_tasker.exceptions import ResourceNotFoundError
from turbo_tasker.ingest import EventChannel, EventKind, Subscription
from turbo_tasker.schemas.scan import ScanSnapshot
from turbo_tasker.schemas.staging import ActionKind, CommitAttempt, StagedAction
from turbo_tasker.services.commit_coordinator import CommitCoordinator, CommitOperation
from turbo_tasker.services.rank_store import RankStore
from turbo_tasker.services.scan_session import ScanOperation, ScanSession
from turbo_tasker.services.staging_store import StagingStore


class Workspace:
    """Owns one scan session, one rank store and one staging store.

    Progress and rank snapshots fan out from the channel to the session and
    the rank store. Commit acknowledgements loop back into the staging store.
    Use as an async context manager so subscriptions and the clock are always
    released.
    """

    def __init__(
        self,
        scan_operation: ScanOperation,
        commit_operation: CommitOperation,
        channel: Optional[EventChannel] = None,
        tick_interval: Optional[float] = None,
    ):
        self._owns_channel = channel is None
        self.channel = channel or EventChannel()
        self.ranks = RankStore()
        self.staging = StagingStore()
        self.session = ScanSession(
            scan_operation,
            tick_interval=tick_interval,
            on_reset=[self.staging.clear, self.ranks.clear],
        )
        self.coordinator = CommitCoordinator(self.staging, commit_operation)

        self.subscriptions: List[Subscription] = [
            self.channel.subscribe(EventKind.PROGRESS, self.session.handle_progress),
            self.channel.subscribe(EventKind.RANK_SNAPSHOT, self.ranks.handle_snapshot),
            self.channel.subscribe(EventKind.COMMIT_ACK, self.staging.handle_ack),
        ]

    async def start_scan(self, path: str) -> ScanSnapshot:
        return await self.session.start_scan(path)

    def stage(self, path: str, action: Union[ActionKind, str]) -> StagedAction:
        """Stage an action for a resource of the current rank snapshot."""
        resource = self.ranks.get(path)
        if resource is None:
            raise ResourceNotFoundError(f"{path} is not in the current rank snapshot")
        return self.staging.upsert(path, action, resource.bytes)

    def unstage(self, path: str) -> Optional[StagedAction]:
        return self.staging.remove(path)

    async def commit(self) -> Optional[CommitAttempt]:
        return await self.coordinator.commit()

    def close(self) -> None:
        for subscription in self.subscriptions:
            subscription.release()
        self.session.close()
        if self._owns_channel:
            self.channel.close()
        logger.debug("Workspace closed")

    async def __aenter__(self) -> "Workspace":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()
