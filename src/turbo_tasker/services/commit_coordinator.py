"""Drives the external commit operation for staged actions."""

from collections import deque
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional
from uuid import uuid4

import logfire
from loguru import logger

from turbo_tasker.config import config
from turbo_tasker.exceptions import CommitInvocationError
from turbo_tasker.schemas.staging import CommitAttempt
from turbo_tasker.services.staging_store import StagingStore

CommitOperation = Callable[[List[Dict[str, Any]], str], Awaitable[Any]]


class CommitCoordinator:
    """Sends snapshots of the staging store to the backend.

    Resolution of the commit call only tells whether the request was
    accepted. Per-entry outcomes arrive separately as acknowledgements and are
    matched to entries by path, so nothing is marked acknowledged here.
    """

    def __init__(
        self,
        store: StagingStore,
        commit_operation: CommitOperation,
        history: Optional[int] = None,
    ):
        self.store = store
        self.commit_operation = commit_operation
        self.attempts: Deque[CommitAttempt] = deque(maxlen=history or config.attempt_history)
        self.in_flight: Dict[str, CommitAttempt] = {}

    async def commit(self) -> Optional[CommitAttempt]:
        """Commit everything currently staged.

        Returns:
            The submitted attempt, or None when nothing is staged

        Raises:
            CommitInvocationError: If the commit operation rejects. Entries stay pending.
        """
        actions = self.store.snapshot()
        if not actions:
            logger.info("Nothing staged, skipping commit")
            return None
        return await self._submit(CommitAttempt(correlation_id=uuid4().hex, actions=actions))

    async def resubmit(self, attempt: CommitAttempt) -> CommitAttempt:
        """Send the actions of an earlier attempt again under a new correlation id."""
        retry = CommitAttempt(correlation_id=uuid4().hex, actions=attempt.actions)
        logger.info(f"Resubmitting {attempt.correlation_id} as {retry.correlation_id}")
        return await self._submit(retry)

    async def _submit(self, attempt: CommitAttempt) -> CommitAttempt:
        correlation_id = attempt.correlation_id
        self.attempts.append(attempt)
        self.in_flight[correlation_id] = attempt
        logger.info(
            f"Committing {len(attempt.actions)} staged actions "
            f"({attempt.total_bytes} bytes) as {correlation_id}"
        )

        try:
            with logfire.span(
                "commit", correlation_id=correlation_id, actions=len(attempt.actions)
            ):
                await self.commit_operation(attempt.payload(), correlation_id)
        except Exception as e:
            logger.error(f"Commit {correlation_id} failed: {e}")
            raise CommitInvocationError(attempt, str(e)) from e
        finally:
            self.in_flight.pop(correlation_id, None)

        logger.info(f"Commit {correlation_id} accepted")
        return attempt

    @property
    def last_attempt(self) -> Optional[CommitAttempt]:
        return self.attempts[-1] if self.attempts else None
