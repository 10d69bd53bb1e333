"""Store of staged actions keyed by resource path."""

from typing import Dict, Iterator, Optional, Tuple, Union

from loguru import logger

from turbo_tasker.exceptions import AckMismatchWarning, PayloadDecodeError
from turbo_tasker.schemas.events import CommitAcknowledgement, Payload
from turbo_tasker.schemas.staging import AckStatus, ActionKind, StagedAction, StagingSummary


class StagingStore:
    """
    Pending actions selected for the next bulk commit.

    Features:
    - One entry per path, insertion order preserved
    - Re-staging a path overwrites it in place and resets its acknowledgement
    - Acknowledgements update entries but never remove them
    - Totals are always computed from the live entries
    """

    def __init__(self):
        self._actions: Dict[str, StagedAction] = {}

    def upsert(
        self, path: str, action: Union[ActionKind, str], size_bytes: int
    ) -> StagedAction:
        """Stage ``action`` for ``path``, replacing any earlier action for it."""
        staged = StagedAction(path=path, action=ActionKind(action), bytes=size_bytes)
        if path in self._actions:
            logger.debug(f"Restaging {path}: {staged.action.value} ({size_bytes} bytes)")
        else:
            logger.debug(f"Staging {path}: {staged.action.value} ({size_bytes} bytes)")
        self._actions[path] = staged
        return staged

    def remove(self, path: str) -> Optional[StagedAction]:
        removed = self._actions.pop(path, None)
        if removed:
            logger.debug(f"Unstaged {path}")
        return removed

    def clear(self) -> None:
        self._actions.clear()

    def reconcile_ack(self, path: str, result_status: Union[AckStatus, str]) -> bool:
        """Apply a backend acknowledgement to the entry for ``path``.

        Acknowledgements can race with the user removing an entry, so an
        unknown path is logged and otherwise ignored.

        Returns:
            True if an entry was updated, False for an unknown path
        """
        staged = self._actions.get(path)
        if staged is None:
            logger.warning(
                f"{AckMismatchWarning.__name__}: acknowledgement '{result_status}' "
                f"for {path} which is not staged"
            )
            return False

        status = AckStatus.from_result(result_status)
        self._actions[path] = staged.model_copy(update={"ack_status": status})
        logger.info(f"{staged.action.value} {path}: {status.value}")
        return True

    def handle_ack(self, payload: Payload) -> bool:
        """Channel handler for commit acknowledgements."""
        try:
            ack = CommitAcknowledgement.decode(payload)
        except PayloadDecodeError as e:
            logger.warning(f"Dropping commit acknowledgement: {e}")
            return False
        return self.reconcile_ack(ack.path, ack.result_status)

    def total_bytes(self) -> int:
        return sum(staged.bytes for staged in self._actions.values())

    def snapshot(self) -> Tuple[StagedAction, ...]:
        return tuple(self._actions.values())

    def get(self, path: str) -> Optional[StagedAction]:
        return self._actions.get(path)

    def summary(self) -> StagingSummary:
        summary = StagingSummary(total_bytes=self.total_bytes())
        for staged in self._actions.values():
            if staged.ack_status == AckStatus.PENDING:
                summary.pending += 1
            elif staged.ack_status == AckStatus.FAILED:
                summary.failed += 1
            else:
                summary.acknowledged += 1
                if staged.action == ActionKind.DELETE:
                    summary.reclaimed_bytes += staged.bytes
                    summary.deleted_files += 1
                else:
                    summary.compressed_bytes += staged.bytes
        return summary

    def __contains__(self, path: object) -> bool:
        return path in self._actions

    def __len__(self) -> int:
        return len(self._actions)

    def __iter__(self) -> Iterator[StagedAction]:
        return iter(self.snapshot())
