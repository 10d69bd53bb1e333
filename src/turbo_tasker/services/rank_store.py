"""Store for the latest ranked resource snapshot."""

from datetime import datetime
from typing import Iterator, List, Optional

from loguru import logger

from turbo_tasker.exceptions import PayloadDecodeError
from turbo_tasker.schemas.events import Payload, RankedResource, RankSnapshot


class RankStore:
    """Holds exactly one ranked list. Every snapshot replaces the previous one."""

    def __init__(self):
        self._resources: List[RankedResource] = []
        self.updated_at: Optional[datetime] = None

    def handle_snapshot(self, payload: Payload) -> bool:
        """Channel handler. A malformed snapshot leaves the current one untouched."""
        try:
            snapshot = RankSnapshot.decode(payload)
        except PayloadDecodeError as e:
            logger.warning(f"Keeping previous rank snapshot: {e}")
            return False

        self.replace(snapshot.root)
        return True

    def replace(self, resources: List[RankedResource]) -> None:
        self._resources = list(resources)
        self.updated_at = datetime.now()
        logger.debug(f"Rank snapshot replaced with {len(self._resources)} resources")

    @property
    def resources(self) -> List[RankedResource]:
        return list(self._resources)

    def get(self, path: str) -> Optional[RankedResource]:
        for resource in self._resources:
            if resource.path == path:
                return resource
        return None

    def largest(self, n: int) -> List[RankedResource]:
        return sorted(self._resources, key=lambda r: r.bytes, reverse=True)[: max(n, 0)]

    def clear(self) -> None:
        self._resources = []
        self.updated_at = None

    def __len__(self) -> int:
        return len(self._resources)

    def __iter__(self) -> Iterator[RankedResource]:
        return iter(list(self._resources))
