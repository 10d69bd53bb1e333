"""Common test fixtures."""

import asyncio
import json
from typing import Any, Dict, List, Optional

import pytest
import pytest_asyncio
from loguru import logger

from turbo_tasker.ingest import EventChannel, EventKind
from turbo_tasker.services import (
    CommitCoordinator,
    RankStore,
    ScanSession,
    StagingStore,
    Workspace,
)

TICK = 0.01


class FakeBackend:
    """Stands in for the external scan and commit operations."""

    def __init__(self):
        self.scan_paths: List[str] = []
        self.commits: List[Dict[str, Any]] = []
        self.scan_error: Optional[Exception] = None
        self.commit_error: Optional[Exception] = None
        self.hold_scan = False
        self.release_scan = asyncio.Event()
        # Events delivered by the backend while the call is in flight
        self.scan_events: List[tuple] = []
        self.commit_events: List[tuple] = []
        self.channel: Optional[EventChannel] = None

    async def scan(self, path: str) -> str:
        self.scan_paths.append(path)
        for kind, payload in self.scan_events:
            self.channel.dispatch(kind, payload)
        if self.hold_scan:
            await self.release_scan.wait()
        if self.scan_error:
            raise self.scan_error
        return f"scanned {path}"

    async def commit(self, actions: List[Dict[str, Any]], correlation_id: str) -> str:
        self.commits.append({"actions": actions, "correlation_id": correlation_id})
        for kind, payload in self.commit_events:
            self.channel.dispatch(kind, payload)
        if self.commit_error:
            raise self.commit_error
        return "committed"


def progress_payload(resources=0, directories=0, files=0, size=0, **extra) -> str:
    data = {
        "resources": resources,
        "directories": directories,
        "files": files,
        "size": size,
        "timestamp": "2024-03-01T10:00:00+00:00",
        "wall_time_nanos": 1000,
    }
    data.update(extra)
    return json.dumps(data)


def ranked(rank: int, path: str, size: int, compressible: str = "1", **extra) -> Dict[str, Any]:
    data = {
        "rank": rank,
        "path": path,
        "bytes": size,
        "mime_type": "application/x-iso9660-image",
        "compressible": compressible,
        "modified": "2024-01-01",
        "accessed": "2024-02-01",
        "modified_days": 60,
        "accessed_days": 29,
    }
    data.update(extra)
    return data


@pytest.fixture
def channel() -> EventChannel:
    return EventChannel()


@pytest.fixture
def backend(channel) -> FakeBackend:
    backend = FakeBackend()
    backend.channel = channel
    return backend


@pytest.fixture
def log_messages():
    """Capture loguru output as (level, message) tuples."""
    messages = []
    handler_id = logger.add(
        lambda m: messages.append((m.record["level"].name, m.record["message"])),
        level="DEBUG",
    )
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def staging_store() -> StagingStore:
    return StagingStore()


@pytest.fixture
def rank_store() -> RankStore:
    return RankStore()


@pytest_asyncio.fixture
async def scan_session(backend, channel):
    session = ScanSession(backend.scan, tick_interval=TICK)
    subscription = channel.subscribe(EventKind.PROGRESS, session.handle_progress)
    yield session
    subscription.release()
    session.close()


@pytest.fixture
def commit_coordinator(staging_store, backend) -> CommitCoordinator:
    return CommitCoordinator(staging_store, backend.commit, history=5)


@pytest_asyncio.fixture
async def workspace(backend, channel):
    async with Workspace(backend.scan, backend.commit, channel=channel, tick_interval=TICK) as ws:
        yield ws
