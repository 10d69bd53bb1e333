"""Replay a recorded backend event stream through a workspace."""

import asyncio
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from turbo_tasker.cli.app import app
from turbo_tasker.config import config
from turbo_tasker.exceptions import ResourceNotFoundError, TaskerError
from turbo_tasker.ingest import EventChannel, EventKind
from turbo_tasker.schemas import (
    ActionKind,
    CommitAttempt,
    RankedResource,
    ScanSnapshot,
    StagedAction,
    StagingSummary,
)
from turbo_tasker.services import Workspace

console = Console()

Record = Tuple[EventKind, str]


@dataclass
class ReplayResult:
    scan: ScanSnapshot
    resources: List[RankedResource]
    staged: Tuple[StagedAction, ...]
    summary: StagingSummary
    attempt: Optional[CommitAttempt] = None
    skipped: List[str] = field(default_factory=list)


def parse_record(line: str) -> Record:
    """Parse one recording line: {"event": <kind>, "payload": <str or JSON>}."""
    data = json.loads(line)
    if not isinstance(data, dict) or "event" not in data or "payload" not in data:
        raise ValueError("expected an object with 'event' and 'payload'")
    kind = EventKind.from_channel(str(data["event"]))
    payload = data["payload"]
    if not isinstance(payload, str):
        payload = json.dumps(payload)
    return kind, payload


def load_recording(path: Path) -> Tuple[List[Record], List[str]]:
    """Read a newline-delimited recording, collecting unreadable lines."""
    records: List[Record] = []
    skipped: List[str] = []
    for number, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        if not line.strip():
            continue
        try:
            records.append(parse_record(line))
        except ValueError as e:
            skipped.append(f"line {number}: {e}")
    return records, skipped


def parse_stage(value: str) -> Tuple[ActionKind, str]:
    kind, sep, path = value.partition(":")
    if not sep or not path:
        raise typer.BadParameter(f"expected kind:path, got {value!r}")
    try:
        return ActionKind(kind), path
    except ValueError:
        choices = ", ".join(k.value for k in ActionKind)
        raise typer.BadParameter(f"unknown action {kind!r}, expected one of {choices}") from None


async def run_replay(
    records: List[Record],
    root: str,
    stages: List[Tuple[ActionKind, str]],
    commit: bool = False,
    tick_interval: Optional[float] = None,
) -> ReplayResult:
    """Feed ``records`` through a fresh workspace.

    Progress and rank events are delivered while the scan is in flight,
    acknowledgements only once a commit has been submitted.
    """
    scan_events = [r for r in records if r[0] != EventKind.COMMIT_ACK]
    ack_events = [r for r in records if r[0] == EventKind.COMMIT_ACK]

    channel = EventChannel()
    async with Workspace(
        scan_operation=lambda path: _deliver(channel, scan_events),
        commit_operation=lambda actions, correlation_id: _deliver(channel, ack_events),
        channel=channel,
        tick_interval=tick_interval,
    ) as workspace:
        await workspace.start_scan(root)

        for kind, path in stages:
            try:
                workspace.stage(path, kind)
            except ResourceNotFoundError as e:
                logger.warning(str(e))

        attempt = await workspace.commit() if commit else None
        # Let acknowledgements scheduled by the commit operation land
        await asyncio.sleep(0)

        return ReplayResult(
            scan=workspace.session.snapshot(),
            resources=workspace.ranks.resources,
            staged=workspace.staging.snapshot(),
            summary=workspace.staging.summary(),
            attempt=attempt,
        )


async def _deliver(channel: EventChannel, records: List[Record]) -> None:
    for kind, payload in records:
        channel.emit(kind, payload)
        await asyncio.sleep(0)


def display_scan(scan: ScanSnapshot) -> None:
    table = Table.grid(padding=(0, 2))
    table.add_row("Status", scan.status.value)
    table.add_row("Elapsed", scan.elapsed_display)
    table.add_row("Resources", f"{scan.counters.resources_seen:,}")
    table.add_row("Directories", f"{scan.counters.directories_seen:,}")
    table.add_row("Files", f"{scan.counters.files_seen:,}")
    table.add_row("Size (GB)", f"{scan.size_gb:.2f}")
    table.add_row("Resources/sec", f"{scan.resources_per_second:,.2f}")
    table.add_row("Throughput (GB/sec)", f"{scan.gb_per_second:.2f}")
    console.print(Panel(table, title=f"Scan {scan.path or ''}", expand=False))


def display_ranks(resources: List[RankedResource], top: int) -> None:
    if not resources:
        console.print("[dim]No ranked resources[/dim]")
        return

    table = Table(title="Largest resources")
    table.add_column("Rank", justify="right")
    table.add_column("Bytes", justify="right")
    table.add_column("Type")
    table.add_column("Compressible", justify="center")
    table.add_column("Path")
    for resource in resources[:top]:
        table.add_row(
            str(resource.rank),
            f"{resource.bytes:,}",
            resource.mime_type,
            resource.compressible.name.lower(),
            resource.path,
        )
    console.print(table)


def display_staging(staged: Tuple[StagedAction, ...], summary: StagingSummary) -> None:
    if not staged:
        console.print("[dim]Nothing staged[/dim]")
        return

    styles: Dict[str, str] = {"pending": "yellow", "acknowledged": "green", "failed": "red"}
    table = Table(title="Staged actions")
    table.add_column("Action")
    table.add_column("Path")
    table.add_column("Bytes", justify="right")
    table.add_column("Status")
    for action in staged:
        style = styles[action.ack_status.value]
        table.add_row(
            action.action.value,
            action.path,
            f"{action.bytes:,}",
            f"[{style}]{action.ack_status.value}[/{style}]",
        )
    console.print(table)
    console.print(
        f"Bytes in scope {summary.total_bytes:,}, "
        f"reclaimed {summary.reclaimed_bytes:,} ({summary.deleted_files} deleted), "
        f"compressed {summary.compressed_bytes:,}"
    )


def display_result(result: ReplayResult, top: int) -> None:
    for message in result.skipped:
        console.print(f"[yellow]Skipped {message}[/yellow]")
    display_scan(result.scan)
    display_ranks(result.resources, top)
    display_staging(result.staged, result.summary)
    if result.attempt:
        console.print(f"Commit {result.attempt.correlation_id} submitted")


@app.command()
def replay(
    events_file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    root: str = typer.Option("/", "--root", help="Path reported as the scan root."),
    stage: Optional[List[str]] = typer.Option(
        None, "--stage", "-s", help="Stage an action after the scan, as kind:path."
    ),
    commit: bool = typer.Option(False, "--commit", help="Commit staged actions."),
    top: int = typer.Option(10, "--top", help="Number of ranked resources to show."),
) -> None:
    """Replay recorded scan and commit events and show the resulting state."""
    stages = [parse_stage(value) for value in stage or []]
    try:
        records, skipped = load_recording(events_file)
        result = asyncio.run(
            run_replay(records, root, stages, commit=commit, tick_interval=config.tick_interval)
        )
        result.skipped = skipped
        display_result(result, top)
    except (TaskerError, OSError, UnicodeDecodeError) as e:
        logger.error(f"Replay failed: {e}")
        typer.echo(f"Error during replay: {e}", err=True)
        raise typer.Exit(1)
