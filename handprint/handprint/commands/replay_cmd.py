"""Replay command - run recorded change notifications through a tracking session."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from lsprotocol import types as lsp
from pygls.workspace import TextDocument
from rich.console import Console
from rich.table import Table

from ..config import TrackingConfig
from ..tracking.convert import notification_from_dict
from ..tracking.geometry import sort_changes_bottom_up
from ..tracking.ledger import SegmentLedger
from ..tracking.recorder import SegmentRecorder
from ..tracking.session import TrackingSession
from ..tracking.types import ChangeNotification, Segment

ENTRY_TYPES = ("open", "change", "close")


@dataclass
class ReplayEntry:
    """One line of a replay file."""

    kind: str  # open | change | close
    timestamp: float
    uri: str
    notification: ChangeNotification | None = None
    text: str = ""  # initial document text for "open"


def load_replay(path: Path) -> list[ReplayEntry]:
    """Parse a JSON Lines replay file.

    Timestamps (ms) are optional; a missing one is the previous entry's
    timestamp plus one millisecond.
    """
    entries: list[ReplayEntry] = []
    last_ts = 0.0
    with path.open("r", encoding="utf-8") as f:
        for lineno, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                data = json.loads(line)
            except json.JSONDecodeError as e:
                raise ValueError(f"{path}:{lineno}: invalid JSON: {e}") from e
            if not isinstance(data, dict):
                raise ValueError(f"{path}:{lineno}: entry must be an object")

            kind = str(data.get("type", "change")).lower()
            if kind not in ENTRY_TYPES:
                raise ValueError(f"{path}:{lineno}: unknown entry type {kind!r}")

            ts = data.get("timestamp")
            if ts is None:
                ts = last_ts + 1
            elif isinstance(ts, bool) or not isinstance(ts, (int, float)):
                raise ValueError(f"{path}:{lineno}: timestamp must be a number")
            last_ts = float(ts)

            try:
                if kind == "change":
                    notification = notification_from_dict(data)
                    entries.append(
                        ReplayEntry(kind, last_ts, notification.document.uri, notification=notification)
                    )
                    continue
                uri = data.get("uri") or (data.get("document") or {}).get("uri")
                if not isinstance(uri, str) or not uri:
                    raise ValueError("uri is required")
                text = data.get("text", "")
                if not isinstance(text, str):
                    raise ValueError("text must be a string")
                entries.append(ReplayEntry(kind, last_ts, uri, text=text))
            except ValueError as e:
                raise ValueError(f"{path}:{lineno}: {e}") from e
    return entries


class ReplayDocuments:
    """In-memory documents kept in sync with replayed changes.

    Only used to give the session a text provider; nothing is written out.
    """

    def __init__(self) -> None:
        self._documents: dict[str, TextDocument] = {}

    def open(self, uri: str, text: str) -> None:
        self._documents[uri] = TextDocument(uri, text)

    def close(self, uri: str) -> None:
        self._documents.pop(uri, None)

    def apply(self, notification: ChangeNotification) -> None:
        document = self._documents.get(notification.document.uri)
        if document is None:
            return
        # Ranges refer to the pre-change text, so apply bottom-up
        for change in sort_changes_bottom_up(notification.content_changes):
            document.apply_change(
                lsp.TextDocumentContentChangePartial(
                    range=lsp.Range(
                        start=lsp.Position(line=change.range.start.line, character=change.range.start.character),
                        end=lsp.Position(line=change.range.end.line, character=change.range.end.character),
                    ),
                    text=change.text,
                )
            )

    def read_lines(self, uri: str, start_line: int, end_line_exclusive: int) -> str | None:
        document = self._documents.get(uri)
        if document is None:
            return None
        lines = document.lines[start_line:end_line_exclusive]
        return "".join(line.rstrip("\r\n") + "\n" for line in lines)


def replay(
    entries: list[ReplayEntry],
    session: TrackingSession,
    documents: ReplayDocuments | None = None,
) -> list[Segment]:
    """Drive a session with replay entries; returns every closed segment in order."""
    closed: list[Segment] = []
    for entry in entries:
        # Idle timers would have fired before this entry arrived
        closed.extend(session.flush_idle(now=entry.timestamp))

        if entry.kind == "open":
            if documents is not None:
                documents.open(entry.uri, entry.text)
        elif entry.kind == "close":
            closed.extend(session.close_document(entry.uri))
            if documents is not None:
                documents.close(entry.uri)
        elif entry.notification is not None:
            if documents is not None:
                documents.apply(entry.notification)
            closed.extend(session.handle_change(entry.notification, now=entry.timestamp))

    closed.extend(session.flush_all())
    return closed


def _segment_row(segment: Segment) -> list[str]:
    name = Path(segment.file_name).name if segment.file_name else segment.document_uri
    return [
        name,
        f"[{segment.range_start_line}..{segment.range_end_line_exclusive})",
        str(segment.line_count),
        f"{segment.duration_ms / 1000:.1f}s",
        str(len(segment.text_content)),
    ]


def _segment_dict(segment: Segment) -> dict:
    return {
        "uri": segment.document_uri,
        "file_name": segment.file_name,
        "start_line": segment.range_start_line,
        "end_line": segment.range_end_line_exclusive,
        "started_at": segment.started_at,
        "ended_at": segment.ended_at,
        "chars": len(segment.text_content),
    }


def run_replay(
    workspace_path: Path,
    replay_path: Path,
    *,
    config: TrackingConfig,
    record: bool = False,
    output_format: str = "text",
) -> int:
    """
    Replay a change log and display the segments it produces.

    Returns the number of closed segments.
    """
    console = Console()

    entries = load_replay(replay_path)
    documents = ReplayDocuments()
    recorder = None
    if record:
        recorder = SegmentRecorder(
            SegmentLedger(workspace_path),
            min_segment_chars_no_whitespace=config.min_segment_chars_no_whitespace,
            record_enabled=config.record_enabled,
        )
    session = TrackingSession(
        config,
        recorder=recorder,
        text_provider=documents.read_lines,
        clock=lambda: entries[-1].timestamp if entries else 0.0,
    )

    closed = replay(entries, session, documents)

    if output_format == "json":
        print(json.dumps([_segment_dict(s) for s in closed], indent=2))
        return len(closed)

    if not closed:
        console.print("[dim]No segments closed.[/dim]")
    else:
        table = Table(title=f"Segments from {replay_path.name}")
        table.add_column("File", style="bold")
        table.add_column("Span")
        table.add_column("Lines", justify="right")
        table.add_column("Duration", justify="right")
        table.add_column("Chars", justify="right")
        for segment in closed:
            table.add_row(*_segment_row(segment))
        console.print(table)

    counts = ", ".join(f"{k}={v}" for k, v in sorted(session.event_counts.items()))
    console.print(f"[dim]{len(entries)} entries replayed ({counts or 'no changes'})[/dim]")
    if record:
        console.print(f"Recorded {session.recorded_count} segments to {recorder.ledger.ledger_path}")

    return len(closed)
