"""Segments command - inspect the ledger of recorded human segments."""

from __future__ import annotations

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..tracking.ledger import SegmentLedger, SegmentRecord


def format_record(record: SegmentRecord) -> str:
    """One-line text rendering of a record."""
    ts = record.timestamp.isoformat()[:19].replace("T", " ")
    return (
        f"{ts}  {record.relative_path or record.uri}  "
        f"[{record.start_line}..{record.end_line})  "
        f"{record.non_whitespace_chars} chars  {record.duration_ms / 1000:.1f}s"
    )


def run_segments_list(
    workspace_path: Path,
    *,
    last_n: int | None = None,
    file_filter: str | None = None,
    format: str = "text",
) -> int:
    """
    Display recorded segments.

    Returns the number of records displayed.
    """
    console = Console()
    ledger = SegmentLedger(workspace_path)

    records = ledger.records_for_file(file_filter) if file_filter else ledger.read_all()
    if last_n is not None:
        records = records[-last_n:] if last_n > 0 else []

    if not records:
        console.print("[dim]No segments recorded.[/dim]")
        return 0

    if format == "json":
        print(json.dumps([r.to_dict() for r in records], indent=2))
    else:
        for record in records:
            console.print(format_record(record), markup=False, highlight=False)

    return len(records)


def run_segments_summary(workspace_path: Path) -> int:
    """
    Display a summary of the ledger.

    Returns the total segment count.
    """
    console = Console()
    summary = SegmentLedger(workspace_path).summary()

    total = summary["total_segments"]
    if not total:
        console.print("[dim]No segments recorded yet.[/dim]")
        return 0

    table = Table(title="Human Segment Summary")
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Total segments", str(total))
    table.add_row("Total lines", str(summary["total_lines"]))
    table.add_row("Non-whitespace chars", f"{summary['total_non_whitespace_chars']:,}")
    table.add_row("", "")

    by_file = sorted(summary["by_file"].items(), key=lambda kv: kv[1]["segments"], reverse=True)
    for path, stats in by_file:
        table.add_row(f"  {path}", f"{int(stats['segments'])} / {int(stats['lines'])} lines")

    table.add_row("", "")
    table.add_row("First segment", summary["first_segment"][:19].replace("T", " "))
    table.add_row("Last segment", summary["last_segment"][:19].replace("T", " "))

    console.print(table)
    return total
