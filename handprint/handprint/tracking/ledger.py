"""
Append-only segment ledger.

Stores closed-segment records in .handprint/segments.jsonl.
Key property: append-only, never rewritten. Records carry metadata only,
never document text.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator

from .types import SegmentClassification


@dataclass(frozen=True)
class SegmentRecord:
    """One closed human segment, as handed to the attribution pipeline."""

    timestamp: datetime  # segment ended_at
    uri: str
    file_name: str  # basename
    relative_path: str
    start_line: int
    end_line: int  # exclusive
    duration_ms: float
    total_chars: int
    non_whitespace_chars: int
    segment_classification: SegmentClassification

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "uri": self.uri,
            "file_name": self.file_name,
            "relative_path": self.relative_path,
            "start_line": self.start_line,
            "end_line": self.end_line,
            "metrics": {
                "duration_ms": self.duration_ms,
                "total_chars": self.total_chars,
                "non_whitespace_chars": self.non_whitespace_chars,
            },
            "segment_classification": self.segment_classification.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "SegmentRecord":
        """Reconstruct from JSON dict."""
        metrics = data.get("metrics", {})
        return cls(
            timestamp=datetime.fromisoformat(data["timestamp"]),
            uri=data["uri"],
            file_name=data.get("file_name", ""),
            relative_path=data.get("relative_path", ""),
            start_line=int(data["start_line"]),
            end_line=int(data["end_line"]),
            duration_ms=float(metrics.get("duration_ms", 0)),
            total_chars=int(metrics.get("total_chars", 0)),
            non_whitespace_chars=int(metrics.get("non_whitespace_chars", 0)),
            segment_classification=SegmentClassification(
                data.get("segment_classification", SegmentClassification.HUMAN_POSITIVE.value)
            ),
        )


class SegmentLedger:
    """Append-only ledger of closed human segments.

    Storage format: JSON Lines (.jsonl) - one record per line
    Location: .handprint/segments.jsonl relative to the workspace root
    """

    def __init__(self, workspace_path: Path):
        """Initialize ledger for a workspace.

        Args:
            workspace_path: Root of the edited workspace
        """
        self.workspace_path = workspace_path.resolve()
        self.handprint_dir = self.workspace_path / ".handprint"
        self.ledger_path = self.handprint_dir / "segments.jsonl"

    def _ensure_dir(self) -> None:
        self.handprint_dir.mkdir(parents=True, exist_ok=True)

    def append(self, record: SegmentRecord) -> None:
        """Append a record. This is the only write operation."""
        self._ensure_dir()
        with self.ledger_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record.to_dict(), separators=(",", ":")) + "\n")

    def iter_records(self) -> Iterator[SegmentRecord]:
        """Iterate over records (memory-efficient for large ledgers)."""
        if not self.ledger_path.exists():
            return
        with self.ledger_path.open("r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    yield SegmentRecord.from_dict(json.loads(line))

    def read_all(self) -> list[SegmentRecord]:
        return list(self.iter_records())

    def count(self) -> int:
        return sum(1 for _ in self.iter_records())

    # --- Query methods ---

    def records_for_file(self, relative_path: str) -> list[SegmentRecord]:
        return [r for r in self.iter_records() if r.relative_path == relative_path]

    # --- Summary methods ---

    def summary(self) -> dict:
        """Aggregate counts per file plus totals."""
        by_file: dict[str, dict[str, float]] = {}
        total = 0
        total_lines = 0
        total_chars = 0
        first: datetime | None = None
        last: datetime | None = None

        for r in self.iter_records():
            total += 1
            total_lines += r.line_count
            total_chars += r.non_whitespace_chars
            entry = by_file.setdefault(r.relative_path or r.uri, {"segments": 0, "lines": 0, "chars": 0})
            entry["segments"] += 1
            entry["lines"] += r.line_count
            entry["chars"] += r.non_whitespace_chars
            if first is None or r.timestamp < first:
                first = r.timestamp
            if last is None or r.timestamp > last:
                last = r.timestamp

        return {
            "total_segments": total,
            "total_lines": total_lines,
            "total_non_whitespace_chars": total_chars,
            "by_file": by_file,
            "first_segment": first.isoformat() if first else None,
            "last_segment": last.isoformat() if last else None,
        }
