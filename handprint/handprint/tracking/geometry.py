"""
Whole-line position mapping for segments.

All intervals are half-open [start, end_exclusive) in zero-based lines.
Changes are mapped at line granularity only; column offsets are used
solely to order changes on the same line.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from .types import RawChange, Segment


@dataclass(frozen=True)
class LineDelta:
    """Line bookkeeping for a single change."""

    inserted_lines: int
    deleted_lines: int

    @property
    def net(self) -> int:
        return self.inserted_lines - self.deleted_lines


@dataclass(frozen=True)
class EventLineSpan:
    """Line span touched by a notification.

    end_line_exclusive is in pre-change coordinates;
    end_line_exclusive_post_change accounts for the net line delta of
    every change in the notification.
    """

    start_line: int
    end_line_exclusive: int
    end_line_exclusive_post_change: int


def line_delta(change: RawChange) -> LineDelta:
    return LineDelta(
        inserted_lines=change.inserted_newlines,
        deleted_lines=change.range.line_span,
    )


def interval_distance_post_change(
    start_a: int,
    end_a: int,
    start_b: int,
    end_b: int,
) -> int:
    """Gap in lines between two half-open intervals (0 if overlapping or touching)."""
    if start_a < end_b and start_b < end_a:
        return 0
    if end_b <= start_a:
        return start_a - end_b
    return start_b - end_a


def event_line_span(changes: Sequence[RawChange]) -> EventLineSpan:
    """Derive the line span of a notification.

    Raises:
        ValueError: if there are no changes. Callers must route EMPTY
            notifications away before asking for a span.
    """
    if not changes:
        raise ValueError("Cannot extract start and end lines from event with no content changes")

    start_line = min(c.range.start.line for c in changes)
    end_line_exclusive = max(c.range.end.line for c in changes) + 1
    net = sum(line_delta(c).net for c in changes)
    return EventLineSpan(
        start_line=start_line,
        end_line_exclusive=end_line_exclusive,
        end_line_exclusive_post_change=end_line_exclusive + net,
    )


def sort_changes_bottom_up(changes: Sequence[RawChange]) -> list[RawChange]:
    """Order changes from the end of the document to the start."""
    return sorted(
        changes,
        key=lambda c: (c.range.start.line, c.range.start.character),
        reverse=True,
    )


def rebase_segment(segment: Segment, changes: Sequence[RawChange]) -> None:
    """Map the segment's line span through a batch of changes, in place.

    Changes are applied bottom-up so that each one is evaluated against
    coordinates not yet shifted by changes above it.
    """
    for change in sort_changes_bottom_up(changes):
        change_start = change.range.start.line
        change_end = change.range.end.line
        delta = line_delta(change)
        start = segment.range_start_line
        end = segment.range_end_line_exclusive

        if change_start >= end:
            # Below the segment, including a zero-width insertion at its end
            continue
        if change_start >= start and change_end < end:
            segment.range_end_line_exclusive = end + delta.net
        elif change_end <= start:
            segment.range_start_line = start + delta.net
            segment.range_end_line_exclusive = end + delta.net
        elif change_start < start and change_end < end:
            segment.range_start_line = change_start
            segment.range_end_line_exclusive = end + delta.net
        elif change_start >= start:
            segment.range_end_line_exclusive = change_start + delta.inserted_lines
        else:
            segment.range_start_line = change_start
            segment.range_end_line_exclusive = change_start + delta.inserted_lines

        # The edited line survives even when every original line was replaced
        if segment.range_end_line_exclusive <= segment.range_start_line:
            segment.range_end_line_exclusive = segment.range_start_line + 1
