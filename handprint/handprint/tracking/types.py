"""
Canonical types for human edit tracking.

These types describe the *shape* of an edit notification and the line
ranges a human is believed to be editing. They never carry semantic
information about the edited text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from urllib.parse import urlparse


@dataclass(frozen=True)
class Position:
    """Zero-based line/character position in a document."""

    line: int
    character: int = 0


@dataclass(frozen=True)
class Range:
    """Range between two positions (end is exclusive at character level)."""

    start: Position
    end: Position

    @property
    def line_span(self) -> int:
        """Number of line breaks covered by the range."""
        return self.end.line - self.start.line


@dataclass(frozen=True)
class RawChange:
    """A single content change, as delivered by the editor.

    Empty range + text = insertion, range + empty text = deletion,
    both = replacement.
    """

    range: Range
    text: str = ""

    @property
    def inserted_newlines(self) -> int:
        return self.text.count("\n")


@dataclass(frozen=True)
class DocumentRef:
    """Identity of a live document."""

    uri: str
    file_name: str = ""

    @property
    def scheme(self) -> str:
        return urlparse(self.uri).scheme


@dataclass(frozen=True)
class ChangeNotification:
    """One batched change notification for a document."""

    document: DocumentRef
    content_changes: tuple[RawChange, ...] = field(default_factory=tuple)


class EventClassification(str, Enum):
    """Coarse, shape-based category of a change notification.

    - EMPTY: no content changes (metadata-only notification)
    - SINGLE_CHANGE: one small change, typical keystroke
    - MULTI_CHANGE: several unrelated changes (formatter, refactor, AI edit)
    - MULTI_LINE_HUMAN_EDIT: same edit on several lines (multi-cursor)
    - LARGE_INSERT: one large change (paste, completion)
    """

    EMPTY = "empty"
    SINGLE_CHANGE = "single-small-change"
    MULTI_CHANGE = "multi-change"
    MULTI_LINE_HUMAN_EDIT = "multi-line-human-edit"
    LARGE_INSERT = "large-insert"


HUMAN_LIKE_CLASSIFICATIONS = frozenset(
    {
        EventClassification.SINGLE_CHANGE,
        EventClassification.LARGE_INSERT,
        EventClassification.MULTI_LINE_HUMAN_EDIT,
    }
)


def is_human_like(classification: EventClassification) -> bool:
    """True when the classification may open or extend a segment."""
    return classification in HUMAN_LIKE_CLASSIFICATIONS


class SegmentClassification(str, Enum):
    """Verdict on a closed segment."""

    HUMAN_POSITIVE = "human_positive"


def is_segment_human(classification: SegmentClassification) -> bool:
    return classification == SegmentClassification.HUMAN_POSITIVE


@dataclass(frozen=True)
class EventDetection:
    """Result of classifying a change notification."""

    event_classification: EventClassification
    change_count: int
    first_insert_size: int


@dataclass
class Segment:
    """A candidate continuous human-edit session.

    The half-open interval [range_start_line, range_end_line_exclusive)
    is the current best-known line span. Timestamps are milliseconds.
    """

    document_uri: str
    file_name: str
    range_start_line: int
    range_end_line_exclusive: int
    started_at: float
    ended_at: float
    text_content: str = ""  # populated by the caller, never by the engine
    closed: bool = False

    @property
    def line_count(self) -> int:
        return self.range_end_line_exclusive - self.range_start_line

    @property
    def duration_ms(self) -> float:
        return self.ended_at - self.started_at
