"""
Human edit tracking for live documents.

Distinguishes human-typed edits from tool-driven ones (AI edits, formatters,
programmatic rewrites) from the shape of editor change notifications, and
tracks the line ranges a human is actively editing.

Components:
- types: Change notification and segment types
- classifier: Shape-based event classification
- geometry: Whole-line position mapping (rebase) and interval distance
- segmenter: One open segment per document, extend/close decisions
- session: Host-facing glue (scheme filter, idle flush, recording)
- recorder / ledger: Metadata-only records of closed human segments

The session, recorder and ledger are imported from their modules directly;
this package only re-exports the engine.
"""

from .types import (
    ChangeNotification,
    DocumentRef,
    EventClassification,
    EventDetection,
    Position,
    Range,
    RawChange,
    Segment,
    SegmentClassification,
    is_human_like,
)
from .classifier import ClassifierConfig, classify_event
from .geometry import event_line_span, interval_distance_post_change, rebase_segment
from .segmenter import Segmenter, SegmenterConfig

__all__ = [
    "ChangeNotification",
    "DocumentRef",
    "EventClassification",
    "EventDetection",
    "Position",
    "Range",
    "RawChange",
    "Segment",
    "SegmentClassification",
    "is_human_like",
    "ClassifierConfig",
    "classify_event",
    "event_line_span",
    "interval_distance_post_change",
    "rebase_segment",
    "Segmenter",
    "SegmenterConfig",
]
