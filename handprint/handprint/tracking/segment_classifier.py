"""Closed-segment classification."""

from __future__ import annotations

from .types import Segment, SegmentClassification


def classify_segment(segment: Segment) -> SegmentClassification:
    """Classify a closed segment.

    Event-level classification already filtered foreign edits out of the
    segment, so every closed segment is currently human positive.
    """
    return SegmentClassification.HUMAN_POSITIVE
