"""
Segmenter: tracks one open human-edit segment per document.

Consumes (notification, classification) pairs in chronological order and
decides whether each human-like edit extends the open segment, or closes it
and starts a new one. Foreign edits only rebase the open segment.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

from .geometry import event_line_span, interval_distance_post_change, rebase_segment
from .types import (
    ChangeNotification,
    DocumentRef,
    EventClassification,
    Segment,
    is_human_like,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SegmenterConfig:
    """Per-notification segmenter inputs."""

    now: float  # ms
    max_segment_duration_ms: float
    max_segment_chars: int
    adjacency_gap_lines: int
    event_classification: EventClassification


class Segmenter:
    """Owns the open segment of every tracked document.

    Users edit several files at once; each document keeps independent line
    bookkeeping. The mapping key enforces at most one open segment per
    document.
    """

    def __init__(self) -> None:
        self._open_segments: dict[str, Segment] = {}
        # Last notification of any kind per document with an open segment
        self._last_document_change_at: dict[str, float] = {}

    def get_all_open_segments_uris(self) -> list[str]:
        return list(self._open_segments.keys())

    def get_open_segment(self, document_uri: str) -> Segment | None:
        """Return the live open segment (the caller may set text_content)."""
        return self._open_segments.get(document_uri)

    def on_did_change_text_document(
        self,
        notification: ChangeNotification,
        cfg: SegmenterConfig,
    ) -> list[Segment]:
        """Process one change notification.

        Returns:
            Segments closed as a result of this notification
        """
        uri = notification.document.uri
        changes = notification.content_changes
        current = self._open_segments.get(uri)

        if not is_human_like(cfg.event_classification):
            # Foreign or empty edit: keep coordinates aligned, nothing else
            if current is not None:
                if changes:
                    rebase_segment(current, changes)
                self._last_document_change_at[uri] = cfg.now
            return []

        span = event_line_span(changes)

        if current is None:
            self._open_segment(
                notification.document,
                span.start_line,
                span.end_line_exclusive_post_change,
                cfg.now,
            )
            return []

        # Bring the segment into post-change coordinates before comparing
        rebase_segment(current, changes)
        distance = interval_distance_post_change(
            current.range_start_line,
            current.range_end_line_exclusive,
            span.start_line,
            span.end_line_exclusive_post_change,
        )

        if distance <= cfg.adjacency_gap_lines and not self._limits_exceeded(current, cfg):
            current.range_start_line = min(current.range_start_line, span.start_line)
            current.range_end_line_exclusive = max(
                current.range_end_line_exclusive,
                span.end_line_exclusive_post_change,
            )
            current.ended_at = cfg.now
            self._last_document_change_at[uri] = cfg.now
            return []

        logger.debug(
            f"Closing segment for {current.file_name or uri}: distance={distance} "
            f"gap={cfg.adjacency_gap_lines}"
        )
        closed = self._close(current, ended_at=cfg.now)
        self._open_segment(
            notification.document,
            span.start_line,
            span.end_line_exclusive_post_change,
            cfg.now,
        )
        return [closed]

    def on_did_close_text_document(self, document_uri: str) -> list[Segment]:
        """Close the open segment of a document the editor closed."""
        closed = self.close_segment_by_doc_uri(document_uri)
        if closed is None:
            return []
        logger.info(f"Closing segment due to document close for {closed.file_name or document_uri}")
        return [closed]

    def close_segment_by_doc_uri(self, document_uri: str) -> Segment | None:
        """Force-close and forget the open segment of a document.

        Idempotent: returns None when the document has no open segment.
        ended_at keeps the time of the last edit merged into the segment.
        """
        current = self._open_segments.get(document_uri)
        if current is None:
            return None
        return self._close(current)

    def _limits_exceeded(self, segment: Segment, cfg: SegmenterConfig) -> bool:
        # Stale (document untouched for too long) or too large to stay a single record
        last_change_at = self._last_document_change_at.get(segment.document_uri, segment.ended_at)
        return (
            cfg.now - last_change_at >= cfg.max_segment_duration_ms
            or len(segment.text_content) >= cfg.max_segment_chars
        )

    def _open_segment(
        self,
        document: DocumentRef,
        start_line: int,
        end_line_exclusive: int,
        now: float,
    ) -> Segment:
        segment = Segment(
            document_uri=document.uri,
            file_name=document.file_name,
            range_start_line=start_line,
            range_end_line_exclusive=max(end_line_exclusive, start_line + 1),
            started_at=now,
            ended_at=now,
        )
        self._open_segments[document.uri] = segment
        self._last_document_change_at[document.uri] = now
        return segment

    def _close(self, segment: Segment, ended_at: float | None = None) -> Segment:
        del self._open_segments[segment.document_uri]
        self._last_document_change_at.pop(segment.document_uri, None)
        return replace(
            segment,
            closed=True,
            ended_at=segment.ended_at if ended_at is None else ended_at,
        )
