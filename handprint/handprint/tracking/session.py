"""
Tracking session: the glue between an editor host and the segmenter.

This module provides:
- URI scheme filtering (only user-editable documents are tracked)
- Per-notification classification and segmenter dispatch
- Segment text population through a caller-supplied text provider
- Idle flush, document close and shutdown flush
- Classification and recording of every closed segment
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from typing import Callable, Optional

from ..config import TrackingConfig
from .classifier import classify_event
from .recorder import SegmentRecorder
from .segment_classifier import classify_segment
from .segmenter import Segmenter
from .types import ChangeNotification, DocumentRef, EventDetection, Segment, is_segment_human

logger = logging.getLogger(__name__)

# (document_uri, start_line, end_line_exclusive) -> text of those lines
TextProvider = Callable[[str, int, int], Optional[str]]
Clock = Callable[[], float]


def wall_clock_ms() -> float:
    return time.time() * 1000


class TrackingSession:
    """Drives one Segmenter from a stream of change notifications.

    Synchronous and single-threaded: hosts must call it from one thread
    (or one event loop) in notification order.
    """

    def __init__(
        self,
        config: TrackingConfig | None = None,
        *,
        recorder: SegmentRecorder | None = None,
        text_provider: TextProvider | None = None,
        clock: Clock | None = None,
    ):
        self.config = config or TrackingConfig()
        self.recorder = recorder
        self.text_provider = text_provider
        self.clock = clock or wall_clock_ms
        self.segmenter = Segmenter()
        self.event_counts: Counter[str] = Counter()
        self.recorded_count = 0

        # Last notification time per document with an open segment, for idle flush
        self._last_change_at: dict[str, float] = {}

    def is_tracked(self, uri: str) -> bool:
        return DocumentRef(uri).scheme.lower() in self.config.allowed_schemes

    def handle_change(
        self,
        notification: ChangeNotification,
        now: float | None = None,
    ) -> list[Segment]:
        """Classify a notification and feed it to the segmenter.

        Returns:
            Segments closed by this notification (already classified and
            handed to the recorder)
        """
        uri = notification.document.uri
        if not self.is_tracked(uri):
            return []

        now = self.clock() if now is None else now
        detection: EventDetection = classify_event(
            notification.content_changes,
            self.config.classifier_config(),
        )
        self.event_counts[detection.event_classification.value] += 1
        logger.debug(
            f"event classified eventType={detection.event_classification.value} "
            f"changes={detection.change_count} firstInsertSize={detection.first_insert_size}"
        )

        closed = self.segmenter.on_did_change_text_document(
            notification,
            self.config.segmenter_config(now, detection.event_classification),
        )
        if self.segmenter.get_open_segment(uri) is not None:
            self._last_change_at[uri] = now
            self._refresh_text(uri)
        else:
            self._last_change_at.pop(uri, None)
        return self._finish(closed)

    def close_document(self, uri: str) -> list[Segment]:
        """Handle an editor document close."""
        self._last_change_at.pop(uri, None)
        return self._finish(self.segmenter.on_did_close_text_document(uri))

    def close_segment(self, uri: str) -> Segment | None:
        """Force-close one document's segment (idle timeout, explicit flush)."""
        self._last_change_at.pop(uri, None)
        closed = self.segmenter.close_segment_by_doc_uri(uri)
        if closed is None:
            logger.debug(f"No segment to force-close for {uri}")
            return None
        self._finish([closed])
        return closed

    def flush_idle(self, now: float | None = None) -> list[Segment]:
        """Close segments whose documents saw no edit within segment_idle_ms."""
        now = self.clock() if now is None else now
        flushed: list[Segment] = []
        for uri in self.segmenter.get_all_open_segments_uris():
            last = self._last_change_at.get(uri)
            if last is not None and now - last < self.config.segment_idle_ms:
                continue
            logger.info(f"Idle flush (no edits within {self.config.segment_idle_ms}ms) for {uri}")
            closed = self.close_segment(uri)
            if closed is not None:
                flushed.append(closed)
        return flushed

    def flush_all(self) -> list[Segment]:
        """Close every open segment (shutdown)."""
        flushed: list[Segment] = []
        for uri in self.segmenter.get_all_open_segments_uris():
            closed = self.close_segment(uri)
            if closed is not None:
                flushed.append(closed)
        return flushed

    def open_segment_uris(self) -> list[str]:
        return self.segmenter.get_all_open_segments_uris()

    def _refresh_text(self, uri: str) -> None:
        # The engine never reads text; snapshot it here for size limits and records
        if self.text_provider is None:
            return
        segment = self.segmenter.get_open_segment(uri)
        if segment is None:
            return
        text = self.text_provider(uri, segment.range_start_line, segment.range_end_line_exclusive)
        if text is not None:
            segment.text_content = text

    def _finish(self, closed: list[Segment]) -> list[Segment]:
        for segment in closed:
            classification = classify_segment(segment)
            logger.info(
                f"segmentClassification={classification.value} lines={segment.line_count} "
                f"spanLines=[{segment.range_start_line}..{segment.range_end_line_exclusive}] "
                f"file={segment.file_name or segment.document_uri}"
            )
            if not is_segment_human(classification) or self.recorder is None:
                continue
            if self.recorder.record(segment, classification) is not None:
                self.recorded_count += 1
        return closed
