"""
Recorder for closed human segments.

Segments at or above the non-whitespace character threshold become
metadata-only ledger records; smaller ones are discarded.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath

from .convert import uri_to_path
from .ledger import SegmentLedger, SegmentRecord
from .types import Segment, SegmentClassification

logger = logging.getLogger(__name__)

WHITESPACE_PATTERN = re.compile(r"\s")


def count_non_whitespace_chars(text: str) -> int:
    """Non-whitespace character count (ignores formatting and indentation)."""
    return len(WHITESPACE_PATTERN.sub("", text or ""))


class SegmentRecorder:
    """Builds records for human segments and appends them to the ledger."""

    def __init__(
        self,
        ledger: SegmentLedger,
        *,
        min_segment_chars_no_whitespace: int = 30,
        record_enabled: bool = True,
    ):
        self.ledger = ledger
        self.min_segment_chars_no_whitespace = min_segment_chars_no_whitespace
        self.record_enabled = record_enabled

    def build_record(
        self,
        segment: Segment,
        segment_classification: SegmentClassification,
    ) -> SegmentRecord:
        return SegmentRecord(
            timestamp=datetime.fromtimestamp(segment.ended_at / 1000, tz=timezone.utc),
            uri=segment.document_uri,
            file_name=PurePosixPath(segment.file_name.replace("\\", "/")).name if segment.file_name else "",
            relative_path=self._relative_path(segment),
            start_line=segment.range_start_line,
            end_line=segment.range_end_line_exclusive,
            duration_ms=segment.duration_ms,
            total_chars=len(segment.text_content),
            non_whitespace_chars=count_non_whitespace_chars(segment.text_content),
            segment_classification=segment_classification,
        )

    def record(
        self,
        segment: Segment,
        segment_classification: SegmentClassification,
    ) -> SegmentRecord | None:
        """Record a closed segment if it meets the size threshold.

        Returns the record that was (or, with recording disabled, would have
        been) written, or None when the segment was discarded.
        """
        non_whitespace = count_non_whitespace_chars(segment.text_content)
        if non_whitespace < self.min_segment_chars_no_whitespace:
            logger.info(
                f"SKIP record (below threshold: {non_whitespace}/{self.min_segment_chars_no_whitespace})"
            )
            return None

        record = self.build_record(segment, segment_classification)
        if not self.record_enabled:
            logger.debug(
                f"DRY-RUN (recording disabled): segment chars={record.total_chars} "
                f"file={record.relative_path}"
            )
            return record

        try:
            self.ledger.append(record)
        except OSError as e:
            logger.error(f"Failed to append segment record to {self.ledger.ledger_path}: {e}")
            return None

        logger.info(f"Recorded segment chars={record.total_chars} file={record.relative_path}")
        return record

    def _relative_path(self, segment: Segment) -> str:
        if segment.file_name:
            path = Path(segment.file_name)
        else:
            path = uri_to_path(segment.document_uri)
        try:
            return path.resolve().relative_to(self.ledger.workspace_path).as_posix()
        except ValueError:
            return path.as_posix()
