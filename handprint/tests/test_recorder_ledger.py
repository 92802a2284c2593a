"""
Tests for segment recording and the append-only segment ledger.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from handprint.tracking.ledger import SegmentLedger, SegmentRecord
from handprint.tracking.recorder import SegmentRecorder, count_non_whitespace_chars
from handprint.tracking.types import Segment, SegmentClassification

HUMAN = SegmentClassification.HUMAN_POSITIVE


def _segment(tmp_path, text: str = "def handler(event):\n    return event.payload\n", **kwargs) -> Segment:
    path = tmp_path / "src" / "app.py"
    values = dict(
        document_uri=path.as_uri(),
        file_name=str(path),
        range_start_line=4,
        range_end_line_exclusive=6,
        started_at=1_700_000_000_000,
        ended_at=1_700_000_004_500,
        text_content=text,
        closed=True,
    )
    values.update(kwargs)
    return Segment(**values)


def _record(relative_path: str = "src/app.py", minutes: int = 0, lines: int = 2) -> SegmentRecord:
    return SegmentRecord(
        timestamp=datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc) + timedelta(minutes=minutes),
        uri=f"file:///ws/{relative_path}",
        file_name=relative_path.rsplit("/", 1)[-1],
        relative_path=relative_path,
        start_line=10,
        end_line=10 + lines,
        duration_ms=1200.0,
        total_chars=48,
        non_whitespace_chars=40,
        segment_classification=HUMAN,
    )


# -----------------------------------------------------------------------------
# recorder
# -----------------------------------------------------------------------------


def test_count_non_whitespace_chars() -> None:
    assert count_non_whitespace_chars("  a b\n\tc  ") == 3
    assert count_non_whitespace_chars("") == 0


def test_record_builds_metadata_only(tmp_path, ledger) -> None:
    recorder = SegmentRecorder(ledger, min_segment_chars_no_whitespace=10)
    segment = _segment(tmp_path)

    record = recorder.record(segment, HUMAN)

    assert record is not None
    assert record.relative_path == "src/app.py"
    assert record.file_name == "app.py"
    assert record.start_line == 4
    assert record.end_line == 6
    assert record.line_count == 2
    assert record.duration_ms == 4500
    assert record.total_chars == len(segment.text_content)
    assert record.non_whitespace_chars == count_non_whitespace_chars(segment.text_content)
    assert record.timestamp == datetime.fromtimestamp(1_700_000_004.5, tz=timezone.utc)

    raw = ledger.ledger_path.read_text(encoding="utf-8")
    assert "handler" not in raw
    assert json.loads(raw)["metrics"]["duration_ms"] == 4500


def test_record_below_threshold_is_discarded(tmp_path, ledger) -> None:
    recorder = SegmentRecorder(ledger, min_segment_chars_no_whitespace=30)
    assert recorder.record(_segment(tmp_path, text="  x = 1  \n"), HUMAN) is None
    assert not ledger.ledger_path.exists()


def test_threshold_is_inclusive(tmp_path, ledger) -> None:
    recorder = SegmentRecorder(ledger, min_segment_chars_no_whitespace=5)
    assert recorder.record(_segment(tmp_path, text="ab cd e"), HUMAN) is not None


def test_record_disabled_is_dry_run(tmp_path, ledger) -> None:
    recorder = SegmentRecorder(ledger, min_segment_chars_no_whitespace=0, record_enabled=False)
    record = recorder.record(_segment(tmp_path), HUMAN)
    assert record is not None
    assert ledger.count() == 0


def test_record_outside_workspace_keeps_absolute_path(ledger) -> None:
    segment = Segment(
        document_uri="file:///elsewhere/tool.py",
        file_name="/elsewhere/tool.py",
        range_start_line=0,
        range_end_line_exclusive=1,
        started_at=0,
        ended_at=10,
        text_content="print('hello world')",
    )
    record = SegmentRecorder(ledger, min_segment_chars_no_whitespace=0).record(segment, HUMAN)
    assert record.relative_path == "/elsewhere/tool.py"


def test_record_untitled_document(ledger) -> None:
    segment = Segment(
        document_uri="untitled:Untitled-1",
        file_name="",
        range_start_line=0,
        range_end_line_exclusive=1,
        started_at=0,
        ended_at=10,
        text_content="scratch notes here",
    )
    record = SegmentRecorder(ledger, min_segment_chars_no_whitespace=0).record(segment, HUMAN)
    assert record.file_name == ""
    assert record.uri == "untitled:Untitled-1"


def test_ledger_write_failure_is_not_raised(tmp_path, ledger) -> None:
    # A file where the ledger directory should be makes mkdir fail
    (tmp_path / ".handprint").write_text("not a directory", encoding="utf-8")
    recorder = SegmentRecorder(ledger, min_segment_chars_no_whitespace=0)
    assert recorder.record(_segment(tmp_path), HUMAN) is None


# -----------------------------------------------------------------------------
# ledger
# -----------------------------------------------------------------------------


def test_empty_ledger(ledger) -> None:
    assert ledger.read_all() == []
    assert ledger.count() == 0
    summary = ledger.summary()
    assert summary["total_segments"] == 0
    assert summary["first_segment"] is None


def test_ledger_location(tmp_path) -> None:
    ledger = SegmentLedger(tmp_path)
    assert ledger.ledger_path == tmp_path.resolve() / ".handprint" / "segments.jsonl"


def test_append_is_append_only(ledger) -> None:
    first = _record()
    ledger.append(first)
    before = ledger.ledger_path.read_text(encoding="utf-8")
    ledger.append(_record("src/util.py", minutes=5))

    after = ledger.ledger_path.read_text(encoding="utf-8")
    assert after.startswith(before)
    assert len(after.splitlines()) == 2
    assert ledger.read_all()[0] == first


def test_record_dict_shape() -> None:
    data = _record().to_dict()
    assert data["segment_classification"] == "human_positive"
    assert data["metrics"] == {"duration_ms": 1200.0, "total_chars": 48, "non_whitespace_chars": 40}
    assert SegmentRecord.from_dict(data) == _record()


def test_records_for_file(ledger) -> None:
    ledger.append(_record("src/app.py"))
    ledger.append(_record("src/util.py", minutes=1))
    ledger.append(_record("src/app.py", minutes=2))

    assert len(ledger.records_for_file("src/app.py")) == 2
    assert ledger.records_for_file("missing.py") == []


def test_summary(ledger) -> None:
    ledger.append(_record("src/app.py", lines=2))
    ledger.append(_record("src/app.py", minutes=3, lines=5))
    ledger.append(_record("src/util.py", minutes=1, lines=1))

    summary = ledger.summary()
    assert summary["total_segments"] == 3
    assert summary["total_lines"] == 8
    assert summary["total_non_whitespace_chars"] == 120
    assert summary["by_file"]["src/app.py"] == {"segments": 2, "lines": 7, "chars": 80}
    assert summary["first_segment"] == "2026-01-05T12:00:00+00:00"
    assert summary["last_segment"] == "2026-01-05T12:03:00+00:00"


@pytest.mark.parametrize("bad", ["{not json", '{"uri": "file:///a"}'])
def test_corrupt_ledger_line_raises(ledger, bad) -> None:
    ledger.handprint_dir.mkdir(parents=True)
    ledger.ledger_path.write_text(bad + "\n", encoding="utf-8")
    with pytest.raises((ValueError, KeyError)):
        ledger.read_all()
