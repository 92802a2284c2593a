"""
Tests for the tracking session (host-facing glue around the segmenter).
"""

from __future__ import annotations

from dataclasses import replace

import pytest

from handprint.tracking.recorder import SegmentRecorder
from handprint.tracking.session import TrackingSession
from handprint.tracking.types import ChangeNotification, DocumentRef


class FakeText:
    """Text provider returning canned line text and logging requests."""

    def __init__(self, text: str = "value = compute(alpha, beta)\n"):
        self.text = text
        self.calls: list[tuple[str, int, int]] = []

    def __call__(self, uri: str, start: int, end: int) -> str | None:
        self.calls.append((uri, start, end))
        return self.text


@pytest.fixture
def text() -> FakeText:
    return FakeText()


@pytest.fixture
def session(tracking_config, ledger, text) -> TrackingSession:
    recorder = SegmentRecorder(ledger, min_segment_chars_no_whitespace=0)
    return TrackingSession(tracking_config, recorder=recorder, text_provider=text, clock=lambda: 0)


def test_untracked_schemes_are_ignored(session, make_change) -> None:
    notification = ChangeNotification(
        document=DocumentRef(uri="output:extension-log"),
        content_changes=(make_change(0, "a"),),
    )
    assert not session.is_tracked("output:extension-log")
    assert not session.is_tracked("no-scheme")
    assert session.handle_change(notification, now=0) == []
    assert session.open_segment_uris() == []
    assert sum(session.event_counts.values()) == 0


def test_tracked_schemes(session) -> None:
    assert session.is_tracked("file:///ws/a.py")
    assert session.is_tracked("untitled:Untitled-1")
    assert session.is_tracked("vscode-remote://ssh-remote+host/home/a.py")
    assert session.is_tracked("FILE:///ws/a.py")


def test_change_populates_segment_text(session, text, make_change, make_notification) -> None:
    session.handle_change(make_notification([make_change(4, "x")]), now=0)

    segment = session.segmenter.get_open_segment("file:///ws/a.py")
    assert segment.text_content == text.text
    assert text.calls == [("file:///ws/a.py", 4, 5)]


def test_event_counts_by_classification(session, make_change, make_notification) -> None:
    session.handle_change(make_notification([make_change(0, "a")]), now=0)
    session.handle_change(make_notification([make_change(1, "x" * 50)]), now=10)
    session.handle_change(make_notification([make_change(2, "a"), make_change(9, "b")]), now=20)
    session.handle_change(make_notification([]), now=30)

    assert session.event_counts == {
        "single-small-change": 1,
        "large-insert": 1,
        "multi-change": 1,
        "empty": 1,
    }


def test_closed_segments_are_recorded(session, ledger, make_change, make_notification) -> None:
    session.handle_change(make_notification([make_change(2, "a")]), now=1000)
    closed = session.handle_change(make_notification([make_change(40, "b")]), now=2000)

    assert len(closed) == 1
    assert session.recorded_count == 1
    records = ledger.read_all()
    assert len(records) == 1
    assert records[0].start_line == 2
    assert records[0].end_line == 3
    assert records[0].duration_ms == 1000


def test_flush_idle_respects_timeout(session, make_change, make_notification) -> None:
    session.handle_change(make_notification([make_change(0, "a")]), now=0)

    assert session.flush_idle(now=29999) == []
    flushed = session.flush_idle(now=30000)
    assert len(flushed) == 1
    assert flushed[0].ended_at == 0
    assert session.open_segment_uris() == []
    assert session.recorded_count == 1


def test_flush_idle_is_per_document(session, make_change, make_notification) -> None:
    session.handle_change(make_notification([make_change(0, "a")]), now=0)
    session.handle_change(make_notification([make_change(0, "a")], uri="file:///ws/b.py"), now=20000)

    flushed = session.flush_idle(now=35000)
    assert [s.document_uri for s in flushed] == ["file:///ws/a.py"]
    assert session.open_segment_uris() == ["file:///ws/b.py"]


def test_close_document(session, make_change, make_notification) -> None:
    assert session.close_document("file:///ws/a.py") == []
    session.handle_change(make_notification([make_change(0, "a")]), now=0)

    closed = session.close_document("file:///ws/a.py")
    assert len(closed) == 1
    assert session.open_segment_uris() == []
    assert session.close_segment("file:///ws/a.py") is None


def test_flush_all(session, make_change, make_notification) -> None:
    session.handle_change(make_notification([make_change(0, "a")]), now=0)
    session.handle_change(make_notification([make_change(0, "a")], uri="file:///ws/b.py"), now=0)

    assert len(session.flush_all()) == 2
    assert session.open_segment_uris() == []
    assert session.recorded_count == 2


def test_small_segments_are_not_recorded(tracking_config, ledger, make_change, make_notification) -> None:
    recorder = SegmentRecorder(ledger, min_segment_chars_no_whitespace=30)
    session = TrackingSession(tracking_config, recorder=recorder, text_provider=FakeText("  a = 1\n"))

    session.handle_change(make_notification([make_change(0, "a")]), now=0)
    assert len(session.flush_all()) == 1
    assert session.recorded_count == 0
    assert ledger.count() == 0


def test_session_without_recorder_or_text(tracking_config, make_change, make_notification) -> None:
    session = TrackingSession(tracking_config, clock=lambda: 500)
    session.handle_change(make_notification([make_change(0, "a")]))

    segment = session.segmenter.get_open_segment("file:///ws/a.py")
    assert segment.started_at == 500
    assert segment.text_content == ""
    assert len(session.flush_all()) == 1
    assert session.recorded_count == 0


def test_allowed_schemes_are_configurable(tracking_config) -> None:
    session = TrackingSession(replace(tracking_config, allowed_schemes=("untitled",)))
    assert not session.is_tracked("file:///ws/a.py")
    assert session.is_tracked("untitled:Untitled-1")


def test_foreign_only_documents_are_not_tracked_for_idle(session, make_change, make_notification) -> None:
    foreign = make_notification([make_change(1, "a"), make_change(9, "b")], uri="file:///ws/gen.py")
    session.handle_change(foreign, now=0)

    assert session.open_segment_uris() == []
    assert "file:///ws/gen.py" not in session._last_change_at


def test_foreign_edits_postpone_idle_flush(session, make_change, make_notification) -> None:
    session.handle_change(make_notification([make_change(0, "a")]), now=0)
    session.handle_change(make_notification([make_change(30, "x"), make_change(40, "y")]), now=20000)

    assert session.flush_idle(now=35000) == []
    assert len(session.flush_idle(now=50000)) == 1
    assert session._last_change_at == {}
