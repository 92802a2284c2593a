"""Pytest configuration and fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import pytest

from handprint.config import TrackingConfig
from handprint.tracking.ledger import SegmentLedger
from handprint.tracking.types import (
    ChangeNotification,
    DocumentRef,
    Position,
    Range,
    RawChange,
)

MakeChange = Callable[..., RawChange]
MakeNotification = Callable[..., ChangeNotification]


def _make_change(
    start_line: int,
    text: str = "",
    *,
    start_col: int = 0,
    end_line: int | None = None,
    end_col: int | None = None,
) -> RawChange:
    end_line = start_line if end_line is None else end_line
    end_col = start_col if end_col is None else end_col
    return RawChange(
        range=Range(Position(start_line, start_col), Position(end_line, end_col)),
        text=text,
    )


@pytest.fixture
def make_change() -> MakeChange:
    """Factory for RawChange (zero-width at start_line unless an end is given)."""
    return _make_change


@pytest.fixture
def make_notification() -> MakeNotification:
    """Factory for a ChangeNotification on a file URI."""

    def factory(changes: list[RawChange], uri: str = "file:///ws/a.py") -> ChangeNotification:
        return ChangeNotification(
            document=DocumentRef(uri=uri, file_name=uri.removeprefix("file://")),
            content_changes=tuple(changes),
        )

    return factory


@pytest.fixture
def tracking_config() -> TrackingConfig:
    """Config with short limits and no recording threshold."""
    return TrackingConfig(
        segment_idle_ms=30000,
        max_segment_chars=1000,
        adjacency_gap_lines=1,
        max_segment_duration_ms=5000,
        min_segment_chars_no_whitespace=0,
    )


@pytest.fixture
def ledger(tmp_path: Path) -> SegmentLedger:
    """Fresh ledger rooted at a temporary workspace."""
    return SegmentLedger(tmp_path)
