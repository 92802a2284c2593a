"""
Shape-based event classifier.

Categorizes a batched change notification from its shape alone (number of
changes, size of the first insertion, multi-cursor signature). This is not
content analysis: the text is only compared, never interpreted.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Sequence

from .types import EventClassification, EventDetection, RawChange

MultiLineMatch = Literal["identical", "length"]


@dataclass(frozen=True)
class ClassifierConfig:
    """Tunable thresholds for the event classifier."""

    large_insert_threshold: int = 10  # chars in a single change
    multi_line_match: MultiLineMatch = "identical"
    require_consecutive_lines: bool = True


def _texts_match(first: RawChange, other: RawChange, mode: MultiLineMatch) -> bool:
    if mode == "length":
        return len(first.text) == len(other.text)
    replaced_first = first.range.end.character - first.range.start.character
    replaced_other = other.range.end.character - other.range.start.character
    return first.text == other.text and replaced_first == replaced_other


def is_multi_line_human_edit(
    changes: Sequence[RawChange],
    config: ClassifierConfig | None = None,
) -> bool:
    """Check for the multi-cursor signature.

    The same single-line edit applied at distinct lines, e.g. toggling a
    line comment or indenting a selection.
    """
    cfg = config or ClassifierConfig()
    if len(changes) < 2:
        return False

    ordered = sorted(changes, key=lambda c: c.range.start.line)
    first = ordered[0]
    previous_line: int | None = None
    for change in ordered:
        if change.range.start.line != change.range.end.line:
            return False
        if change.range.start.line < 0:
            return False
        if "\n" in change.text:
            return False
        if not _texts_match(first, change, cfg.multi_line_match):
            return False
        line = change.range.start.line
        if previous_line is not None:
            if line == previous_line:
                return False
            if cfg.require_consecutive_lines and line != previous_line + 1:
                return False
        previous_line = line
    return True


def classify_event(
    changes: Sequence[RawChange],
    config: ClassifierConfig | None = None,
) -> EventDetection:
    """Classify a change notification by its shape.

    Args:
        changes: Content changes of one notification, in delivery order
        config: Thresholds (defaults to ClassifierConfig())

    Returns:
        EventDetection with classification, change count and the size of the
        first inserted text
    """
    cfg = config or ClassifierConfig()
    change_count = len(changes)
    if change_count == 0:
        return EventDetection(EventClassification.EMPTY, 0, 0)

    first_insert_size = len(changes[0].text or "")

    if change_count > 1:
        if is_multi_line_human_edit(changes, cfg):
            classification = EventClassification.MULTI_LINE_HUMAN_EDIT
        else:
            classification = EventClassification.MULTI_CHANGE
        return EventDetection(classification, change_count, first_insert_size)

    # Paste, completion or an external rewrite of the file
    if first_insert_size >= cfg.large_insert_threshold:
        return EventDetection(EventClassification.LARGE_INSERT, 1, first_insert_size)

    return EventDetection(EventClassification.SINGLE_CHANGE, 1, first_insert_size)
