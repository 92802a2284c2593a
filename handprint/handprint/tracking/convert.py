"""
Boundary conversion into tracking types.

Untyped inputs (replay files, Language Server Protocol parameters) are
validated and converted here, before the engine sees them.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable
from urllib.parse import unquote, urlparse

from .types import ChangeNotification, DocumentRef, Position, Range, RawChange


def uri_to_path(uri: str) -> Path:
    """Convert a file URI to a Path."""
    parsed = urlparse(uri)
    # Handle Windows paths
    path = unquote(parsed.path)
    if path.startswith("/") and len(path) > 2 and path[2] == ":":
        path = path[1:]  # Remove leading slash for Windows paths
    return Path(path)


def _require_int(data: dict[str, Any], key: str, where: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{where}.{key} must be an integer, got {value!r}")
    if value < 0:
        raise ValueError(f"{where}.{key} must be non-negative, got {value}")
    return value


def _require_dict(value: Any, where: str) -> dict[str, Any]:
    if not isinstance(value, dict):
        raise ValueError(f"{where} must be an object, got {type(value).__name__}")
    return value


def position_from_dict(data: Any, where: str = "position") -> Position:
    data = _require_dict(data, where)
    return Position(
        line=_require_int(data, "line", where),
        character=_require_int(data, "character", where),
    )


def range_from_dict(data: Any, where: str = "range") -> Range:
    data = _require_dict(data, where)
    start = position_from_dict(data.get("start"), f"{where}.start")
    end = position_from_dict(data.get("end"), f"{where}.end")
    if (end.line, end.character) < (start.line, start.character):
        raise ValueError(f"{where} ends before it starts")
    return Range(start=start, end=end)


def change_from_dict(data: Any, where: str = "change") -> RawChange:
    data = _require_dict(data, where)
    text = data.get("text", "")
    if not isinstance(text, str):
        raise ValueError(f"{where}.text must be a string")
    return RawChange(range=range_from_dict(data.get("range"), f"{where}.range"), text=text)


def notification_from_dict(data: Any) -> ChangeNotification:
    """Build a ChangeNotification from a JSON-like dict.

    Accepts both camelCase (editor) and snake_case keys.
    """
    data = _require_dict(data, "notification")
    document = _require_dict(data.get("document"), "document")
    uri = document.get("uri")
    if not isinstance(uri, str) or not uri:
        raise ValueError("document.uri is required")
    file_name = document.get("fileName", document.get("file_name"))
    if file_name is None:
        file_name = str(uri_to_path(uri)) if DocumentRef(uri).scheme == "file" else ""

    raw_changes = data.get("contentChanges", data.get("content_changes", []))
    if not isinstance(raw_changes, list):
        raise ValueError("contentChanges must be a list")

    changes = tuple(
        change_from_dict(c, f"contentChanges[{i}]") for i, c in enumerate(raw_changes)
    )
    return ChangeNotification(
        document=DocumentRef(uri=uri, file_name=str(file_name)),
        content_changes=changes,
    )


def notification_from_lsp(
    uri: str,
    content_changes: Iterable[Any],
    previous_line_count: int | None = None,
) -> ChangeNotification:
    """Convert LSP didChange content changes.

    Incremental changes carry a range. A whole-document change has none; it
    is mapped to a replacement of every line the document had before the
    notification (previous_line_count), which any open segment treats as a
    covering edit.
    """
    changes: list[RawChange] = []
    for change in content_changes:
        text = getattr(change, "text", "") or ""
        lsp_range = getattr(change, "range", None)
        if lsp_range is None:
            last_line = max((previous_line_count or 1) - 1, 0)
            rng = Range(Position(0, 0), Position(last_line + 1, 0))
        else:
            rng = Range(
                Position(lsp_range.start.line, lsp_range.start.character),
                Position(lsp_range.end.line, lsp_range.end.character),
            )
        changes.append(RawChange(range=rng, text=text))

    file_name = str(uri_to_path(uri)) if DocumentRef(uri).scheme == "file" else ""
    return ChangeNotification(
        document=DocumentRef(uri=uri, file_name=file_name),
        content_changes=tuple(changes),
    )
