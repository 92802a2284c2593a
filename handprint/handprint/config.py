"""
Tracking configuration.

Defaults are internal; a workspace can override them in
.handprint/config.yml, and an LSP client through initializationOptions.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

from .tracking.classifier import ClassifierConfig
from .tracking.segmenter import SegmenterConfig
from .tracking.types import EventClassification

CONFIG_FILENAME = "config.yml"


@dataclass(frozen=True)
class TrackingConfig:
    """Knobs for segment lifecycle, recording and event classification."""

    # Segment lifecycle
    segment_idle_ms: int = 30000  # idle gap before an idle flush closes the segment
    max_segment_chars: int = 10000
    adjacency_gap_lines: int = 1  # max gap (lines) to merge edits into one segment
    max_segment_duration_ms: int = 60000  # max time between edits of one segment

    # Recording
    min_segment_chars_no_whitespace: int = 30
    record_enabled: bool = True

    # Classifier
    large_insert_threshold: int = 10
    multi_line_match: str = "identical"  # identical | length
    require_consecutive_lines: bool = True

    # User-editable document URI schemes
    allowed_schemes: tuple[str, ...] = ("file", "untitled", "vscode-remote")

    def classifier_config(self) -> ClassifierConfig:
        return ClassifierConfig(
            large_insert_threshold=self.large_insert_threshold,
            multi_line_match=self.multi_line_match,  # type: ignore[arg-type]
            require_consecutive_lines=self.require_consecutive_lines,
        )

    def segmenter_config(self, now: float, classification: EventClassification) -> SegmenterConfig:
        return SegmenterConfig(
            now=now,
            max_segment_duration_ms=self.max_segment_duration_ms,
            max_segment_chars=self.max_segment_chars,
            adjacency_gap_lines=self.adjacency_gap_lines,
            event_classification=classification,
        )

    def to_dict(self) -> dict[str, Any]:
        d = asdict(self)
        d["allowed_schemes"] = list(self.allowed_schemes)
        return d


_NON_NEGATIVE_INTS = {
    "segment_idle_ms",
    "max_segment_chars",
    "adjacency_gap_lines",
    "max_segment_duration_ms",
    "min_segment_chars_no_whitespace",
    "large_insert_threshold",
}
_BOOLS = {"record_enabled", "require_consecutive_lines"}
_MULTI_LINE_MATCH = ("identical", "length")


def _coerce_value(key: str, value: Any) -> Any:
    if key in _NON_NEGATIVE_INTS:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{key} must be an integer, got {value!r}")
        if value < 0:
            raise ValueError(f"{key} must be non-negative, got {value}")
        return value
    if key in _BOOLS:
        if not isinstance(value, bool):
            raise ValueError(f"{key} must be true or false, got {value!r}")
        return value
    if key == "multi_line_match":
        if value not in _MULTI_LINE_MATCH:
            raise ValueError(f"multi_line_match must be one of {', '.join(_MULTI_LINE_MATCH)}")
        return value
    if key == "allowed_schemes":
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)) or not all(isinstance(s, str) for s in value):
            raise ValueError("allowed_schemes must be a list of strings")
        return tuple(s.strip().lower() for s in value if s.strip())
    return value


def config_from_mapping(
    data: Mapping[str, Any] | None,
    base: TrackingConfig | None = None,
) -> TrackingConfig:
    """Overlay a mapping of overrides on a base config.

    Unknown keys are ignored; dashes in keys are accepted as underscores.
    """
    base = base or TrackingConfig()
    if not data:
        return base

    known = {f.name for f in fields(TrackingConfig)}
    overrides: dict[str, Any] = {}
    for raw_key, value in data.items():
        key = str(raw_key).strip().replace("-", "_")
        if key not in known:
            continue
        overrides[key] = _coerce_value(key, value)
    return replace(base, **overrides)


def load_config(path: Path | None) -> TrackingConfig:
    """Load config from a YAML file (defaults when the file is missing)."""
    if path is None or not path.exists():
        return TrackingConfig()

    import yaml

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a mapping at the top level")

    # Allow everything nested under a `tracking:` key
    section = data.get("tracking", data)
    if not isinstance(section, dict):
        raise ValueError(f"{path}: tracking must be a mapping")
    return config_from_mapping(section)


def default_config_path(workspace_path: Path) -> Path:
    return workspace_path / ".handprint" / CONFIG_FILENAME
