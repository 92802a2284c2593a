"""Config command - show the effective tracking configuration."""

from __future__ import annotations

import json

import yaml

from ..config import TrackingConfig


def run_config_show(config: TrackingConfig, *, format: str = "yaml") -> None:
    data = config.to_dict()
    if format == "json":
        print(json.dumps(data, indent=2))
    else:
        print(yaml.safe_dump({"tracking": data}, sort_keys=False), end="")
