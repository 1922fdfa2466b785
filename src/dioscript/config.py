"""Runtime limits for the interpreter, optionally loaded from YAML."""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuntimeConfig:
    """Evaluation budget for one top-level ``evaluate`` call.

    ``max_iterations`` counts loop iterations across the whole evaluation,
    ``max_depth`` bounds evaluation nesting (including host functions that
    re-enter the interpreter) and ``max_parse_depth`` bounds syntactic
    nesting in the parser.
    """

    max_iterations: int = 100_000
    max_depth: int = 200
    max_parse_depth: int = 200

    def __post_init__(self) -> None:
        for item in fields(self):
            value = getattr(self, item.name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ValueError(f"{item.name} must be a positive integer, got {value!r}")

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "RuntimeConfig":
        known = {item.name for item in fields(cls)}
        unknown = sorted(set(raw) - known)
        if unknown:
            raise ValueError(f"unknown runtime config keys: {', '.join(unknown)}")
        return cls(**dict(raw))

    def to_dict(self) -> dict:
        return {item.name: getattr(self, item.name) for item in fields(self)}


def load_config(path: Path | str) -> RuntimeConfig:
    """Load runtime limits from a YAML file.

    The file holds a mapping, either at the top level or under a
    ``runtime`` key; missing keys keep their defaults.
    """

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"runtime config not found: {config_path}")
    import yaml

    with config_path.open("r", encoding="utf-8") as fp:
        data = yaml.safe_load(fp) or {}
    if not isinstance(data, dict):
        raise ValueError(f"runtime config must be a mapping, got {type(data)!r}")

    section = data.get("runtime", data)
    if not isinstance(section, dict):
        raise ValueError(f"'runtime' section must be a mapping, got {type(section)!r}")

    config = RuntimeConfig.from_mapping(section)
    logger.info("Loaded runtime config from %s: %s", config_path, config.to_dict())
    return config
