"""
Checker configuration.

Configuration files are YAML mappings (JSON when the file suffix is
``.json``)::

    word_bits: 64          # machine word width used for layout facts (32 or 64)
    max_errors: 50         # stop collecting diagnostics after this many errors
    workers: 4             # threads used to check function bodies
    warn_unreachable: true # report statements after return/panic as W301
"""

from __future__ import annotations

import json
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml


class ConfigError(ValueError):
    """Raised for unreadable or invalid checker configuration."""


@dataclass(frozen=True)
class CheckerConfig:
    word_bits: int = 64
    max_errors: int = 50
    workers: int = 1
    warn_unreachable: bool = False

    def __post_init__(self) -> None:
        if self.word_bits not in (32, 64):
            raise ConfigError(f"word_bits must be 32 or 64, got {self.word_bits!r}")
        if not _is_int(self.max_errors) or self.max_errors < 1:
            raise ConfigError(f"max_errors must be a positive integer, got {self.max_errors!r}")
        if not _is_int(self.workers) or self.workers < 1:
            raise ConfigError(f"workers must be a positive integer, got {self.workers!r}")
        if not isinstance(self.warn_unreachable, bool):
            raise ConfigError(f"warn_unreachable must be true or false, got {self.warn_unreachable!r}")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CheckerConfig":
        """Build a configuration from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"unknown configuration key(s): {', '.join(unknown)}")
        return cls(**dict(data))

    def with_overrides(self, **overrides: Any) -> "CheckerConfig":
        """Copy with the given (non-None) values replaced."""
        values = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **values)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def load_config(path: Path | str) -> CheckerConfig:
    """Load a YAML (or JSON) configuration file."""

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"configuration not found: {config_path}")

    try:
        with config_path.open("r", encoding="utf-8") as fp:
            if config_path.suffix == ".json":
                data = json.load(fp)
            else:
                data = yaml.safe_load(fp) or {}
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot parse {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"configuration must be a mapping, got {type(data).__name__}")
    return CheckerConfig.from_mapping(data)
