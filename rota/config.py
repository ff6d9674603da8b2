"""Configuration loading (YAML or JSON)."""

from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from rota.errors import ValidationError


@dataclass
class RotaConfig:
    """Business rules and runtime settings for the roster engine."""

    db_url: str = "sqlite:///rota.db"
    clock_out_grace_minutes: int = 15
    max_shift_hours: int = 24
    default_algorithm: str = "balanced"
    persist_unfilled_as_open: bool = True
    max_schedule_days: int = 93
    open_shift_lookahead_days: int = 30
    max_shifts_per_staff: Optional[int] = None

    def __post_init__(self):
        for name in ("clock_out_grace_minutes", "max_shift_hours", "max_schedule_days", "open_shift_lookahead_days"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValidationError(f"Config '{name}' must be a non-negative integer, got {value!r}")
        if self.max_shift_hours == 0:
            raise ValidationError("Config 'max_shift_hours' must be positive")
        if self.max_shifts_per_staff is not None and (
            isinstance(self.max_shifts_per_staff, bool)
            or not isinstance(self.max_shifts_per_staff, int)
            or self.max_shifts_per_staff < 1
        ):
            raise ValidationError("Config 'max_shifts_per_staff' must be a positive integer or null")
        if not isinstance(self.persist_unfilled_as_open, bool):
            raise ValidationError("Config 'persist_unfilled_as_open' must be a boolean")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RotaConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValidationError(f"Unknown config keys: {', '.join(unknown)}")
        return cls(**data)


def load_config(path: str | Path) -> RotaConfig:
    """
    Load configuration from a YAML (.yaml/.yml) or JSON (.json) file.

    Missing keys fall back to the dataclass defaults; an empty file yields the
    default configuration.

    Raises:
        ValidationError: On unknown keys, wrong value types or an unsupported extension
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")

    if path.suffix.lower() in (".yaml", ".yml"):
        data = yaml.safe_load(text)
    elif path.suffix.lower() == ".json":
        data = json.loads(text) if text.strip() else None
    else:
        raise ValidationError(f"Unsupported config format: {path.suffix or '(none)'}")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError(f"Config root must be a mapping, got {type(data).__name__}")

    # Allow the settings to be nested under a top-level "rota" key
    if set(data) == {"rota"} and isinstance(data["rota"], dict):
        data = data["rota"]

    return RotaConfig.from_dict(data)
