"""Calendar period selectors used for bulk operations."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from rota.errors import ValidationError

_PATTERNS = {
    "day": re.compile(r"^\d{4}-(0[1-9]|1[0-2])-(0[1-9]|[12]\d|3[01])$"),
    "week": re.compile(r"^\d{4}-W(0[1-9]|[1-4]\d|5[0-3])$"),
    "month": re.compile(r"^\d{4}-(0[1-9]|1[0-2])$"),
}

# Selector field -> Shift column holding the matching key
KEY_COLUMNS = {"day": "day_key", "week": "week_key", "month": "month_key"}


@dataclass(frozen=True)
class BulkDeleteSelector:
    """Exactly one of ``day`` (YYYY-MM-DD), ``week`` (YYYY-Www) or ``month`` (YYYY-MM)."""

    day: Optional[str] = None
    week: Optional[str] = None
    month: Optional[str] = None

    def __post_init__(self):
        given = [name for name in ("day", "week", "month") if getattr(self, name) is not None]
        if len(given) != 1:
            raise ValidationError(f"Selector needs exactly one of day/week/month, got {given or 'none'}")
        name = given[0]
        if not _PATTERNS[name].match(getattr(self, name)):
            raise ValidationError(f"Malformed {name} key: {getattr(self, name)!r}")

    @property
    def field(self) -> str:
        return next(name for name in ("day", "week", "month") if getattr(self, name) is not None)

    @property
    def key(self) -> str:
        return getattr(self, self.field)

    @property
    def column(self) -> str:
        return KEY_COLUMNS[self.field]

    @classmethod
    def from_dict(cls, data: dict) -> "BulkDeleteSelector":
        unknown = set(data) - set(KEY_COLUMNS)
        if unknown:
            raise ValidationError(f"Unknown selector keys: {', '.join(sorted(unknown))}")
        return cls(**data)

    def to_dict(self) -> dict:
        return {self.field: self.key}
