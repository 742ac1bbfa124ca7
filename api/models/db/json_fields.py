"""JSON-in-text column helpers shared by the table models."""
from __future__ import annotations

import json
from typing import Any, Callable


def json_property(column: str, default: Callable[[], Any]) -> property:
    """
    Expose a Text column holding JSON as a parsed Python value.
    Unparseable or empty content reads back as ``default()``.
    """

    def getter(self) -> Any:
        raw = getattr(self, column)
        if not raw:
            return default()
        try:
            return json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            return default()

    def setter(self, value: Any) -> None:
        setattr(self, column, json.dumps(value, ensure_ascii=False) if value is not None else None)

    return property(getter, setter)
