from __future__ import annotations

import json
from pathlib import Path
from typing import Dict

from calendar_assist.models import EventCategory


class OverrideStore:
    """Category overrides persisted as ``{key: category_value}``."""

    def __init__(self, path: str = "data/category_overrides.json"):
        self.path = Path(path)

    def load(self) -> Dict[str, EventCategory]:
        try:
            if not self.path.exists():
                return {}

            data = json.loads(self.path.read_text(encoding="utf-8"))

            # robust: entries with unknown categories are dropped, not fatal
            overrides = {}
            for key, value in data.items():
                try:
                    overrides[key] = EventCategory(value)
                except ValueError:
                    continue
            return overrides
        except Exception:
            return {}

    def save(self, overrides: Dict[str, EventCategory]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        data = {key: EventCategory(value).value for key, value in overrides.items()}

        self.path.write_text(
            json.dumps(data, ensure_ascii=False, indent=2, sort_keys=True),
            encoding="utf-8",
        )

    def merge(self, overrides: Dict[str, EventCategory]) -> Dict[str, EventCategory]:
        """Add ``overrides`` to what is on disk now and write the union back."""
        current = self.load()
        current.update(overrides)
        self.save(current)
        return current
