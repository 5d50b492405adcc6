from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class AssistSettings:
    """Runtime knobs for classification, extraction and the conversation loop."""

    auto_detect_enabled: bool = True
    auto_detect_threshold: float = 0.75

    significant_other_enabled: bool = False
    significant_other_name: Optional[str] = None

    auto_schedule: bool = True
    extraction_timeout_s: float = 5.0
    history_window: int = 10
    max_recurring_occurrences: int = 52

    @classmethod
    def from_env(cls) -> "AssistSettings":
        return cls(
            auto_detect_enabled=_env_bool("AUTO_DETECT_ENABLED", True),
            auto_detect_threshold=float(os.getenv("AUTO_DETECT_THRESHOLD", "0.75")),
            significant_other_enabled=_env_bool("SIGNIFICANT_OTHER_ENABLED", False),
            significant_other_name=os.getenv("SIGNIFICANT_OTHER_NAME", "").strip() or None,
            auto_schedule=_env_bool("AUTO_SCHEDULE", True),
            extraction_timeout_s=float(os.getenv("EXTRACTION_TIMEOUT_S", "5")),
            history_window=int(os.getenv("HISTORY_WINDOW", "10")),
            max_recurring_occurrences=int(os.getenv("MAX_RECURRING_OCCURRENCES", "52")),
        )
