"""Environment-variable helpers for ISSUESCOUT_* settings."""

from __future__ import annotations

import os


def env_int(key: str, default: int) -> int:
    return int(os.environ.get(key, default))


def env_float(key: str, default: float) -> float:
    return float(os.environ.get(key, default))


def env_flag(key: str, default: bool = False) -> bool:
    """Parse a boolean env var (``1``/``true``/``yes`` are truthy)."""
    raw = os.environ.get(key)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")
