"""Retry delay for provider calls: exponential growth, capped, with +/- jitter."""
from __future__ import annotations

import random
from typing import Optional

from delivery_audit.config import BACKOFF_POLICY


def _policy_value(override: Optional[float], key: str) -> float:
    return float(override if override is not None else BACKOFF_POLICY[key])


def compute_backoff_seconds(
    attempt: int,
    *,
    base: Optional[float] = None,
    factor: Optional[float] = None,
    max_seconds: Optional[float] = None,
    jitter_pct: Optional[float] = None,
) -> float:
    """Seconds to wait after failed attempt number `attempt` (1-based).

    With the default policy: ~1s, ~2s, ~4s ... never more than 10s (+jitter).
    """
    exponent = max(attempt, 1) - 1
    delay = min(
        _policy_value(base, "base_seconds") * _policy_value(factor, "factor") ** exponent,
        _policy_value(max_seconds, "max_seconds"),
    )
    spread = _policy_value(jitter_pct, "jitter_pct")
    if spread > 0:
        delay *= random.uniform(1 - spread, 1 + spread)
    return max(delay, 0.0)


__all__ = ["compute_backoff_seconds"]
