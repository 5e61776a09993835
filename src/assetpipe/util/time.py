from __future__ import annotations

import time


def monotonic() -> float:
    return time.monotonic()


def duration_sec(start: float, end: float) -> float:
    """Calculate elapsed seconds."""
    return round(end - start, 3)
