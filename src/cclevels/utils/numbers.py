from __future__ import annotations

import re
from typing import Any

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")
_LEADING_REAL = re.compile(r"\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


def lenient_int(value: Any) -> int:
    """Integer value of *value*, reading a leading integer from text; 0 when there is none."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value and abs(value) != float("inf") else 0
    m = _LEADING_INT.match(str(value))
    return int(m.group(1)) if m else 0


def lenient_float(text: str) -> float:
    try:
        return float(text.strip())
    except ValueError:
        m = _LEADING_REAL.match(text)
        return float(m.group(1)) if m else 0.0
