"""
Design (utils.py)
- Purpose: Reusable helpers: id generation, cell/text rendering for tables and dialogs.
- Inputs: Various helper parameters (existing ids, text values).
- Outputs: Helper results (strings, ints).
- Side effects: None (now_millis reads the clock).
- Thread-safety: Stateless; safe to call from any thread.
"""

import time
from typing import Any, Container


def now_millis() -> int:
    """Milliseconds since the Unix epoch (used for ids and import batch stamps)."""
    return int(time.time() * 1000)


def new_id(existing: Container[str] = ()) -> str:
    """
    Purpose: Timestamp-derived id for a record created by form submission.
    Inputs: existing ids in the active collection.
    Outputs: A string id not in existing (bumped by 1 ms on collision).
    """
    stamp = now_millis()
    while str(stamp) in existing:
        stamp += 1
    return str(stamp)


def cell_text(value: Any) -> str:
    """
    Purpose: Render a spreadsheet cell as trimmed text.
    Notes: Whole floats lose their ".0" (xls stores every number as float).
    """
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def truncate(text: str, limit: int = 60) -> str:
    """Single-line preview for table cells."""
    text = " ".join((text or "").split())
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"
