"""Single-line prompt parsing shared by both workflows."""

from __future__ import annotations

import re
import time
from typing import Optional, Tuple

from kpiflow.errors import ValidationError

_UNSAFE_NAME_CHARS = re.compile(r"[^a-z0-9_]", re.IGNORECASE)


def parse_prompt(prompt: str, *, subject: str = "name") -> Tuple[str, str]:
    """Split ``"subject: intent"`` on the first colon.

    >>> parse_prompt("total_revenue: analyze monthly trends")
    ('total_revenue', 'analyze monthly trends')

    Raises:
        ValidationError: If the colon is missing or either side is blank.
    """
    expected = f'Expected: "{subject}: description"'
    if ":" not in (prompt or ""):
        raise ValidationError(f"Invalid prompt format. {expected}")
    head, _, tail = prompt.partition(":")
    head, tail = head.strip(), tail.strip()
    if not head or not tail:
        raise ValidationError(f"Invalid prompt format. {expected}")
    return head, tail


def auto_name(prefix: str, subject: str, *, now_ms: Optional[int] = None) -> str:
    """``auto_name("kpi", "orders")`` -> ``"kpi_orders_1718000000000"``."""
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{prefix}_{_UNSAFE_NAME_CHARS.sub('_', subject)}_{stamp}"
