"""
vestledger/core/time.py

Timestamps are unix seconds (int) everywhere inside the engine.

Config files and the CLI speak ISO-8601 ("2025-09-01T00:00:00Z"); this module
is the only place that converts between the two.
"""

import time
from datetime import datetime, timezone


def unix_now() -> int:
    """Current wall-clock time as whole unix seconds. The default engine clock."""
    return int(time.time())


def parse_timestamp(value) -> int:
    """
    Coerce an int or ISO-8601 string to unix seconds.

    Naive ISO strings are read as UTC. Digit-only strings are taken as unix
    seconds, so "1756684800" and 1756684800 are equivalent.
    """
    if isinstance(value, bool):
        raise TypeError("timestamp must be int or ISO-8601 string, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, datetime):
        # YAML parses unquoted ISO timestamps straight to datetime
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())
    if not isinstance(value, str):
        raise TypeError(
            f"timestamp must be int or ISO-8601 string, got {type(value).__name__}"
        )

    text = value.strip()
    if text.lstrip("-").isdigit():
        return int(text)
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(f"invalid ISO-8601 timestamp: {value!r}") from exc
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return int(dt.timestamp())


def format_timestamp(ts: int) -> str:
    """Render unix seconds as YYYY-MM-DDTHH:MM:SSZ."""
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
