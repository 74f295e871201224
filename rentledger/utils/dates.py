"""
Timestamp normalization.

Stored documents carry dates in several shapes: native datetimes, ISO-8601
strings, epoch numbers and store timestamp mappings (``{"seconds": ...}``).
Everything is normalized to a naive UTC ``datetime`` here, once, at the
ingestion boundary.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Any, Optional, Tuple

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Naive UTC now, the in-memory canonical form."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _from_epoch(seconds: float) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc).replace(tzinfo=None)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _seconds_of(raw: Any) -> Optional[float]:
    """Extract epoch seconds from store timestamp shapes, or None."""
    if isinstance(raw, dict):
        for key in ("seconds", "_seconds"):
            value = raw.get(key)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                return float(value) + float(raw.get("nanoseconds", 0) or 0) / 1e9
        return None
    seconds = getattr(raw, "seconds", None)
    if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
        return float(seconds)
    return None


def try_parse_timestamp(raw: Any) -> Optional[datetime]:
    """Parse ``raw`` into a naive UTC datetime, returning None when it can't."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, datetime):
        return _naive_utc(raw)
    if isinstance(raw, date):
        return datetime.combine(raw, time.min)
    if isinstance(raw, (int, float)):
        try:
            # Millisecond epochs are what JavaScript clients send
            return _from_epoch(raw / 1000 if abs(raw) > 1e11 else raw)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return _naive_utc(datetime.fromisoformat(text))
        except ValueError:
            return None
    seconds = _seconds_of(raw)
    if seconds is not None:
        try:
            return _from_epoch(seconds)
        except (OverflowError, OSError, ValueError):
            return None
    to_datetime = getattr(raw, "to_datetime", None)
    if callable(to_datetime):
        return try_parse_timestamp(to_datetime())
    return None


def parse_timestamp(raw: Any) -> datetime:
    """
    Normalize any stored date shape to a naive UTC datetime.

    Never raises: unparseable or missing values become "now" and a warning is
    logged, so a bad record falls outside historical ranges instead of
    breaking an aggregation.
    """
    parsed = try_parse_timestamp(raw)
    if parsed is None:
        logger.warning(f"[DATES] Unparseable date value {raw!r}, using current time")
        return utcnow()
    return parsed


def parse_optional_timestamp(raw: Any) -> Optional[datetime]:
    """Like parse_timestamp, but absent values stay None."""
    if raw is None or raw == "":
        return None
    return parse_timestamp(raw)


def range_bounds(start: Any, end: Any) -> Tuple[datetime, datetime]:
    """
    Turn range inputs into inclusive datetime bounds.

    A plain ``date`` end bound covers the whole day.
    """
    if isinstance(end, date) and not isinstance(end, datetime):
        end_dt = datetime.combine(end, time.max)
    else:
        end_dt = parse_timestamp(end)
    return parse_timestamp(start), end_dt


def in_range(value: Any, start: datetime, end: datetime) -> bool:
    moment = parse_timestamp(value)
    return start <= moment <= end


def normalize_dob(raw: Any) -> str:
    """Date of birth as ``YYYY-MM-DD``, or empty string when unparseable."""
    if isinstance(raw, str) and len(raw.strip()) >= 10:
        head = raw.strip()[:10]
        try:
            return date.fromisoformat(head).isoformat()
        except ValueError:
            pass
    parsed = try_parse_timestamp(raw)
    return parsed.date().isoformat() if parsed else ""


def month_to_date(start: Optional[date] = None, end: Optional[date] = None) -> Tuple[date, date]:
    """Fill missing range bounds with the first of this month and today."""
    today = utcnow().date()
    return start or today.replace(day=1), end or today
