from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Canonical storage 'now': UTC with tzinfo stripped."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def from_epoch_millis(value: int | float) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).replace(tzinfo=None)


def parse_timestamp(value) -> datetime | None:
    """
    Read a stored timestamp back into a UTC-naive datetime.

    Accepts ISO-8601 strings (naive, "Z" or an offset) and epoch
    milliseconds as written by older records. None and "" give None.
    Anything else raises ValueError.
    """
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"not a timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return from_epoch_millis(value)
    if not isinstance(value, str):
        raise ValueError(f"not a timestamp: {value!r}")

    s = value.strip()
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    dt = datetime.fromisoformat(s)
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: datetime | None) -> str | None:
    """ISO-8601 with a trailing 'Z'. Microseconds are kept so message order survives a reload."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
