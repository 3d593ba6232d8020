# perks/utils/clock.py
from datetime import datetime, timezone

def utcnow() -> datetime:
    """Naive UTC; every timestamp column stores naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

def isoformat(dt: datetime | None) -> str | None:
    return dt.isoformat() + "Z" if dt else None
