from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands DateTime columns back naive; treat those as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def to_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an incoming timestamp to UTC before storing it; naive means UTC."""
    if value is None:
        return None
    return as_utc(value).astimezone(timezone.utc)
