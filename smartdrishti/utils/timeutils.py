from datetime import datetime, timezone


def utcnow() -> datetime:
    """Naive UTC now, the shape SQLite hands back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def iso_text(value):
    """ISO 8601 text for a datetime or for SQLite's 'YYYY-MM-DD HH:MM:SS[.ffffff]' text."""
    if value is None:
        return None
    if isinstance(value, str):
        return datetime.fromisoformat(value).isoformat()
    return value.isoformat()
