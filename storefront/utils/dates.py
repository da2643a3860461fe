from datetime import datetime, timezone


def utcnow() -> datetime:
    # колонки DateTime без таймзоны, храним UTC
    return datetime.now(timezone.utc).replace(tzinfo=None)
