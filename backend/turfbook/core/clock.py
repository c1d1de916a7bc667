from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time, timezone-aware UTC. Lease expiry is always compared in UTC."""
    return datetime.now(timezone.utc)
