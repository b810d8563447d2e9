"""
Cache gate — decides whether a cached analytics snapshot can be served as-is.

A snapshot is fresh iff it exists, its payload is non-empty, and
now - last_refreshed <= TTL. Anything unverifiable (missing or unparsable
timestamp, timestamp too far in the future) counts as stale, so the engine
refetches rather than serve data of unknown age.
"""
from datetime import datetime, timezone
from typing import Optional

from talentdash.config import ANALYTICS_TTL_SECONDS, CLOCK_SKEW_SECONDS


def parse_timestamp(value) -> Optional[datetime]:
    """Coerce a datetime / ISO-8601 string to an aware UTC datetime, or None."""
    if value is None:
        return None
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        try:
            dt = datetime.fromisoformat(value.strip().replace('Z', '+00:00'))
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        # SQLite drops tzinfo; everything is written in UTC
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def snapshot_age_seconds(snapshot, now: datetime = None) -> Optional[float]:
    if snapshot is None:
        return None
    refreshed = parse_timestamp(snapshot.last_refreshed)
    if refreshed is None:
        return None
    now = now or datetime.now(timezone.utc)
    return (now - refreshed).total_seconds()


def is_fresh(snapshot, ttl: int = None, now: datetime = None) -> bool:
    """True if the snapshot may be served without contacting the provider."""
    if snapshot is None or not snapshot.payload:
        return False

    ttl = ANALYTICS_TTL_SECONDS if ttl is None else ttl
    now = parse_timestamp(now) if now is not None else datetime.now(timezone.utc)

    age = snapshot_age_seconds(snapshot, now=now)
    if age is None:
        return False
    if age < -CLOCK_SKEW_SECONDS:
        return False
    return age <= ttl
