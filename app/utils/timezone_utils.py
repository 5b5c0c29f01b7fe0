"""
Timezone utility functions for the F1 Pick'em application

Session times are stored and compared in UTC. SQLite hands timestamps back
without tzinfo, so naive values are treated as UTC throughout.
"""

from datetime import datetime

import pytz


def get_utc_time():
    """Get current time in UTC"""
    return datetime.now(pytz.UTC)


def ensure_utc(dt):
    """Return dt as an aware UTC datetime (naive values are assumed UTC)"""
    if dt is None:
        return None

    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)

    return dt.astimezone(pytz.UTC)


def parse_iso_datetime(value):
    """Parse an ISO-8601 string (accepts a trailing 'Z') into aware UTC"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    return ensure_utc(datetime.fromisoformat(str(value).replace("Z", "+00:00")))


def format_utc(dt):
    """Format a datetime as ISO-8601 UTC with a 'Z' suffix"""
    if dt is None:
        return None
    return ensure_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")
