from __future__ import annotations

from datetime import datetime, timezone


# PUBLIC_INTERFACE
def utc_now() -> datetime:
    """
    Current time as a timezone-aware UTC datetime, truncated to milliseconds.

    MongoDB stores BSON dates with millisecond precision; truncating here keeps
    values identical whichever backend persisted them.
    """
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=(now.microsecond // 1000) * 1000)
