"""Time Windows — pure comparisons of stored timestamps against "now".

Invariants:
    - No timers, no scheduling: windows are evaluated at call time
    - All comparisons happen in UTC; naive datetimes are read as UTC

Design Decisions:
    - SQLite drops tzinfo on DateTime(timezone=True) columns, PostgreSQL keeps it;
      ensure_utc() makes both comparable (ADR: tests run on SQLite)
    - A window of N hours is half-open: elapsed == N hours is outside
"""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(moment: datetime) -> datetime:
    """Attach UTC to naive datetimes, convert aware ones to UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def is_within_window(started_at: datetime, now: datetime, hours: int) -> bool:
    """True while now - started_at < hours."""
    elapsed = ensure_utc(now) - ensure_utc(started_at)
    return elapsed < timedelta(hours=hours)
