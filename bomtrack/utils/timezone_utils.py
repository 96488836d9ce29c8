from datetime import datetime, timedelta, timezone


class TimezoneUtils:
    """UTC helpers shared by models and services."""

    @staticmethod
    def utc_now() -> datetime:
        """Return the current UTC timestamp (timezone aware)."""
        return datetime.now(timezone.utc)

    @staticmethod
    def ensure_timezone_aware(dt: datetime | None) -> datetime | None:
        # SQLite hands back naive datetimes even though everything is stored as UTC.
        if dt is None:
            return None
        if dt.tzinfo is None:
            return dt.replace(tzinfo=timezone.utc)
        return dt

    @staticmethod
    def days_ago(days: int, *, as_of: datetime | None = None) -> datetime:
        anchor = TimezoneUtils.ensure_timezone_aware(as_of) or TimezoneUtils.utc_now()
        return anchor - timedelta(days=days)
