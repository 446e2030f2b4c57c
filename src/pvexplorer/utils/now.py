from datetime import UTC, datetime


class Now:
    """UTC clock helpers; every timestamp pvexplorer persists is timezone aware."""

    @staticmethod
    def as_datetime() -> datetime:
        """Return the current UTC time as a datetime object."""

        return datetime.now(UTC)

    @staticmethod
    def to_utc(dt: datetime | None) -> datetime | None:
        """Convert a datetime object to UTC timezone; naive values are taken as UTC."""

        if dt is None:
            return None
        if dt.tzinfo is None:
            return dt.replace(tzinfo=UTC)
        return dt.astimezone(UTC)

    @staticmethod
    def from_iso(value: str) -> datetime:
        """Parse an ISO 8601 string (``Z`` suffix allowed) into a UTC datetime."""

        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)
