"""UTC datetime helpers.

Vote, review and location timestamps are stored as **naive** UTC datetimes so
the same columns behave identically on SQLite and PostgreSQL.
"""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime."""
    return datetime.now(UTC).replace(tzinfo=None)
