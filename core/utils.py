"""Utility functions for common operations."""

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching how timestamps are stored."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to naive UTC.

    Aware values are converted to UTC first; naive values are assumed to be
    UTC already.
    """
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def is_blank(value: str | None) -> bool:
    """True for None, empty or whitespace-only strings."""
    return value is None or not value.strip()


def normalize_email(email: str) -> str:
    return email.strip().lower()


def isoformat_or_none(value: datetime | None) -> str | None:
    return value.isoformat() if value else None
