from datetime import UTC, datetime


def now() -> datetime:
    """Current UTC time, truncated to the millisecond precision BSON stores."""
    current = datetime.now(UTC)
    return current.replace(microsecond=current.microsecond // 1000 * 1000)


def normalize_email(email: str) -> str:
    return email.strip().lower()
