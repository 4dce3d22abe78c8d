from datetime import date, datetime, timezone


def utcnow() -> datetime:
    """Naive UTC timestamp. All stored timestamps use this convention."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def age_on(dob: date, today: date) -> int:
    before_birthday = (today.month, today.day) < (dob.month, dob.day)
    return today.year - dob.year - (1 if before_birthday else 0)
