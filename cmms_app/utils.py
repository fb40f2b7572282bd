# cmms_app/utils.py
import math
from datetime import datetime, timezone


def parse_datetime(value):
    """Parse an ISO date or datetime string into a naive UTC datetime.

    Date-only strings become midnight. Anything unparsable returns None so
    that comparisons against it simply do not match.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def parse_date(value):
    parsed = parse_datetime(value)
    return parsed.date() if parsed else None


def utc_now():
    return datetime.now(timezone.utc).replace(tzinfo=None)


def safe_float(value, default=0.0):
    """Safely convert value to float, handling None, NaN and inf values"""
    if value is None:
        return default
    try:
        number = float(value)
    except (ValueError, TypeError):
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def percentage(part, whole):
    return (part / whole) * 100 if whole else 0


def lower_bound(value):
    """ISO text to compare stored timestamps against, None when unparsable."""
    parsed = parse_datetime(value)
    return parsed.isoformat() if parsed else None


def upper_bound(value):
    parsed = parse_datetime(value)
    if parsed is None:
        return None
    # a bare date covers the whole day
    if isinstance(value, str) and len(value.strip()) == 10:
        return parsed.date().isoformat() + "T23:59:59.999999"
    return parsed.isoformat()


def naive_utc(value):
    """Pydantic hook: accept ISO date/datetime input, fold any offset into naive UTC."""
    if value is None:
        return None
    parsed = parse_datetime(value)
    if parsed is None:
        raise ValueError("must be an ISO 8601 date or datetime")
    return parsed
