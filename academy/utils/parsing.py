# utils/parsing.py
from datetime import date, time, datetime

from academy.errors import ValidationError


def parse_date(value, field='date', required=True):
    """Accept a date or an ISO 'YYYY-MM-DD' string."""
    if value is None or value == '':
        if required:
            raise ValidationError(f"'{field}' is required")
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValidationError(f"'{field}' must be a date in YYYY-MM-DD format")


def parse_time(value, field='time', required=True):
    """Accept a time or an 'HH:MM' / 'HH:MM:SS' string."""
    if value is None or value == '':
        if required:
            raise ValidationError(f"'{field}' is required")
        return None
    if isinstance(value, time):
        return value
    text = str(value).strip()
    for fmt in ('%H:%M', '%H:%M:%S'):
        try:
            return datetime.strptime(text, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"'{field}' must be a time in HH:MM format")


def parse_choice(value, choices, field, required=True):
    """Normalise an enumerated value to its lowercase constant."""
    if value is None or value == '':
        if required:
            raise ValidationError(f"'{field}' is required")
        return None
    normalized = str(value).strip().lower()
    if normalized not in choices:
        raise ValidationError(f"'{field}' must be one of: {', '.join(choices)}")
    return normalized
