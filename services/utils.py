# services/utils.py

import re
from datetime import datetime, timezone

from services.errors import InvalidInput

EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')


def utcnow():
    """Current time as a naive UTC datetime, the format every column is stored in."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_datetime(value, field):
    """Parse an ISO-8601 timestamp into naive UTC."""
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise InvalidInput(f"{field} must be an ISO-8601 datetime")
    else:
        raise InvalidInput(f"{field} must be an ISO-8601 datetime")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def json_object(data):
    """The request payload as a dict. A missing body is empty, any other shape is malformed."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidInput("Request body must be a JSON object")
    return data


def validate_json(data, required_fields):
    """Return the required fields missing from the payload."""
    return [field for field in required_fields if data.get(field) in (None, '')]


def validate_email(email):
    return isinstance(email, str) and EMAIL_PATTERN.match(email) is not None


def format_duration(start, end):
    """Render the time between two datetimes as '{h}h {m}m'."""
    if not start or not end:
        return 'Unknown'
    total_minutes = int((end - start).total_seconds() // 60)
    hours, minutes = divmod(max(total_minutes, 0), 60)
    return f"{hours}h {minutes}m"
