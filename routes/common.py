from flask import request
from flask_login import current_user

from errors import ValidationError


def current_user_id() -> int:
    return int(current_user.get_id())


def json_body() -> dict:
    """Request JSON as a dict; anything else is a validation failure."""
    payload = request.get_json(silent=True)
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def positive_int(value, field: str) -> int:
    """Accept ints (and digit strings from query args) that are >= 1."""
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a positive integer", field=field)
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value < 1:
        raise ValidationError(f"{field} must be a positive integer", field=field)
    return value


def non_negative_int(value, field: str) -> int:
    if value == 0 or value == "0":
        return 0
    return positive_int(value, field)
