from datetime import datetime

from flask import request

from library_app.errors import ValidationError


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("JSON object body expected.")
    return data


def _as_int(key: str, value) -> int:
    # bool is an int subclass; floats must be whole numbers
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer.")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{key} must be an integer.")
        return int(value)
    if isinstance(value, (int, str)):
        try:
            return int(value)
        except ValueError:
            raise ValidationError(f"{key} must be an integer.")
    raise ValidationError(f"{key} must be an integer.")


def optional_int(data: dict, key: str, default=None):
    value = data.get(key)
    if value is None or value == "":
        return default
    return _as_int(key, value)


def require_int(data: dict, key: str) -> int:
    value = optional_int(data, key)
    if value is None:
        raise ValidationError(f"{key} is required.")
    return value


def optional_str(data: dict, key: str, default=None):
    """Stripped string value of ``key``, ``default`` when absent or null."""
    value = data.get(key)
    if value is None:
        return default
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string.")
    return value.strip()


def require_str(data: dict, key: str) -> str:
    value = optional_str(data, key)
    if not value:
        raise ValidationError(f"{key} is required.")
    return value


def optional_datetime(data: dict, key: str):
    value = data.get(key)
    if not value:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be an ISO-8601 date.")
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 date.")
