from functools import wraps

from flask import jsonify
from flask_jwt_extended import get_jwt, verify_jwt_in_request


def forbidden():
    return jsonify({"success": False, "message": "Forbidden", "error": "forbidden"}), 403


def role_required(*roles):
    """Require a valid access token whose ``role`` claim is one of ``roles``."""
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            verify_jwt_in_request()
            if get_jwt().get("role") not in roles:
                return forbidden()
            return fn(*args, **kwargs)
        return wrapper
    return decorator
