from functools import wraps
from flask import request, jsonify, g, current_app
from models import db
from utils.tokens import decode_jwt


def login_required(f):
    """Resolve the acting user from the ``access_token`` cookie into ``g.user``."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        token = request.cookies.get("access_token")
        if not token:
            current_app.logger.debug("No access_token cookie on %s", request.path)
            return jsonify({"error": "Unauthorized"}), 401

        decoded = decode_jwt(token)
        if not decoded or decoded.get("user_id") is None:
            return jsonify({"error": "Invalid token"}), 401

        g.user = decoded
        return f(*args, **kwargs)

    return decorated_function


def current_user_id():
    return g.user.get("user_id")


def atomic(f):
    """Run a manager operation as one transaction: commit on success, roll back on any error."""
    @wraps(f)
    def wrapper(*args, **kwargs):
        try:
            result = f(*args, **kwargs)
            db.session.commit()
            return result
        except Exception:
            db.session.rollback()
            raise

    return wrapper
