# ------- perks/utils/decorators.py -------
from functools import wraps
from flask import g, jsonify
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from ..extensions import db
from ..utils.api import api_error
from ..model import Employee

ROLE_LEVEL = {"employee": 1, "admin": 2}

def _current_employee():
    verify_jwt_in_request()
    uid = get_jwt_identity()
    try:
        uid = int(uid)
    except (TypeError, ValueError):
        uid = None
    return db.session.get(Employee, uid) if uid else None

def current_employee() -> Employee:
    """The employee resolved by the decorator guarding this view."""
    return g.employee

def _guard(allowed, message):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            u = _current_employee()
            if not u:
                return jsonify(api_error("Unauthorized")), 401
            if not u.is_active:
                return jsonify(api_error("Your account has been deactivated. Contact your administrator.")), 403
            if not allowed(u):
                return jsonify(api_error(message or "Forbidden")), 403
            g.employee = u
            return fn(*args, **kwargs)
        return wrapper
    return decorator

def role_required(*roles, message: str | None = None):
    return _guard(lambda u: u.role in roles, message)

def role_at_least(min_role: str, message: str | None = None):  # admin > employee
    min_level = ROLE_LEVEL[min_role]
    return _guard(lambda u: ROLE_LEVEL.get(u.role, 0) >= min_level, message)
