# ------- adega/utils/decorators.py -------
from functools import wraps
from flask_jwt_extended import get_jwt_identity, verify_jwt_in_request

from ..extensions import db
from ..utils.api import err
from ..model.user import User

def current_user_id(optional=True):
    """JWT identity of the caller, or None for anonymous requests."""
    verify_jwt_in_request(optional=optional)
    uid = get_jwt_identity()
    return str(uid) if uid else None

def _current_user():
    uid = current_user_id(optional=False)
    return db.session.get(User, uid) if uid else None

def admin_required(message: str | None = None):
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            u = _current_user()
            if not u:
                return err("Unauthorized", 401)
            if not u.is_admin:
                return err(message or "Forbidden", 403)
            return fn(*args, **kwargs)
        return wrapper
    return decorator
