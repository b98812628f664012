from functools import wraps

from flask import jsonify
from flask_login import current_user


def require_roles(*allowed_roles):
    """Valida que el usuario logueado tenga uno de los roles permitidos."""

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                return jsonify({"ok": False, "error": "Debes iniciar sesión."}), 401

            if current_user.role not in allowed_roles:
                return jsonify({"ok": False, "error": "No tienes permisos para esta acción."}), 403

            return fn(*args, **kwargs)

        return wrapper

    return decorator
