from functools import wraps
from flask import g

from errors import AuthenticationError, ForbiddenError


def require_roles(*role_names: str):
    """
    Usage: @require_roles("ADMIN")
    """
    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            claims = getattr(g, "claims", None)
            if claims is None:
                if getattr(g, "token_rejected", False):
                    raise AuthenticationError()
                raise AuthenticationError("Access denied. No token provided.")

            if claims.get("role") not in role_names:
                raise ForbiddenError("Access denied. Insufficient permissions.")

            return fn(*args, **kwargs)
        return wrapper
    return decorator
