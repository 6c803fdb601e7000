from functools import wraps
from flask import g, request

from errors import AuthenticationError
from security.tokens import InvalidToken, bearer_token_from_header, decode_session_token


def load_current_user():
    """Decode the bearer token, if any, into g.claims / g.user_id."""
    g.claims = None
    g.user_id = None
    g.token_rejected = False

    token = bearer_token_from_header(request.headers.get("Authorization", ""))
    if not token:
        return
    try:
        claims = decode_session_token(token)
    except InvalidToken:
        g.token_rejected = True
        return
    g.claims = claims
    g.user_id = claims.get("id")


def login_required(fn):
    @wraps(fn)
    def wrapper(*args, **kwargs):
        if getattr(g, "claims", None) is None:
            if getattr(g, "token_rejected", False):
                raise AuthenticationError("Access denied. Invalid token.")
            raise AuthenticationError("Access denied. No token provided.")
        return fn(*args, **kwargs)
    return wrapper
