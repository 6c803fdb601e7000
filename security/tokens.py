from datetime import datetime, timedelta, timezone

import jwt
from flask import current_app


class InvalidToken(Exception):
    pass


def issue_session_token(user_id: int, role: str) -> str:
    """Signed bearer token embedding the user id and role."""
    now = datetime.now(timezone.utc)
    lifetime = current_app.config.get("JWT_EXPIRES_SECONDS", 24 * 60 * 60)
    claims = {
        "id": user_id,
        "role": role,
        "sub": str(user_id),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=lifetime)).timestamp()),
    }
    return jwt.encode(
        claims,
        current_app.config["JWT_SECRET"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def decode_session_token(token: str) -> dict:
    """Verify signature and expiry. Raises InvalidToken without detail."""
    try:
        claims = jwt.decode(
            token,
            current_app.config["JWT_SECRET"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
            options={"require": ["exp", "id", "role"]},
        )
    except jwt.PyJWTError as exc:
        raise InvalidToken() from exc
    return claims


def bearer_token_from_header(header_value: str):
    if not header_value or not header_value.startswith("Bearer "):
        return None
    token = header_value[len("Bearer "):].strip()
    return token or None
