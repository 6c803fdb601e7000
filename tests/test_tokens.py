from datetime import datetime, timedelta, timezone

import jwt
import pytest

from security.password import hash_cost, hash_password, needs_rehash, verify_password
from security.tokens import (
    InvalidToken,
    bearer_token_from_header,
    decode_session_token,
    issue_session_token,
)


def test_token_round_trip_carries_id_and_role(app):
    claims = decode_session_token(issue_session_token(7, "ADMIN"))
    assert claims["id"] == 7
    assert claims["role"] == "ADMIN"
    assert claims["exp"] - claims["iat"] == 24 * 60 * 60


def test_expired_token_is_rejected(app):
    past = datetime.now(timezone.utc) - timedelta(days=2)
    token = jwt.encode(
        {"id": 1, "role": "USER", "iat": int(past.timestamp()), "exp": int((past + timedelta(days=1)).timestamp())},
        app.config["JWT_SECRET"],
        algorithm="HS256",
    )
    with pytest.raises(InvalidToken):
        decode_session_token(token)


def test_token_signed_with_other_secret_is_rejected(app):
    token = jwt.encode({"id": 1, "role": "USER", "exp": 9999999999}, "someone-else", algorithm="HS256")
    with pytest.raises(InvalidToken):
        decode_session_token(token)


def test_token_without_role_is_rejected(app):
    token = jwt.encode({"id": 1, "exp": 9999999999}, app.config["JWT_SECRET"], algorithm="HS256")
    with pytest.raises(InvalidToken):
        decode_session_token(token)


@pytest.mark.parametrize("header,expected", [
    ("Bearer abc.def", "abc.def"),
    ("Bearer ", None),
    ("Basic abc", None),
    ("", None),
])
def test_bearer_header_parsing(header, expected):
    assert bearer_token_from_header(header) == expected


def test_password_hash_verifies():
    hashed = hash_password("s3cret-pass", rounds=4)
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong", hashed)
    assert not verify_password("s3cret-pass", "not-a-bcrypt-hash")


def test_needs_rehash_reads_cost_factor():
    hashed = hash_password("s3cret-pass", rounds=5)
    assert hash_cost(hashed) == 5
    assert needs_rehash(hashed, 5) is False
    assert needs_rehash(hashed, 6) is True
    assert hash_cost("garbage") is None
