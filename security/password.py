import bcrypt


def hash_password(plain_password: str, rounds: int = 12) -> str:
    if not isinstance(plain_password, str) or len(plain_password) == 0:
        raise ValueError("Password must be a non-empty string")

    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    if not plain_password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # malformed stored hash
        return False


def hash_cost(password_hash: str):
    """Cost factor of a $2b$ hash, or None when it cannot be read."""
    parts = (password_hash or "").split("$")
    if len(parts) < 4 or not parts[2].isdigit():
        return None
    return int(parts[2])


def needs_rehash(password_hash: str, rounds: int) -> bool:
    return hash_cost(password_hash) != rounds
