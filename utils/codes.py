import secrets
import string
import time

_SIG_ALPHABET = string.ascii_lowercase + string.digits


def generate_otp(length: int = 6) -> str:
    """Uniformly random numeric code with no leading zero."""
    low = 10 ** (length - 1)
    high = 10 ** length - 1
    return str(low + secrets.randbelow(high - low + 1))


def generate_signature_id() -> str:
    """Display-only id such as SIG-1718000000000-k3j9x0a2b."""
    suffix = "".join(secrets.choice(_SIG_ALPHABET) for _ in range(9))
    return f"SIG-{int(time.time() * 1000)}-{suffix}"
