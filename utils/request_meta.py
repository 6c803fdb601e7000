from dataclasses import dataclass
from typing import Optional

from flask import has_request_context, request


@dataclass(frozen=True)
class Actor:
    """Network origin of the call being served."""

    ip: Optional[str] = None
    user_agent: Optional[str] = None


def client_ip() -> str:
    """Network origin of the request. Proxy headers are honoured only through ProxyFix."""
    return request.remote_addr or "unknown"


def current_actor() -> Actor:
    if not has_request_context():
        return Actor()
    user_agent = request.headers.get("User-Agent") or None
    return Actor(ip=client_ip(), user_agent=user_agent[:255] if user_agent else None)
