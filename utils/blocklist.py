from models.blocked_ip import BlockedIp


def normalize_ip(value: str) -> str:
    return (value or "").strip()


def is_ip_blocked(ip_address: str) -> bool:
    if not ip_address:
        return False
    return BlockedIp.query.filter_by(ip_address=normalize_ip(ip_address)).first() is not None
