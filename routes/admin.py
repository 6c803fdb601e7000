import ipaddress

from flask import Blueprint, current_app, g, jsonify, request

from errors import NotFoundError, ValidationError
from models import db
from models.activity_log import ActivityLog
from models.blocked_ip import BlockedIp
from security.rbac import require_roles
from services import get_core
from utils.audit import log_event, purge_activity_logs
from utils.blocklist import normalize_ip

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _valid_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def _log_row(row: ActivityLog) -> dict:
    return {
        "id": row.id,
        "user_id": row.user_id,
        "user_email": row.user.email if row.user else None,
        "user_name": row.user.name if row.user else None,
        "action": row.action,
        "details": row.details,
        "severity": row.severity,
        "ip_address": row.ip_address,
        "user_agent": row.user_agent,
        "timestamp": row.timestamp.isoformat(),
    }


def _blocked_row(row: BlockedIp) -> dict:
    return {
        "id": row.id,
        "ip_address": row.ip_address,
        "reason": row.reason,
        "blocked_by": row.blocked_by,
        "created_at": row.created_at.isoformat(),
    }


# ---------- activity logs ----------

@admin_bp.get("/logs")
@require_roles("ADMIN")
def list_logs():
    limit = request.args.get("limit", type=int) or 50
    limit = max(1, min(limit, 500))

    action = request.args.get("action")
    user_id = request.args.get("user_id", type=int)

    q = ActivityLog.query
    if action:
        q = q.filter(ActivityLog.action == action)
    if user_id is not None:
        q = q.filter(ActivityLog.user_id == user_id)

    rows = q.order_by(ActivityLog.timestamp.desc(), ActivityLog.id.desc()).limit(limit).all()
    return jsonify(success=True, data={"logs": [_log_row(r) for r in rows], "count": len(rows)}), 200


@admin_bp.delete("/logs/cleanup")
@require_roles("ADMIN")
def cleanup_logs():
    days = current_app.config.get("LOG_RETENTION_DAYS", 30)
    deleted = purge_activity_logs(days)
    log_event("LOGS_CLEANED_UP", user_id=g.user_id, details=f"Deleted {deleted} entries older than {days} days")
    return jsonify(success=True, message=f"Deleted {deleted} old log entries", data={"deleted": deleted}), 200


# ---------- source-address blocklist ----------

@admin_bp.post("/ban-ip")
@require_roles("ADMIN")
def ban_ip():
    data = request.get_json(silent=True) or {}
    ip = normalize_ip(data.get("ip_address") or data.get("ip") or "")
    reason = (data.get("reason") or "").strip()[:255] or None

    if not ip or not _valid_ip(ip):
        raise ValidationError("A valid ip_address is required")

    existing = BlockedIp.query.filter_by(ip_address=ip).first()
    if existing:
        return jsonify(success=True, message="IP address already banned", data=_blocked_row(existing)), 200

    row = BlockedIp(ip_address=ip, reason=reason, blocked_by=g.user_id)
    db.session.add(row)
    db.session.commit()

    log_event("IP_BANNED", user_id=g.user_id, details=f"Banned {ip}: {reason or 'no reason given'}", severity="WARNING")
    return jsonify(success=True, message=f"IP address {ip} has been banned", data=_blocked_row(row)), 201


@admin_bp.delete("/ban-ip/<path:ip>")
@require_roles("ADMIN")
def unban_ip(ip):
    ip = normalize_ip(ip)
    row = BlockedIp.query.filter_by(ip_address=ip).first()
    if not row:
        raise NotFoundError("IP address is not banned")

    db.session.delete(row)
    db.session.commit()

    log_event("IP_UNBANNED", user_id=g.user_id, details=f"Unbanned {ip}")
    return jsonify(success=True, message=f"IP address {ip} has been unbanned"), 200


@admin_bp.get("/blocked-ips")
@require_roles("ADMIN")
def list_blocked_ips():
    rows = BlockedIp.query.order_by(BlockedIp.created_at.desc()).all()
    return jsonify(success=True, data={"blocked_ips": [_blocked_row(r) for r in rows]}), 200


# ---------- anomaly detector ----------

@admin_bp.get("/security/ip-status/<path:ip>")
@require_roles("ADMIN")
def ip_status(ip):
    ip = normalize_ip(ip)
    status = get_core().detector.status(ip)
    status["ip_address"] = ip
    status["banned"] = BlockedIp.query.filter_by(ip_address=ip).first() is not None
    return jsonify(success=True, data=status), 200


@admin_bp.post("/security/test-alert")
@require_roles("ADMIN")
def test_alert():
    result = get_core().alerter.send_test_alert()
    log_event("SECURITY_TEST_ALERT", user_id=g.user_id, details=f"Test alert delivered: {result.success}")
    body = {"method": result.method, "error": result.error}
    if not result.success:
        return jsonify(success=False, message="Test alert could not be delivered", data=body), 500
    return jsonify(success=True, message="Test alert sent", data=body), 200


# ---------- agreement administration ----------

@admin_bp.post("/agreements/<int:lease_id>/cancel")
@require_roles("ADMIN")
def cancel_agreement(lease_id):
    data = request.get_json(silent=True) or {}
    agreement = get_core().signatures.cancel_agreement(lease_id, g.user_id, data.get("reason"))
    return jsonify(success=True, message="Agreement cancelled", data=agreement.to_dict()), 200


@admin_bp.post("/agreements/<int:lease_id>/reset")
@require_roles("ADMIN")
def reset_agreement(lease_id):
    agreement = get_core().signatures.reset_signatures(lease_id, g.user_id)
    return jsonify(success=True, message="Agreement signatures reset", data=agreement.to_dict()), 200
