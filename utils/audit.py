from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from models import db
from models.activity_log import ActivityLog
from utils.logger import get_logger
from utils.request_meta import Actor, current_actor

log = get_logger("activity")

_LEVELS = {"INFO": "info", "WARNING": "warning", "ERROR": "error", "CRITICAL": "critical"}


def log_event(
    action: str,
    user_id: Optional[int] = None,
    details: Optional[str] = None,
    severity: str = "INFO",
    actor: Optional[Actor] = None,
) -> None:
    """
    Append an activity-log entry.

    Every event goes to the structured log. It is persisted only when it can be
    tied to a user; a storage failure is logged and never propagated to the
    operation being recorded.
    """
    actor = actor or current_actor()
    severity = severity.upper()
    emit = getattr(log, _LEVELS.get(severity, "info"))
    emit(action.lower(), action=action, user_id=user_id, details=details, ip=actor.ip)

    if user_id is None:
        return

    row = ActivityLog(
        user_id=user_id,
        action=action,
        details=details,
        severity=severity,
        ip_address=actor.ip,
        user_agent=actor.user_agent[:255] if actor.user_agent else None,
    )
    try:
        db.session.add(row)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        log.exception("activity_log_write_failed", action=action, user_id=user_id)


def purge_activity_logs(older_than_days: int, now: Optional[datetime] = None) -> int:
    """Delete entries older than the threshold. Returns the number removed."""
    threshold = (now or datetime.utcnow()) - timedelta(days=older_than_days)
    count = (
        ActivityLog.query
        .filter(ActivityLog.timestamp < threshold)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    log.info("activity_logs_purged", count=count, older_than_days=older_than_days)
    return count
