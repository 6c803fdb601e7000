from datetime import datetime
from typing import Optional

from flask import render_template

from models.user import User
from security.anomaly import SEVERITY_CRITICAL, SEVERITY_HIGH, SecurityAlert
from utils.audit import log_event
from utils.emailer import DeliveryResult, EmailDispatcher, EmailMessage
from utils.logger import get_logger
from utils.request_meta import Actor

log = get_logger(__name__)


class SecurityAlerter:
    """Alert sink for the anomaly detector: emails the operator mailbox."""

    def __init__(self, mailer: EmailDispatcher, recipient: str) -> None:
        self.mailer = mailer
        self.recipient = recipient

    def compose(self, alert: SecurityAlert) -> EmailMessage:
        critical = alert.severity == SEVERITY_CRITICAL
        context = {
            "alert": alert,
            "critical": critical,
            "headline": "IMMEDIATE ACTION REQUIRED" if critical else "SUSPICIOUS ACTIVITY DETECTED",
            "detected_at": alert.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC"),
        }
        icon = "\U0001F6A8" if critical else "⚠️"
        return EmailMessage(
            to=self.recipient,
            subject=f"{icon} Security Alert: {alert.attempt_count} Failed Login Attempts from {alert.ip_address}",
            html=render_template("emails/security_alert.html", **context),
            text=render_template("emails/security_alert.txt", **context),
        )

    def __call__(self, alert: SecurityAlert) -> DeliveryResult:
        result = self.mailer.deliver(self.compose(alert))
        if result.success:
            log.info("security_alert_sent", method=result.method, alert_id=alert.alert_id)
        else:
            log.error("security_alert_send_failed", error=result.error, alert_id=alert.alert_id)

        if alert.email:
            user = User.query.filter_by(email=alert.email).first()
            if user:
                log_event(
                    "SECURITY_ALERT_TRIGGERED",
                    user_id=user.id,
                    details=(
                        f"Suspicious activity detected from IP {alert.ip_address}: "
                        f"{alert.attempt_count} failed attempts"
                    ),
                    severity="WARNING",
                    actor=Actor(ip=alert.ip_address, user_agent=alert.user_agent),
                )
        return result

    def send_test_alert(self, now: Optional[datetime] = None) -> DeliveryResult:
        """Send a sample alert so operators can check channel configuration."""
        alert = SecurityAlert(
            ip_address="192.0.2.10",
            attempt_count=15,
            email="test@example.com",
            user_agent="Rentverse security self-test",
            timestamp=now or datetime.utcnow(),
            window_minutes=15,
            severity=SEVERITY_HIGH,
        )
        result = self.mailer.deliver(self.compose(alert))
        log.info("security_test_alert", success=result.success, method=result.method, error=result.error)
        return result
