"""
Failed-login anomaly detection.

Each source address owns a sliding window of failure timestamps. When the
window holds FAILED_LOGIN_THRESHOLD entries an alert is handed to the alert
sink, at most once per alert cooldown for that address.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from security.store import KeyValueStore
from utils.logger import get_logger

log = get_logger(__name__)

SEVERITY_HIGH = "HIGH"
SEVERITY_CRITICAL = "CRITICAL"


@dataclass
class FailureWindow:
    attempts: List[datetime] = field(default_factory=list)
    email: Optional[str] = None
    first_attempt: Optional[datetime] = None
    last_attempt: Optional[datetime] = None
    alerts_sent: int = 0
    last_alert_at: Optional[datetime] = None


@dataclass
class SecurityAlert:
    ip_address: str
    attempt_count: int
    email: Optional[str]
    user_agent: Optional[str]
    timestamp: datetime
    window_minutes: int
    severity: str

    @property
    def alert_id(self) -> str:
        return f"SEC-{int(self.timestamp.timestamp() * 1000)}-{self.ip_address.replace(':', '')}"


@dataclass
class FailureVerdict:
    triggered: bool
    attempts: int
    alert_sent: bool = False
    message: str = ""


class LoginAnomalyDetector:
    def __init__(
        self,
        store: KeyValueStore,
        alert_sink: Callable[[SecurityAlert], object],
        threshold: int = 10,
        critical_threshold: int = 20,
        window: timedelta = timedelta(minutes=15),
        alert_cooldown: timedelta = timedelta(minutes=30),
        retention: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self.store = store
        self.alert_sink = alert_sink
        self.threshold = threshold
        self.critical_threshold = critical_threshold
        self.window = window
        self.alert_cooldown = alert_cooldown
        self.retention = retention
        self.clock = clock

    @classmethod
    def from_config(cls, config, store: KeyValueStore, alert_sink) -> "LoginAnomalyDetector":
        return cls(
            store,
            alert_sink,
            threshold=config.get("FAILED_LOGIN_THRESHOLD", 10),
            critical_threshold=config.get("FAILED_LOGIN_CRITICAL_THRESHOLD", 20),
            window=timedelta(minutes=config.get("FAILED_LOGIN_WINDOW_MINUTES", 15)),
            alert_cooldown=timedelta(minutes=config.get("SECURITY_ALERT_COOLDOWN_MINUTES", 30)),
            retention=timedelta(hours=config.get("FAILED_LOGIN_RETENTION_HOURS", 24)),
        )

    def _in_window(self, attempts: List[datetime], now: datetime) -> List[datetime]:
        return [t for t in attempts if now - t < self.window]

    def record_failure(
        self,
        source: str,
        email: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> FailureVerdict:
        """Append a failure for ``source`` and decide whether to alert."""
        now = self.clock()
        alert = None

        with self.store.lock(source):
            entry = self.store.get(source)
            if entry is None:
                entry = FailureWindow(email=email, first_attempt=now)

            entry.attempts = self._in_window(entry.attempts, now)
            entry.attempts.append(now)
            entry.last_attempt = now
            if email:
                entry.email = email
            count = len(entry.attempts)

            if count >= self.threshold:
                cooled_down = entry.last_alert_at is None or now - entry.last_alert_at > self.alert_cooldown
                if cooled_down:
                    entry.alerts_sent += 1
                    entry.last_alert_at = now
                    alert = SecurityAlert(
                        ip_address=source,
                        attempt_count=count,
                        email=entry.email,
                        user_agent=user_agent,
                        timestamp=now,
                        window_minutes=int(self.window.total_seconds() // 60),
                        severity=SEVERITY_CRITICAL if count >= self.critical_threshold else SEVERITY_HIGH,
                    )
            self.store.set(source, entry)

        log.info("failed_login_tracked", ip=source, attempts=count)

        if count < self.threshold:
            return FailureVerdict(False, count, message=f"{count} failed attempts recorded")

        if alert is None:
            log.warning("security_alert_suppressed", ip=source, attempts=count)
            return FailureVerdict(True, count, alert_sent=False, message="Threshold reached but alert cooldown active")

        log.warning("security_alert_triggered", ip=source, attempts=count, severity=alert.severity)
        try:
            self.alert_sink(alert)
        except Exception:
            log.exception("security_alert_dispatch_failed", ip=source)
        return FailureVerdict(
            True, count, alert_sent=True,
            message=f"Security alert triggered for {count} failed attempts",
        )

    def status(self, source: str) -> dict:
        entry = self.store.get(source)
        if entry is None:
            return {"tracked": False, "attempts": 0, "status": "No failed attempts recorded"}

        recent = self._in_window(entry.attempts, self.clock())
        return {
            "tracked": True,
            "attempts": len(recent),
            "first_attempt": entry.first_attempt.isoformat() if entry.first_attempt else None,
            "last_attempt": entry.last_attempt.isoformat() if entry.last_attempt else None,
            "alerts_sent": entry.alerts_sent,
            "status": "SUSPICIOUS" if len(recent) >= self.threshold else "MONITORED",
        }

    def sweep(self) -> int:
        """Forget sources idle for longer than the retention period."""
        now = self.clock()
        removed = self.store.prune(
            lambda _ip, entry: entry.last_attempt is not None and now - entry.last_attempt > self.retention
        )
        if removed:
            log.info("failed_login_windows_swept", removed=removed)
        return removed
