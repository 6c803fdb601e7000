"""
Security core wiring.

One SecurityCore per application owns the ephemeral stores and the flows that
use them. It lives in ``app.extensions["security_core"]``.
"""

from datetime import datetime
from typing import Callable, Optional

from flask import current_app

from security.anomaly import LoginAnomalyDetector
from security.store import KeyValueStore, MemoryStore
from services.alerts import SecurityAlerter
from services.auth_flow import AuthFlow
from services.signatures import SignatureService
from utils.emailer import EmailDispatcher, build_dispatcher

EXTENSION_KEY = "security_core"


class SecurityCore:
    def __init__(
        self,
        config,
        mailer: EmailDispatcher,
        otp_store: Optional[KeyValueStore] = None,
        failure_store: Optional[KeyValueStore] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self.mailer = mailer
        self.otp_store = otp_store if otp_store is not None else MemoryStore()
        self.failure_store = failure_store if failure_store is not None else MemoryStore()
        self.alerter = SecurityAlerter(mailer, config.get("SECURITY_ALERT_EMAIL"))

        self.detector = LoginAnomalyDetector.from_config(config, self.failure_store, self.alerter)
        self.detector.clock = clock
        self.auth = AuthFlow.from_config(config, self.otp_store, self.detector, mailer, clock=clock)
        self.signatures = SignatureService(clock=clock)
        self.sweeps = []


def init_security_core(app, mailer: Optional[EmailDispatcher] = None, clock=datetime.utcnow) -> SecurityCore:
    core = SecurityCore(app.config, mailer or build_dispatcher(app.config), clock=clock)
    app.extensions[EXTENSION_KEY] = core
    return core


def get_core() -> SecurityCore:
    return current_app.extensions[EXTENSION_KEY]
