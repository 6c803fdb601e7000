"""
Password + email OTP login.

A login moves through NO_SESSION -> CREDENTIALS_CHECKED -> OTP_PENDING ->
AUTHENTICATED. The pending challenge lives in a KeyValueStore keyed by email;
every read-modify-write of a challenge happens under ``store.lock(email)``.
Email delivery and activity logging run after the lock is released.
"""

import hmac
import math
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, Optional

from flask import render_template
from sqlalchemy.exc import IntegrityError

from errors import (
    AccountDisabled,
    AttemptsExceeded,
    ChallengeExpired,
    ConflictError,
    CooldownActive,
    InvalidCredentials,
    InvalidOtp,
    NoChallenge,
    OtpDeliveryFailed,
    ValidationError,
)
from models import db
from models.user import ROLE_USER, User
from security.anomaly import LoginAnomalyDetector
from security.password import hash_password, needs_rehash, verify_password
from security.store import KeyValueStore
from security.tokens import issue_session_token
from utils.audit import log_event
from utils.codes import generate_otp
from utils.emailer import DeliveryResult, EmailDispatcher, EmailMessage
from utils.logger import get_logger
from utils.request_meta import Actor, current_actor

log = get_logger(__name__)


@dataclass
class OtpChallenge:
    user_id: int
    email: str
    name: str
    role: str
    code: str
    expires_at: datetime
    attempts: int
    created_at: datetime


def normalize_email(email) -> str:
    return (email or "").strip().lower() if isinstance(email, str) else ""


def is_valid_email(email: str) -> bool:
    if not email or len(email) > 255 or "@" not in email:
        return False
    local, _, domain = email.rpartition("@")
    return bool(local) and "." in domain and not domain.startswith(".")


class AuthFlow:
    def __init__(
        self,
        store: KeyValueStore,
        detector: LoginAnomalyDetector,
        mailer: EmailDispatcher,
        otp_length: int = 6,
        otp_ttl: timedelta = timedelta(minutes=10),
        max_attempts: int = 5,
        resend_cooldown: timedelta = timedelta(seconds=60),
        password_min_len: int = 8,
        bcrypt_rounds: int = 12,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self.store = store
        self.detector = detector
        self.mailer = mailer
        self.otp_length = otp_length
        self.otp_ttl = otp_ttl
        self.max_attempts = max_attempts
        self.resend_cooldown = resend_cooldown
        self.password_min_len = password_min_len
        self.bcrypt_rounds = bcrypt_rounds
        self.clock = clock

    @classmethod
    def from_config(cls, config, store, detector, mailer, clock=datetime.utcnow) -> "AuthFlow":
        return cls(
            store,
            detector,
            mailer,
            otp_length=config.get("OTP_LENGTH", 6),
            otp_ttl=timedelta(seconds=config.get("OTP_TTL_SECONDS", 600)),
            max_attempts=config.get("OTP_MAX_ATTEMPTS", 5),
            resend_cooldown=timedelta(seconds=config.get("OTP_RESEND_COOLDOWN_SECONDS", 60)),
            password_min_len=config.get("PASSWORD_MIN_LEN", 8),
            bcrypt_rounds=config.get("BCRYPT_ROUNDS", 12),
            clock=clock,
        )

    # ---------- account lookup / creation ----------

    def check_email(self, email) -> dict:
        """Tell the frontend whether to continue to login or to registration."""
        email = normalize_email(email)
        user = User.query.filter_by(email=email).first() if email else None
        if user is None:
            return {"exists": False, "user": None}
        return {
            "exists": True,
            "user": {
                "email": user.email,
                "first_name": user.first_name,
                "last_name": user.last_name,
                "name": user.name,
                "role": user.role,
            },
        }

    def register(self, email, password, first_name=None, last_name=None, actor: Optional[Actor] = None) -> User:
        email = normalize_email(email)
        if not is_valid_email(email):
            raise ValidationError("Invalid email")
        if not isinstance(password, str) or len(password) < self.password_min_len:
            raise ValidationError(f"Password must be at least {self.password_min_len} characters")

        if User.query.filter_by(email=email).first():
            raise ConflictError("Email already registered")

        user = User(
            email=email,
            password_hash=hash_password(password, rounds=self.bcrypt_rounds),
            first_name=(first_name or "").strip() or None,
            last_name=(last_name or "").strip() or None,
            role=ROLE_USER,
        )
        db.session.add(user)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError("Email already registered")

        log_event("USER_REGISTERED", user_id=user.id, details=f"New account {email}", actor=actor)
        return user

    # ---------- login ----------

    def _record_failed_login(self, email: str, user: Optional[User], reason: str, actor: Actor) -> None:
        try:
            self.detector.record_failure(actor.ip or "unknown", email=email, user_agent=actor.user_agent)
        except Exception:
            log.exception("anomaly_detector_failed", ip=actor.ip)

        log_event(
            "LOGIN_FAILED",
            user_id=user.id if user else None,
            details=f"Failed login attempt for {email or 'unknown'}: {reason}",
            severity="WARNING",
            actor=actor,
        )

    def _otp_message(self, challenge: OtpChallenge) -> EmailMessage:
        context = {
            "code": challenge.code,
            "name": challenge.name,
            "ttl_minutes": int(self.otp_ttl.total_seconds() // 60),
        }
        return EmailMessage(
            to=challenge.email,
            subject="Rentverse Security Code",
            html=render_template("emails/otp.html", **context),
            text=render_template("emails/otp.txt", **context),
        )

    def _deliver(self, challenge: OtpChallenge) -> DeliveryResult:
        return self.mailer.deliver(self._otp_message(challenge))

    def login(self, email, password, actor: Optional[Actor] = None) -> dict:
        actor = actor or current_actor()
        email = normalize_email(email)
        if not email or not password:
            raise ValidationError("Email and password are required")

        user = User.query.filter_by(email=email).first()
        if user is None:
            self._record_failed_login(email, None, "user not found", actor)
            raise InvalidCredentials()
        if not verify_password(password, user.password_hash):
            self._record_failed_login(email, user, "wrong password", actor)
            raise InvalidCredentials()

        if not user.is_active:
            log_event(
                "LOGIN_BLOCKED_INACTIVE",
                user_id=user.id,
                details="Login refused for disabled account",
                severity="WARNING",
                actor=actor,
            )
            raise AccountDisabled()

        if needs_rehash(user.password_hash, self.bcrypt_rounds):
            user.password_hash = hash_password(password, rounds=self.bcrypt_rounds)
            db.session.commit()
            log.info("password_rehashed", user_id=user.id, rounds=self.bcrypt_rounds)

        now = self.clock()
        challenge = OtpChallenge(
            user_id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            code=generate_otp(self.otp_length),
            expires_at=now + self.otp_ttl,
            attempts=0,
            created_at=now,
        )
        with self.store.lock(email):
            self.store.set(email, challenge)

        result = self._deliver(challenge)
        if not result.success:
            # the challenge stays in the store so resend-otp can pick it up
            log_event(
                "OTP_SEND_FAILED",
                user_id=user.id,
                details=f"Failed to deliver login code: {result.error}",
                severity="ERROR",
                actor=actor,
            )
            raise OtpDeliveryFailed()

        log_event("OTP_SENT", user_id=user.id, details=f"Login code sent via {result.method}", actor=actor)
        return {
            "email": user.email,
            "method": result.method,
            "expires_in": int(self.otp_ttl.total_seconds()),
        }

    # ---------- OTP ----------

    def verify_otp(self, email, code, actor: Optional[Actor] = None) -> dict:
        actor = actor or current_actor()
        email = normalize_email(email)
        code = str(code or "").strip()
        if not email or not code:
            raise ValidationError("Email and verification code are required")

        now = self.clock()
        with self.store.lock(email):
            challenge = self.store.get(email)
            if challenge is None:
                raise NoChallenge()
            if now > challenge.expires_at:
                self.store.delete(email)
                raise ChallengeExpired()
            if challenge.attempts >= self.max_attempts:
                self.store.delete(email)
                raise AttemptsExceeded()

            challenge.attempts += 1
            matched = hmac.compare_digest(challenge.code, code)
            if matched:
                self.store.delete(email)
            else:
                self.store.set(email, challenge)
            snapshot = replace(challenge)

        if not matched:
            log_event(
                "OTP_INVALID",
                user_id=snapshot.user_id,
                details=f"Invalid verification code (attempt {snapshot.attempts}/{self.max_attempts})",
                severity="WARNING",
                actor=actor,
            )
            raise InvalidOtp()

        user = db.session.get(User, snapshot.user_id)
        if user is None:
            raise InvalidCredentials()

        token = issue_session_token(user.id, user.role)
        log_event("LOGIN_OTP_SUCCESS", user_id=user.id, details="Login completed with verification code", actor=actor)
        return {"token": token, "user": user.public_profile()}

    def resend_otp(self, email, actor: Optional[Actor] = None) -> dict:
        actor = actor or current_actor()
        email = normalize_email(email)
        if not email:
            raise ValidationError("Email is required")

        now = self.clock()
        with self.store.lock(email):
            challenge = self.store.get(email)
            if challenge is None:
                raise NoChallenge()
            if now > challenge.expires_at:
                self.store.delete(email)
                raise ChallengeExpired()

            elapsed = now - challenge.created_at
            if elapsed < self.resend_cooldown:
                remaining = math.ceil((self.resend_cooldown - elapsed).total_seconds())
                raise CooldownActive(max(remaining, 1))

            challenge.code = generate_otp(self.otp_length)
            challenge.expires_at = now + self.otp_ttl
            challenge.attempts = 0
            challenge.created_at = now
            self.store.set(email, challenge)
            snapshot = replace(challenge)

        result = self._deliver(snapshot)
        if not result.success:
            log_event(
                "OTP_RESEND_FAILED",
                user_id=snapshot.user_id,
                details=f"Failed to resend login code: {result.error}",
                severity="ERROR",
                actor=actor,
            )
            raise OtpDeliveryFailed()

        log_event("OTP_RESENT", user_id=snapshot.user_id, details=f"Login code resent via {result.method}", actor=actor)
        return {
            "email": snapshot.email,
            "method": result.method,
            "expires_in": int(self.otp_ttl.total_seconds()),
        }
