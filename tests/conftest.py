from datetime import datetime, timedelta

import pytest

from app import create_app
from config import Config
from models import db
from models.lease import Lease
from models.rental_agreement import AgreementStatus, RentalAgreement
from models.user import ROLE_ADMIN, ROLE_USER, User
from security.password import hash_password
from security.tokens import issue_session_token
from services import get_core
from utils.emailer import DeliveryResult, EmailDispatcher

PASSWORD = "correct-horse-1"


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET = "test-jwt-secret"
    BCRYPT_ROUNDS = 4
    BACKGROUND_SWEEPS_ENABLED = False
    EMAIL_CONSOLE_FALLBACK = False
    SECURITY_ALERT_EMAIL = "ops@rentverse.test"
    LOG_LEVEL = "WARNING"


class FakeClock:
    def __init__(self, start=None):
        self.now = start or datetime(2026, 3, 1, 12, 0, 0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class RecordingChannel:
    name = "recording"
    enabled = True

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, message):
        if self.fail:
            return DeliveryResult(False, self.name, error="mailbox unavailable")
        self.sent.append(message)
        return DeliveryResult(True, self.name, message_id=f"msg-{len(self.sent)}")

    def to(self, address):
        return [m for m in self.sent if m.to == address]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def outbox():
    return RecordingChannel()


@pytest.fixture
def app(clock, outbox):
    app = create_app(TestingConfig, mailer=EmailDispatcher([outbox]), clock=clock)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def core(app):
    return get_core()


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make(email=None, password=PASSWORD, role=ROLE_USER, is_active=True, first_name="Test", last_name=None):
        counter["n"] += 1
        user = User(
            email=email or f"user{counter['n']}@rentverse.test",
            password_hash=hash_password(password, rounds=4),
            first_name=first_name,
            last_name=last_name or f"User{counter['n']}",
            role=role,
            is_active=is_active,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def admin(make_user):
    return make_user(email="admin@rentverse.test", role=ROLE_ADMIN, first_name="Ada")


@pytest.fixture
def tenant(make_user):
    return make_user(email="jane@rentverse.test", first_name="Jane", last_name="Doe")


@pytest.fixture
def landlord(make_user):
    return make_user(email="john@rentverse.test", first_name="John", last_name="Roe")


@pytest.fixture
def lease(tenant, landlord):
    row = Lease(tenant_id=tenant.id, landlord_id=landlord.id, property_ref="PROP-1", status="APPROVED")
    db.session.add(row)
    db.session.commit()
    return row


@pytest.fixture
def agreement(lease):
    row = RentalAgreement(lease_id=lease.id, status=AgreementStatus.PENDING)
    db.session.add(row)
    db.session.commit()
    return row


@pytest.fixture
def auth_header():
    def _header(user):
        return {"Authorization": f"Bearer {issue_session_token(user.id, user.role)}"}

    return _header
