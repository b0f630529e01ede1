"""
Shared test fixtures.

Environment variables must be in place before any backend module is
imported, because ``core.config`` builds its settings singleton at import.
"""

import os
from datetime import datetime, timedelta, timezone

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ACCESS_TOKEN_SECRET", "test-access-secret-for-testing-only-0123456789")
os.environ.setdefault("REFRESH_TOKEN_SECRET", "test-refresh-secret-for-testing-only-9876543210")
# keep pbkdf2 cheap in tests
os.environ.setdefault("PASSWORD_HASH_ROUNDS", "1000")
os.environ.setdefault("COOKIE_SECURE", "false")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from auth.mailer import get_notification_sink  # noqa: E402
from auth.schemas import SignupRequest  # noqa: E402
from auth.service import AuthService  # noqa: E402
from core.config import Settings, get_settings  # noqa: E402
from core.errors import DeliveryError  # noqa: E402
from core.security import SecretHasher, TokenIssuer  # noqa: E402
from database import Base, get_db  # noqa: E402
from main import app  # noqa: E402
from models.user import Role  # noqa: E402
from users.repository import UserRepository  # noqa: E402
from users.service import UserService  # noqa: E402

PASSWORD = "pw123456"


class RecordingSink:
    """Notification sink that keeps what it was asked to send."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send_otp(self, address, full_name, code):
        if self.fail:
            raise DeliveryError("smtp down")
        self.sent.append((address, full_name, code))

    def last_code(self, address):
        for sent_to, _, code in reversed(self.sent):
            if sent_to == address:
                return code
        raise AssertionError(f"no OTP sent to {address}")


class FrozenClock:
    def __init__(self, now=None):
        self.now = now or datetime.now(timezone.utc).replace(microsecond=0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def signup_request(email="a@x.com", password=PASSWORD, confirm=None, **extra) -> SignupRequest:
    fields = {
        "full_name": "Alice Example",
        "phone": "+998901234567",
        "email": email,
        "password": password,
        "confirm_password": password if confirm is None else confirm,
        "gender": "FEMALE",
        "birth_date": "1990-01-01",
    }
    fields.update(extra)
    return SignupRequest(**fields)


@pytest.fixture
def cfg() -> Settings:
    return Settings()


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return sessionmaker(bind=db_engine, autoflush=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def repo(db) -> UserRepository:
    return UserRepository(db)


@pytest.fixture
def hasher() -> SecretHasher:
    return SecretHasher(rounds=1000)


@pytest.fixture
def issuer(cfg) -> TokenIssuer:
    return TokenIssuer.from_settings(cfg)


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def service(repo, hasher, issuer, sink, cfg, clock) -> AuthService:
    return AuthService(repo, hasher, issuer, sink, cfg, clock=clock)


@pytest.fixture
def user_service(repo, hasher, cfg) -> UserService:
    return UserService(repo, hasher, cfg)


@pytest.fixture
def active_user(service, sink):
    """A USER who signed up and confirmed the OTP: returns the email."""
    service.signup(signup_request("a@x.com"))
    service.verify_otp("a@x.com", sink.last_code("a@x.com"))
    return "a@x.com"


@pytest.fixture
def owner(user_service):
    return user_service.seed_owner("owner@x.com", PASSWORD, "Shop Owner")


@pytest.fixture
def make_active(repo, hasher):
    """Insert an already-activated account of the given role directly."""

    def _make(email, role=Role.USER):
        return repo.create(
            full_name=email.split("@")[0],
            phone="+10000000000",
            email=email,
            hashed_password=hasher.hash(PASSWORD),
            role=role,
            is_active=True,
        )

    return _make


@pytest.fixture
def client(session_factory, sink, cfg):
    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_notification_sink] = lambda: sink
    app.dependency_overrides[get_settings] = lambda: cfg
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
