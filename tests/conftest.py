"""
Shared test fixtures.

Sets up an isolated SQLite test database so tests never touch
the real database. Tables are created before each test and
dropped after it.
"""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from topup_store.config import get_settings
from topup_store.main import app
from topup_store.models import Base, Product, UserAccount
from topup_store.models.base import get_db
from topup_store.services.account_service import AccountService
from topup_store.services.identity import Identity, JwtIdentityProvider


TEST_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
)

TestSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
)


class FakeClock:
    """Controllable clock handed to services instead of utcnow."""

    def __init__(self, now: datetime | None = None):
        self.now = now or datetime(2025, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop them after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory():
    return TestSessionLocal


@pytest.fixture
def db_session():
    """Provide a database session for direct service testing."""
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_account(db_session, clock):
    """Open an account and optionally fund it through the ledger."""
    def _make(user_id, balance=0, email=None, display_name=None) -> UserAccount:
        service = AccountService(db_session, clock=clock)
        account = service.open_account(
            user_id,
            email=email or f"{user_id}@test.com",
            display_name=display_name or user_id.title(),
        )
        if balance:
            service.credit_balance(user_id, balance, note="test funding")
        return account
    return _make


@pytest.fixture
def make_product(db_session):
    def _make(product_id="diamonds-86", price=1500, available=True, name=None):
        product = Product(
            id=product_id,
            name=name or f"{product_id} pack",
            group="Mobile Legends",
            price=price,
            available=available,
        )
        db_session.add(product)
        db_session.commit()
        return product
    return _make


@pytest.fixture
def identity_provider():
    return JwtIdentityProvider(
        secret="test-secret-for-signing-jwt-tokens-0001", algorithm="HS256"
    )


@pytest.fixture
def auth_headers(identity_provider):
    def _headers(user_id, email=None, name=None) -> dict:
        token = identity_provider.issue_token(
            Identity(user_id=user_id, email=email, display_name=name)
        )
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture
def admin_id(monkeypatch):
    monkeypatch.setattr(get_settings(), "ADMIN_USER_IDS", frozenset({"admin"}))
    return "admin"


@pytest.fixture
def client(db_session, identity_provider):
    """
    Provide a test client with the test database.

    get_db and the identity provider are overridden so the app
    uses the test session and the test signing secret.
    """
    from topup_store.api.deps import get_identity_provider

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider
    yield TestClient(app)
    app.dependency_overrides.clear()
