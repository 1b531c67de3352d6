"""
Test fixtures and shared setup.

Uses a throwaway SQLite database file unless DATABASE_URL points somewhere
else (CI can run the same suite against Postgres).
All tests run in transactions that are rolled back after each test,
so the DB is always clean without needing to truncate tables.
"""

import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

# ── Override settings BEFORE importing app modules ────────────────────────────
os.environ.setdefault("DATABASE_URL", "sqlite:////tmp/expense_api_test.db")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("STORAGE_BACKEND", "local")
os.environ.setdefault("LOCAL_STORAGE_PATH", "/tmp/expense_api_test_uploads")
# OCR tests patch the provider explicitly; never call the real API
os.environ["ANTHROPIC_API_KEY"] = ""

from expense_api.main import app
from expense_api.database import get_db
from expense_api.models.base import Base
from expense_api.models import *  # noqa: ensures all models registered
from expense_api.lookups.seed import seed_lookups
from expense_api.services.auth import create_token_for, hash_password


# ── Test engine ───────────────────────────────────────────────────────────────
TEST_DATABASE_URL = os.environ["DATABASE_URL"]
_connect_args = {"check_same_thread": False} if TEST_DATABASE_URL.startswith("sqlite") else {}
test_engine = create_engine(TEST_DATABASE_URL, connect_args=_connect_args)
TestSessionLocal = sessionmaker(bind=test_engine, autocommit=False, autoflush=False)

TEST_PASSWORD = "Passw0rd!"


@pytest.fixture(scope="session")
def create_test_tables():
    """
    Create all tables once per test session.
    NOT autouse: only runs for tests that need DB fixtures.
    DB-independent tests (mapping, file checks, schemas) run without this.
    """
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="session")
def seed_test_lookups(create_test_tables):
    """Seed events and categories once per session (idempotent)."""
    with TestSessionLocal() as session:
        seed_lookups(session)


@pytest.fixture
def db(seed_test_lookups) -> Session:
    """
    Provide a DB session that is rolled back after each test.
    Route handlers commit on this session; those commits stay inside the
    outer transaction, so the rollback still discards them.
    """
    connection = test_engine.connect()
    transaction = connection.begin()
    session = TestSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture
def client(db: Session) -> TestClient:
    """
    FastAPI test client with DB dependency overridden to use the test session.
    """

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ── Data builder fixtures ──────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def password_hash() -> str:
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(TEST_PASSWORD)


def _make_profile(db: Session, email: str, name: str, role: str, password_hash: str):
    from expense_api.models.profile import Profile

    profile = Profile(email=email, name=name, role=role, password_hash=password_hash)
    db.add(profile)
    db.flush()
    return profile


@pytest.fixture
def admin_user(db: Session, password_hash):
    from expense_api.models.profile import Role

    return _make_profile(db, "admin@example.com", "Admin User", Role.ADMIN, password_hash)


@pytest.fixture
def viewer_user(db: Session, password_hash):
    from expense_api.models.profile import Role

    return _make_profile(db, "viewer@example.com", "Viewer User", Role.VIEWER, password_hash)


@pytest.fixture
def admin_headers(admin_user) -> dict:
    return {"Authorization": f"Bearer {create_token_for(admin_user)}"}


@pytest.fixture
def viewer_headers(viewer_user) -> dict:
    return {"Authorization": f"Bearer {create_token_for(viewer_user)}"}


@pytest.fixture
def expense_payload() -> dict:
    """A valid JSON body for POST /api/expenses (reimbursable, one line item)."""
    return {
        "email": "viewer@example.com",
        "phone": "+34600111222",
        "name": "Joan",
        "surname": "Puig",
        "event": "general",
        "category": "transport",
        "type": "reimbursable",
        "invoice_number": "F-2025-0042",
        "invoice_date": "2025-03-14",
        "vendor_name": "Taxi Barcelona SL",
        "vendor_nif": "B12345678",
        "total_amount": "48.40",
        "currency": "EUR",
        "tax_base": "40.00",
        "vat_21_base": "40.00",
        "vat_21_amount": "8.40",
        "bank_account": "ES91 2100 0418 4502 0005 1332",
        "account_holder": "Joan Puig",
        "line_items": [
            {
                "description": "Airport transfer",
                "quantity": "1",
                "unit_price": "40.00",
                "total_price": "48.40",
            }
        ],
    }


@pytest.fixture
def make_expense(db: Session, expense_payload):
    """Factory: create an expense through the service layer, with overrides."""
    from expense_api.schemas.expense import ExpenseCreate
    from expense_api.services.expenses import create_expense

    def _make(**overrides):
        payload = ExpenseCreate.model_validate({**expense_payload, **overrides})
        return create_expense(db, payload)

    return _make


@pytest.fixture
def sample_expense(make_expense):
    return make_expense()


@pytest.fixture
def sample_png_bytes() -> bytes:
    """A blank 1000x800 PNG: large enough to pass the resolution check."""
    import io

    from PIL import Image

    buf = io.BytesIO()
    Image.new("RGB", (1000, 800), "white").save(buf, format="PNG")
    return buf.getvalue()

