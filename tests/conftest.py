import pytest
import os
from datetime import date, datetime, timezone
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SEED_DEMO_DATA"] = "false"

from trackmytime.database import Base, get_db
from trackmytime.main import app
from trackmytime.client import snapshots
from trackmytime.core.auth import create_access_token
from trackmytime.core.config import settings
from trackmytime.models.employee import Employee
from trackmytime.models.time_off_request import RequestStatus, TimeOffRequest
from trackmytime.routers.auth_deps import get_identity_provider
from trackmytime.services.identity import DirectoryIdentityProvider
from trackmytime.services.view_cache import view_cache
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

IDENTITY_PROFILES = [
    {
        "id": "user_manager",
        "first_name": "Morgan",
        "last_name": "Reyes",
        "primary_email": "morgan@example.com",
        "public_metadata": {"role": "Engineering Manager", "team": "Platform"},
    },
    {
        "id": "user_employee",
        "first_name": "Priya",
        "last_name": "Patel",
        "primary_email": "priya@example.com",
        "public_metadata": {"role": "QA Analyst"},
    },
    {
        "id": "user_admin",
        "username": "ops-admin",
        "email_addresses": ["admin@example.com"],
        "public_metadata": {"role": ["Admin", "People Ops"]},
    },
    {
        "id": "user_kayley",
        "first_name": "Kayley",
        "last_name": "Manfredi",
        "primary_email": "kayley@example.com",
        "public_metadata": {"role": "Employee"},
    },
    {
        # No role metadata: permission comes from the employee row
        "id": "user_director",
        "full_name": "Dana Director",
        "primary_email": "dana@example.com",
    },
]


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create tables once for the whole test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Get a session for each test function; every table is emptied afterwards."""
    session = TestingSessionLocal()

    yield session

    session.close()
    with engine.begin() as connection:
        for table in reversed(Base.metadata.sorted_tables):
            connection.execute(table.delete())


@pytest.fixture(autouse=True)
def reset_view_cache():
    view_cache.reset()
    yield
    view_cache.reset()


@pytest.fixture(autouse=True)
def isolated_snapshot_store(tmp_path, monkeypatch):
    """Point the default client snapshot store at a per-test file."""
    monkeypatch.setattr(settings, "snapshot_store_path", str(tmp_path / "approved-requests.json"))
    monkeypatch.setattr(snapshots, "_shared_stores", {})


@pytest.fixture(scope="function")
def identity_provider():
    return DirectoryIdentityProvider(IDENTITY_PROFILES)


@pytest.fixture(scope="function")
def get_token():
    """Helper fixture to create bearer tokens for an identity-provider user."""
    def _get_token(user_id):
        return create_access_token(user_id)
    return _get_token


@pytest.fixture(scope="function")
def auth_headers(get_token):
    def _auth_headers(user_id, **extra):
        headers = {"Authorization": f"Bearer {get_token(user_id)}"}
        headers.update(extra)
        return headers
    return _auth_headers


@pytest.fixture(scope="function")
def kayley(db_session):
    employee = Employee(
        external_user_id="user_kayley",
        full_name="Kayley Manfredi",
        email="kayley@example.com",
        role="Employee",
    )
    db_session.add(employee)
    db_session.commit()
    return employee


@pytest.fixture(scope="function")
def director(db_session):
    employee = Employee(
        external_user_id="user_director",
        full_name="Dana Director",
        email="dana@example.com",
        role="Director",
    )
    db_session.add(employee)
    db_session.commit()
    return employee


@pytest.fixture(scope="function")
def pending_request(db_session, kayley):
    """The req-kayley request: PTO, Nov 11-12 2025, 8 hours, pending."""
    submitted = datetime(2025, 10, 23, 9, 0, tzinfo=timezone.utc)
    request = TimeOffRequest(
        id="req-kayley",
        employee_id=kayley.id,
        external_user_id=kayley.external_user_id,
        status=RequestStatus.PENDING.value,
        type="PTO",
        start_date=date(2025, 11, 11),
        end_date=date(2025, 11, 12),
        hours=8,
        submitted_at=submitted,
        last_updated_at=submitted,
    )
    db_session.add(request)
    db_session.commit()
    return request


@pytest.fixture(scope="function")
def client(db_session, identity_provider):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_identity_provider] = lambda: identity_provider
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
