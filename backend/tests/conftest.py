"""
Shared fixtures: an in-memory SQLite database per test, a TestClient wired to
it and a registered user with auth headers.
"""
import os
import tempfile

os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="suagrana-logs-"))
os.environ.setdefault("JWT_SECRET", "test-access-secret")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret")
os.environ["ENABLE_SCHEDULER"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401  registers every table on Base.metadata
from database import Base, get_db
from main import app
from utils.cache import report_cache

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

PASSWORD = "secret123"


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    report_cache.clear()
    report_cache.reset_stats()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def register(client, email, name="Test User", password=PASSWORD, tenant_name=None):
    """Register through the API and return (token payload, headers)."""
    response = client.post("/auth/register", json={
        "email": email,
        "password": password,
        "name": name,
        "tenant_name": tenant_name,
    })
    assert response.status_code == 201, response.text
    # the auth cookie would otherwise win over the Authorization header
    client.cookies.clear()
    body = response.json()
    headers = {
        "Authorization": f"Bearer {body['access_token']}",
        "X-Tenant-ID": body["tenant_id"],
    }
    return body, headers


@pytest.fixture
def registered(client):
    body, _ = register(client, "ana@example.com", name="Ana")
    return body


@pytest.fixture
def auth_headers(client, registered):
    return {
        "Authorization": f"Bearer {registered['access_token']}",
        "X-Tenant-ID": registered["tenant_id"],
    }


@pytest.fixture
def tenant_id(registered):
    return registered["tenant_id"]


@pytest.fixture
def make_account(client, auth_headers):
    def _make(name="Checking", type="CHECKING", opening_balance=0, **extra):
        response = client.post("/accounts/", headers=auth_headers, json={
            "name": name,
            "type": type,
            "opening_balance": opening_balance,
            **extra,
        })
        assert response.status_code == 201, response.text
        return response.json()
    return _make


@pytest.fixture
def checking(make_account):
    return make_account("Checking", "CHECKING", 1000)


@pytest.fixture
def savings(make_account):
    return make_account("Savings", "SAVINGS", 0)


def _category_id(client, headers, name, category_type):
    response = client.get(f"/categories/?type={category_type}", headers=headers)
    assert response.status_code == 200
    return next(c["id"] for c in response.json() if c["name"] == name)


@pytest.fixture
def food_category(client, auth_headers):
    return _category_id(client, auth_headers, "Food", "EXPENSE")


@pytest.fixture
def salary_category(client, auth_headers):
    return _category_id(client, auth_headers, "Salary", "INCOME")


@pytest.fixture
def make_transaction(client, auth_headers):
    def _make(expected_status=201, **payload):
        response = client.post("/transactions/", headers=auth_headers, json=payload)
        assert response.status_code == expected_status, response.text
        return response.json()
    return _make


def account_balance(client, headers, account_id):
    response = client.get(f"/accounts/{account_id}", headers=headers)
    assert response.status_code == 200, response.text
    return response.json()["balance"]
