"""
Shared fixtures: an in-memory SQLite database, a TestClient wired to it,
and a company with an administrator ready to call the API.
"""

import os

# Must be set before the app modules read their settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key-with-at-least-32-characters")
os.environ.setdefault("REFRESH_SECRET_KEY", "test-refresh-key-with-at-least-32-characters")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from inventory_core.app import models
from inventory_core.app.db import Base, get_db
from inventory_core.app.main import app
from inventory_core.app.security import create_access_token, get_password_hash

ADMIN_PASSWORD = "Admin#Pass2024"
USER_PASSWORD = "Clerk#Pass2024"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db():
    """Fresh schema per test"""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_user(db, username, password=USER_PASSWORD, is_admin=False, companies=()):
    user = models.User(
        username=username,
        email=f"{username}@acme.io",
        password_hash=get_password_hash(password),
        is_admin=is_admin,
    )
    user.companies = list(companies)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_company(db, name, fiscal_id):
    company = models.Company(company_name=name, company_id_fiscal=fiscal_id)
    db.add(company)
    db.commit()
    db.refresh(company)
    return company


def auth_headers(user, company=None):
    headers = {"Authorization": f"Bearer {create_access_token(user)}"}
    if company is not None:
        headers["X-Company-Id"] = str(company.company_id)
    return headers


@pytest.fixture
def company(db):
    return make_company(db, "Acme Supplies", "J-00000001")


@pytest.fixture
def other_company(db):
    return make_company(db, "Globex Trading", "J-00000002")


@pytest.fixture
def admin(db):
    return make_user(db, "admin", ADMIN_PASSWORD, is_admin=True)


@pytest.fixture
def headers(admin, company):
    """Admin acting on `company`"""
    return auth_headers(admin, company)


@pytest.fixture
def currencies(db):
    """USD, EUR and VES in the global catalog, keyed by ISO code"""
    rows = {
        iso: models.Currency(currency_iso_code=iso, currency_name=name, currency_symbol=symbol)
        for iso, name, symbol in (("USD", "US Dollar", "$"), ("EUR", "Euro", "€"), ("VES", "Bolivar", "Bs."))
    }
    db.add_all(rows.values())
    db.commit()
    return {iso: currency.currency_id for iso, currency in rows.items()}


@pytest.fixture
def catalog(client, headers):
    """A stockable family, two storages and an inventory item with its default variant"""
    family = client.post("/api/v1/inventory/family", headers=headers, json={
        "inv_family_code": "HW", "inv_family_name": "Hardware",
    }).json()["data"]
    main = client.post("/api/v1/inventory/storages", headers=headers, json={
        "inv_storage_code": "MAIN", "inv_storage_name": "Main warehouse",
    }).json()["data"]
    backup = client.post("/api/v1/inventory/storages", headers=headers, json={
        "inv_storage_code": "BACK", "inv_storage_name": "Back room",
    }).json()["data"]
    item = client.post("/api/v1/inventory", headers=headers, json={
        "id_inv_family": family["id_inv_family"],
        "inv_code": "HAM-01",
        "inv_description": "Claw hammer",
    }).json()["data"]
    return {
        "family_id": family["id_inv_family"],
        "storage_id": main["id_inv_storage"],
        "storage2_id": backup["id_inv_storage"],
        "inv_id": item["inv_id"],
        "variant_id": item["variants"][0]["inv_var_id"],
    }
