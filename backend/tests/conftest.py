import os
import tempfile

# settings are read at import time, so point them at a scratch DB first
_tmp = tempfile.mkdtemp(prefix="storefront-tests-")
os.environ["DATABASE_URL"] = "sqlite:///" + os.path.join(_tmp, "test.db")
os.environ["LOCK_DIR"] = os.path.join(_tmp, "locks")
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from storefront.db import SessionLocal, init_db
from storefront.main import app
from storefront.models.coupon import Coupon
from storefront.models.product import Product
from storefront.services.auth_service import AuthService
from storefront.utils.clock import utcnow


@pytest.fixture(autouse=True)
def fresh_db():
    init_db(reset=True)
    yield


@pytest.fixture
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture
def client():
    return TestClient(app)


def make_user(db, email="user@example.com", password="secret123", admin=False):
    svc = AuthService(db)
    if admin:
        return svc.bootstrap_admin(email, password, username="admin")
    return svc.register(email.split("@")[0], email, password, password)


def auth_headers(db, user):
    return {"Authorization": f"Bearer {AuthService(db).issue_token(user)}"}


def make_product(db, sku="P1", price_cents=1000, stock=10, name=None):
    p = Product(sku=sku, name=name or f"Product {sku}", price_cents=price_cents, stock=stock)
    db.add(p)
    db.commit()
    return p


def make_coupon(db, code="SAVE10", discount_percent=10, days=7):
    c = Coupon(code=code, discount_percent=discount_percent, expires_at=utcnow() + timedelta(days=days))
    db.add(c)
    db.commit()
    return c


@pytest.fixture
def user(db):
    return make_user(db)


@pytest.fixture
def admin(db):
    return make_user(db, email="admin@example.com", admin=True)


@pytest.fixture
def user_headers(db, user):
    return auth_headers(db, user)


@pytest.fixture
def admin_headers(db, admin):
    return auth_headers(db, admin)
