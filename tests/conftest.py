"""Shared fixtures: a fresh in-memory app per test plus row factories."""

from __future__ import annotations

from decimal import Decimal

import pytest
from flask_jwt_extended import create_access_token

from adega import create_app
from adega.config import TestConfig
from adega.extensions import db
from adega.model import Coupon, Product, StoreSettings, User, UserRole


@pytest.fixture
def app():
    app = create_app(TestConfig)
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make(admin=False, email=None):
        counter["n"] += 1
        user = User(email=email or f"user{counter['n']}@example.com", full_name=f"User {counter['n']}")
        user.roles.append(UserRole(role="user"))
        if admin:
            user.roles.append(UserRole(role="admin"))
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def user(make_user):
    return make_user()


@pytest.fixture
def admin(make_user):
    return make_user(admin=True, email="admin@example.com")


@pytest.fixture
def auth_headers(app):
    def _headers(u):
        return {"Authorization": f"Bearer {create_access_token(identity=u.id)}"}

    return _headers


@pytest.fixture
def make_product(app):
    def _make(name="Brahma Lata 350ml", price="3.99", **kw):
        p = Product(name=name, price=Decimal(price), **kw)
        db.session.add(p)
        db.session.commit()
        return p

    return _make


@pytest.fixture
def products(make_product):
    """Product A at 3.99 and product B at 7.49."""
    return make_product("Brahma Lata 350ml", "3.99"), make_product("Heineken Long Neck", "7.49")


@pytest.fixture
def make_coupon(app):
    def _make(code="DESC20", discount_type="percentage", discount_value="20", **kw):
        c = Coupon(code=code, discount_type=discount_type, discount_value=Decimal(discount_value), **kw)
        db.session.add(c)
        db.session.commit()
        return c

    return _make


@pytest.fixture
def store_settings(app):
    s = StoreSettings(
        store_name="Adega Teste",
        minimum_order_value=Decimal("30.00"),
        delivery_fee=Decimal("5.00"),
        free_delivery_threshold=Decimal("150.00"),
    )
    db.session.add(s)
    db.session.commit()
    return s
