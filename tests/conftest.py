"""Shared pytest fixtures for the Basket Grocery API tests."""

import os

os.environ.setdefault("JWT_SECRET", "test-secret-key-that-is-long-enough-for-hs256")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import mongomock
import pytest
from fastapi.testclient import TestClient

import database
from auth import create_admin_token, create_user_token, hash_password
from main import app


@pytest.fixture
def db(monkeypatch):
    """Swap the MongoDB handle for an in-memory mongomock database."""
    mock_db = mongomock.MongoClient()["basket_test"]
    monkeypatch.setattr(database, "db", mock_db)
    return mock_db


@pytest.fixture
def client(db):
    return TestClient(app)


@pytest.fixture
def category(db):
    """Create a category."""
    category_id = database.create_document("category", {
        "name": "Dairy & Eggs",
        "description": "Milk, cheese and eggs",
        "image": "",
        "isActive": True,
    })
    return database.get_document("category", category_id)


def make_product(category, **overrides):
    product = {
        "name": "Whole Milk",
        "description": "Full cream milk",
        "price": 2.5,
        "originalPrice": 0,
        "category": str(category["_id"]),
        "image": "https://img.example.com/milk.png",
        "stock": 10,
        "unit": "l",
        "discount": 0,
        "isFeatured": False,
    }
    product.update(overrides)
    return database.get_document("product", database.create_document("product", product))


@pytest.fixture
def milk(category):
    return make_product(category)


@pytest.fixture
def cheese(category):
    return make_product(category, name="Cheddar", price=10.0, stock=3, unit="pack", isFeatured=True)


@pytest.fixture
def user(db):
    """Create a shopper account (password: testpass123)."""
    user_id = database.create_document("user", {
        "name": "Test Shopper",
        "email": "shopper@example.com",
        "password": hash_password("testpass123"),
        "phone": "5550100",
        "address": {"street": "1 Main St", "city": "Pune", "state": "MH", "pincode": "411001"},
    })
    return database.get_document("user", user_id)


@pytest.fixture
def user_headers(user):
    return {"Authorization": f"Bearer {create_user_token(user)}"}


def make_admin(role, email):
    admin_id = database.create_document("admin", {
        "username": role,
        "email": email,
        "password": hash_password("adminpass1"),
        "role": role,
        "permissions": [],
        "tags": [],
        "isActive": True,
    })
    return database.get_document("admin", admin_id)


@pytest.fixture
def admin(db):
    return make_admin("admin", "admin@example.com")


@pytest.fixture
def super_admin(db):
    return make_admin("super_admin", "boss@example.com")


@pytest.fixture
def admin_headers(admin):
    return {"Authorization": f"Bearer {create_admin_token(admin)}"}


@pytest.fixture
def super_admin_headers(super_admin):
    return {"Authorization": f"Bearer {create_admin_token(super_admin)}"}
