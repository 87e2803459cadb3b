"""Pytest configuration: in-memory SQLite catalog, fresh per test, and a scripted completion client."""

import os

# Settings are read on first import; point them at SQLite before anything loads
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OPENROUTER_API_KEY"] = ""
os.environ["JWT_SECRET"] = "test-secret"

import pytest
from fastapi.testclient import TestClient

from product_explorer.core.security import hash_password
from product_explorer.db.session import Base, get_db, get_engine, init_db
from product_explorer.models import Product, User
from product_explorer.repositories import list_recent_ai_logs
from product_explorer.services.query_intent import get_call_budget

DEMO_EMAIL = "test@example.com"
DEMO_PASSWORD = "password123"

# name, category, brand, price, rating, weight_kg, cpu, ram_gb, storage_gb, screen_inch, battery_wh
SAMPLE_CATALOG = [
    ("iPhone 15 Pro", "phone", "Apple", 1299.99, 4.8, 0.187, "A17 Pro", 8, 256, 6.1, 15),
    ("iPhone SE", "phone", "Apple", 429.0, 4.4, 0.144, "A15 Bionic", 4, 64, 4.7, 8),
    ("Samsung Galaxy S24 Ultra", "phone", "Samsung", 1199.99, 4.7, 0.232, "Snapdragon 8 Gen 3", 12, 512, 6.8, 19),
    ("iPad Air", "tablet", "Apple", 599.0, 4.7, 0.462, "M1", 8, 64, 10.9, 28),
    ("Samsung Galaxy Tab S9", "tablet", "Samsung", 799.0, 4.6, 0.498, "Snapdragon 8 Gen 2", 8, 128, 11, 32),
    ("Dell XPS 15", "laptop", "Dell", 2199.0, 4.7, 1.92, "Intel Core i9-13900H", 32, 1024, 15.6, 86),
    ("HP Spectre x360", "laptop", "HP", 1249.99, 4.5, 1.36, "Intel Core i7-1355U", 16, 512, 13.5, 66),
    ("Lenovo Yoga 9i", "laptop", "Lenovo", 1399.0, 4.6, 1.4, "Intel Core i7-1360P", 16, 1024, 14, 75),
    ('MacBook Air 15"', "laptop", "Apple", 1299.0, 4.8, 1.51, "M2", 8, 256, 15.3, 66),
    ("Mac mini", "desktop", "Apple", 599.0, 4.8, 1.18, "M2", 8, 256, 0, 0),
    ("Alienware Aurora R15", "desktop", "Dell", 2899.99, 4.7, 16.5, "Intel Core i9-13900KF", 32, 2048, 0, 0),
]


@pytest.fixture(scope="function", autouse=True)
def _fresh_database():
    """Create every table before and drop them after each test."""
    init_db()
    get_call_budget().reset()
    yield
    Base.metadata.drop_all(bind=get_engine())
    get_call_budget().reset()


@pytest.fixture
def products():
    """Sample catalog rows as dicts, keyed by product name."""
    with get_db() as db:
        rows = []
        for name, category, brand, price, rating, weight, cpu, ram, storage, screen, battery in SAMPLE_CATALOG:
            rows.append(
                Product(
                    name=name,
                    category=category,
                    brand=brand,
                    price=price,
                    rating=rating,
                    weight_kg=weight,
                    cpu=cpu,
                    ram_gb=ram,
                    storage_gb=storage,
                    screen_inch=screen,
                    battery_wh=battery,
                )
            )
        db.add_all(rows)
        db.flush()
        return {p.name: {"id": p.id, "name": p.name, "category": p.category} for p in rows}


@pytest.fixture
def demo_user():
    with get_db() as db:
        user = User(email=DEMO_EMAIL, name="Test User", password_hash=hash_password(DEMO_PASSWORD))
        db.add(user)
        db.flush()
        return {"id": user.id, "email": user.email}


@pytest.fixture
def client():
    from main import app

    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def auth_client(client, demo_user):
    resp = client.post("/auth/login", json={"email": DEMO_EMAIL, "password": DEMO_PASSWORD})
    assert resp.status_code == 200
    return client


@pytest.fixture
def ai_logs():
    """Reads the interaction log (newest first)."""

    def _read():
        with get_db() as db:
            return list_recent_ai_logs(db)

    return _read


class ScriptedCompletionClient:
    """
    Completion client double: returns (or raises) scripted outcomes in order
    and remembers every call.
    """

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def complete(self, prompt, model, temperature, max_tokens):
        self.calls.append({"prompt": prompt, "model": model, "temperature": temperature, "max_tokens": max_tokens})
        if not self.outcomes:
            raise AssertionError("unexpected completion call")
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class RecorderSpy:
    """Stands in for the interaction-log writer."""

    def __init__(self):
        self.entries = []

    def __call__(self, prompt, response, model_used):
        self.entries.append({"prompt": prompt, "response": response, "model_used": model_used})
