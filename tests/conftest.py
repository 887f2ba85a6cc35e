"""
Pytest fixtures for the POS API tests.

Every test gets a fresh app over an in-memory document store and a mailer
that records password-reset links instead of sending them.
"""
import os

os.environ.setdefault("APP_LOG_TO_FILE", "false")
os.environ.setdefault("APP_LOG_LEVEL", "WARNING")

import pytest

from pos_api import create_app
from pos_api.store import InMemoryDocumentStore

PASSWORD = "Password123!"


class RecordingMailer:
    def __init__(self):
        self.sent = []

    def __call__(self, email, reset_link):
        self.sent.append({"email": email, "link": reset_link})
        return True


@pytest.fixture(scope='function')
def store():
    return InMemoryDocumentStore(retry_backoff=0)


@pytest.fixture(scope='function')
def mailer():
    return RecordingMailer()


@pytest.fixture(scope='function')
def app(store, mailer):
    """Create application for testing."""
    app = create_app("testing", store=store, mailer=mailer)
    with app.app_context():
        yield app


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def identity(app):
    return app.extensions["identity_provider"]


def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


def register(client, email, password=PASSWORD, display_name=None):
    response = client.post(
        "/api/auth/register",
        json={"email": email, "password": password, "display_name": display_name or email.split("@")[0]},
    )
    assert response.status_code == 201, response.get_json()
    return response.get_json()["data"]


def login(client, email, password=PASSWORD):
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.get_json()
    return response.get_json()["data"]


def refresh(client, refresh_token):
    response = client.post("/api/auth/refresh", json={"refresh_token": refresh_token})
    assert response.status_code == 200, response.get_json()
    return response.get_json()["data"]


def make_owner(client, email, business_name):
    """
    Register a user, create their business and return a session whose token
    already carries the owner claims.
    """
    profile = register(client, email)
    tokens = login(client, email)
    response = client.post(
        "/api/business",
        json={"name": business_name},
        headers=auth_headers(tokens["id_token"]),
    )
    assert response.status_code == 201, response.get_json()
    business_id = response.get_json()["business_id"]

    tokens = refresh(client, tokens["refresh_token"])
    return {
        "uid": profile["id"],
        "email": email,
        "business_id": business_id,
        "tokens": tokens,
        "headers": auth_headers(tokens["id_token"]),
    }


@pytest.fixture(scope='function')
def owner_a(client):
    """Owner of business A (first tenant)."""
    return make_owner(client, "owner_a@cafe.test", "Test Cafe")


@pytest.fixture(scope='function')
def owner_b(client):
    """Owner of business B (second tenant)."""
    return make_owner(client, "owner_b@bakery.test", "Beta Bakery")


def create_product(client, session, name="Latte", price=5.00, stock=100, category_id=None):
    body = {"name": name, "price": price, "stock": stock}
    if category_id:
        body["category_id"] = category_id
    response = client.post("/api/products", json=body, headers=session["headers"])
    assert response.status_code == 201, response.get_json()
    return response.get_json()["data"]


def create_category(client, session, name="Beverages"):
    response = client.post("/api/categories", json={"name": name}, headers=session["headers"])
    assert response.status_code == 201, response.get_json()
    return response.get_json()["data"]
