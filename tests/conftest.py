"""Shared fixtures for the Bookshelf test-suite."""

import pytest
from fastapi.testclient import TestClient

from bookshelf.catalog.schemas import Book
from bookshelf.main import create_app
from bookshelf.storage import SlotStorage


@pytest.fixture
def storage(tmp_path):
    """Slot storage rooted in a fresh temporary directory."""
    return SlotStorage(tmp_path)


@pytest.fixture
def app(tmp_path):
    return create_app(data_dir=tmp_path)


@pytest.fixture
def client(app):
    return TestClient(app)


def register_and_login(client, username="reader", email="reader@example.com", password="secret123"):
    client.post(
        "/auth/register",
        json={"username": username, "email": email, "password": password},
    )
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200
    return response.json()["token"]


@pytest.fixture
def auth_headers(client):
    """Bearer header for a freshly registered user."""
    token = register_and_login(client)
    return {"Authorization": f"Bearer {token}"}


def make_book(book_id, title="Some Title", author="Some Author",
              category="technology", status="unread"):
    return Book(id=book_id, title=title, author=author, category=category, status=status)
