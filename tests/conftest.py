"""
Shared Test Fixtures

MongoDB is replaced by an in-memory mongomock database injected through
app.db.mongodb.set_mongo_db, so services and routes run their real queries.
The hosted image service is replaced by a MagicMock.
"""

import pytest
from unittest.mock import MagicMock, patch
from typing import Dict, Any

import mongomock
from fastapi.testclient import TestClient

from app.db.mongodb import set_mongo_db
from app.main import app


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture
def mongo_db():
    """
    Fresh in-memory database for each test.

    Usage:
        def test_something(mongo_db):
            mongo_db["users"].insert_one({...})
    """
    db = mongomock.MongoClient()["student_collab_test"]
    set_mongo_db(db)
    yield db
    set_mongo_db(None)


# =============================================================================
# HTTP Fixtures
# =============================================================================

@pytest.fixture
def client(mongo_db):
    """TestClient bound to the mongomock database."""
    return TestClient(app)


@pytest.fixture
def register(client):
    """
    Factory that registers a user over the API.

    Returns a dict with the user document, token and ready-made auth headers.
    """
    def _register(username: str, **overrides) -> Dict[str, Any]:
        payload = {
            "username": username,
            "email": f"{username}@uni.edu",
            "password": "secret123",
            "full_name": username.title(),
            "university": "State University",
            "major": "Computer Science",
        }
        payload.update(overrides)
        response = client.post("/api/auth/register", json=payload)
        assert response.status_code == 201, response.text
        body = response.json()
        return {
            "user": body["user"],
            "id": body["user"]["_id"],
            "token": body["token"],
            "headers": {"Authorization": f"Bearer {body['token']}"},
        }
    return _register


@pytest.fixture
def alice(register):
    return register("alice")


@pytest.fixture
def bob(register):
    return register("bob")


@pytest.fixture
def mock_storage():
    """Replace the Cloudinary-backed storage service used by routes."""
    storage = MagicMock()
    storage.upload_post_images.side_effect = lambda images: [
        {"filename": img.filename, "url": f"https://cdn.test/{img.filename}", "type": img.content_type}
        for img in images
    ]
    storage.upload_avatar.return_value = "https://cdn.test/avatar.png"

    with patch("app.api.routes.post_routes.get_storage_service", return_value=storage), \
            patch("app.api.routes.user_routes.get_storage_service", return_value=storage):
        yield storage


# =============================================================================
# Data Factories
# =============================================================================

@pytest.fixture
def create_post(client):
    """Factory that creates a post over the API and returns it."""
    def _create(owner: Dict[str, Any], **overrides) -> Dict[str, Any]:
        form = {
            "title": "Linear algebra notes",
            "content": "Eigenvalues and eigenvectors, week 3",
            "type": "note",
            "category": "academic",
            "tags": "math, linear-algebra",
        }
        form.update(overrides)
        response = client.post("/api/posts", data=form, headers=owner["headers"])
        assert response.status_code == 201, response.text
        return response.json()["post"]
    return _create
