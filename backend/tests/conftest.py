"""
Shared fixtures: in-memory repositories patched into the app, a TestClient
and helpers to register users and create recipes through the API.
"""
import os
import sys

# Add backend to sys.path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

os.environ.setdefault("JWT_SECRET", "test-secret-for-pytest")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from contextlib import ExitStack
from unittest.mock import patch
from fastapi.testclient import TestClient

from fakes import (
    PNG_BYTES,
    InMemoryStore,
    FakeUserRepository,
    FakeRecipeRepository,
    FakeFavoriteRepository,
)


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def repositories(store):
    """Patch every module-level repository singleton with its in-memory fake"""
    users = FakeUserRepository(store)
    recipes = FakeRecipeRepository(store)
    favorites = FakeFavoriteRepository(store)

    targets = {
        "dependencies.user_repository": users,
        "routers.auth.user_repository": users,
        "services.recipes.recipe_repository": recipes,
        "services.favorites.recipe_repository": recipes,
        "services.favorites.favorite_repository": favorites,
    }
    with ExitStack() as stack:
        for target, fake in targets.items():
            stack.enter_context(patch(target, fake))
        yield {"users": users, "recipes": recipes, "favorites": favorites}


@pytest.fixture
def media_store(tmp_path):
    from services.media import LocalMediaStore
    return LocalMediaStore(str(tmp_path / "uploads"), max_bytes=5 * 1024 * 1024, max_label="5MB")


@pytest.fixture
def app(repositories, media_store):
    from server import app as fastapi_app
    from dependencies import get_media_store

    fastapi_app.dependency_overrides[get_media_store] = lambda: media_store
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    # Not used as a context manager: lifespan (database, HTTP client) stays off
    return TestClient(app)


@pytest.fixture
def register(client):
    """Register a user through the API; returns (auth headers, user dict)"""

    def _register(username="alice", email=None, password="secret123"):
        response = client.post("/register", json={
            "username": username,
            "email": email or f"{username}@example.com",
            "password": password,
        })
        assert response.status_code == 201, response.text
        body = response.json()
        return {"Authorization": f"Bearer {body['token']}"}, body["user"]

    return _register


@pytest.fixture
def create_recipe(client):
    """Create a recipe through the API as the given user; returns the recipe"""

    def _create(headers, name="Pancakes", ingredients="eggs, milk, flour",
                time_to_cook="20 min", steps="Mix well. Fry both sides."):
        response = client.post(
            "/recipes",
            headers=headers,
            data={"name": name, "ingredients": ingredients, "timeToCook": time_to_cook, "steps": steps},
            files={"image": ("pancakes.png", PNG_BYTES, "image/png")},
        )
        assert response.status_code == 200, response.text
        return response.json()["recipe"]

    return _create
