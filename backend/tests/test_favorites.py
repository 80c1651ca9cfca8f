"""
Favorites: toggle semantics, cascade on recipe delete and orphan handling
"""
import pytest
from unittest.mock import AsyncMock, patch

from services import favorites as favorite_service
from services import recipes as recipe_service
from utils.errors import ValidationError, NotFoundError
from fakes import FailingRepository


def seed_recipe(store, recipe_id="r1", owner="owner-1"):
    store.recipes[recipe_id] = {
        "id": recipe_id, "name": "Soup", "ingredients": ["water"], "time_to_cook": "10 min",
        "steps": ["Boil"], "image": "/uploads/soup.png", "user_id": owner,
        "created_at": store.next_timestamp(), "updated_at": None,
    }


class TestToggleService:
    @pytest.mark.asyncio
    async def test_toggle_twice_restores_original_state(self, repositories, store):
        seed_recipe(store)

        first, record = await favorite_service.toggle_favorite("u1", "r1")
        assert first == favorite_service.ADDED
        assert record["recipe_id"] == "r1"
        assert len(store.favorites) == 1

        second, _ = await favorite_service.toggle_favorite("u1", "r1")
        assert second == favorite_service.REMOVED
        assert store.favorites == {}

    @pytest.mark.asyncio
    async def test_never_more_than_one_favorite_per_pair(self, repositories, store):
        seed_recipe(store)
        for _ in range(5):
            await favorite_service.toggle_favorite("u1", "r1")

        pairs = [(f["user_id"], f["recipe_id"]) for f in store.favorites.values()]
        assert pairs == [("u1", "r1")]

    @pytest.mark.asyncio
    async def test_recipe_id_required(self, repositories):
        with pytest.raises(ValidationError) as exc:
            await favorite_service.toggle_favorite("u1", "")
        assert exc.value.message == "Recipe ID is required"

    @pytest.mark.asyncio
    async def test_unknown_recipe(self, repositories, store):
        with pytest.raises(NotFoundError):
            await favorite_service.toggle_favorite("u1", "missing")
        assert store.favorites == {}


class TestCascade:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("n_favorites", [0, 1, 3])
    async def test_delete_removes_every_favorite_of_recipe(self, repositories, store, n_favorites):
        seed_recipe(store, "r1")
        seed_recipe(store, "r2")
        for i in range(n_favorites):
            await favorite_service.toggle_favorite(f"user-{i}", "r1")
        await favorite_service.toggle_favorite("user-0", "r2")

        removed = await recipe_service.delete_recipe("r1", "owner-1")

        assert removed == n_favorites
        assert store.favorites_for_recipe("r1") == []
        assert len(store.favorites_for_recipe("r2")) == 1
        assert "r1" not in store.recipes


class TestListAndRemove:
    @pytest.mark.asyncio
    async def test_list_newest_first_with_recipes(self, repositories, store):
        seed_recipe(store, "r1")
        seed_recipe(store, "r2")
        await favorite_service.toggle_favorite("u1", "r1")
        await favorite_service.toggle_favorite("u1", "r2")

        favorites = await favorite_service.list_favorites("u1")

        assert [f["recipe_id"] for f in favorites] == ["r2", "r1"]
        assert favorites[0]["recipe"]["name"] == "Soup"

    @pytest.mark.asyncio
    async def test_orphan_logged_and_kept_bare(self, repositories, store):
        store.favorites["f1"] = {"id": "f1", "user_id": "u1", "recipe_id": "gone",
                                 "created_at": store.next_timestamp()}

        with patch("services.favorites.Loggers") as loggers:
            favorites = await favorite_service.list_favorites("u1")

        assert favorites[0]["recipe"] is None
        assert favorites[0]["recipe_id"] == "gone"
        loggers.favorites.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_remove_missing_favorite(self, repositories):
        with pytest.raises(NotFoundError) as exc:
            await favorite_service.remove_favorite("u1", "r1")
        assert exc.value.message == "Favorite not found"


class TestFavoritesApi:
    def test_requires_token(self, client):
        response = client.post("/favorites/toggle", json={"recipeId": "r1"})
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_toggle_messages(self, client, register, create_recipe):
        headers, _ = register("alice")
        recipe = create_recipe(headers)

        added = client.post("/favorites/toggle", headers=headers, json={"recipeId": recipe["id"]})
        assert added.status_code == 200
        assert added.json()["message"] == "Added to favorites"
        assert added.json()["data"]["recipeId"] == recipe["id"]

        removed = client.post("/favorites/toggle", headers=headers, json={"recipeId": recipe["id"]})
        assert removed.json() == {"success": True, "message": "Removed from favorites"}

    def test_toggle_without_recipe_id(self, client, register):
        headers, _ = register("alice")

        response = client.post("/favorites/toggle", headers=headers, json={})
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Recipe ID is required"}

    def test_toggle_without_body(self, client, register):
        headers, _ = register("alice")

        response = client.post("/favorites/toggle", headers=headers)
        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Recipe ID is required"}

    def test_list_populates_recipe(self, client, register, create_recipe):
        headers, user = register("alice")
        recipe = create_recipe(headers, name="Waffles")
        client.post("/favorites/toggle", headers=headers, json={"recipeId": recipe["id"]})

        body = client.get("/favorites", headers=headers).json()

        assert body["success"] is True
        favorite = body["data"][0]
        assert favorite["userId"] == user["id"]
        assert favorite["recipeId"]["name"] == "Waffles"
        assert favorite["recipeId"]["timeToCook"] == "20 min"

    def test_delete_favorite(self, client, register, create_recipe):
        headers, _ = register("alice")
        recipe = create_recipe(headers)
        client.post("/favorites/toggle", headers=headers, json={"recipeId": recipe["id"]})

        first = client.delete(f"/favorites/{recipe['id']}", headers=headers)
        second = client.delete(f"/favorites/{recipe['id']}", headers=headers)

        assert first.status_code == 200
        assert second.status_code == 404
        assert second.json()["message"] == "Favorite not found"

    def test_list_returns_array_on_store_failure(self, client, register):
        headers, _ = register("alice")

        with patch("services.favorites.favorite_repository", FailingRepository()):
            response = client.get("/favorites", headers=headers)

        assert response.status_code == 500
        assert response.json()["data"] == []
        assert response.json()["success"] is False

    def test_list_returns_array_when_user_lookup_fails(self, client, register, repositories):
        headers, _ = register("alice")
        repositories["users"].find_by_id = AsyncMock(side_effect=ConnectionError("db down"))

        response = client.get("/favorites", headers=headers)

        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Server Error", "data": []}

    def test_deleted_recipe_disappears_from_other_users_favorites(self, client, register, create_recipe):
        alice, _ = register("alice")
        bob, _ = register("bob")
        recipe = create_recipe(alice)

        toggle = client.post("/favorites/toggle", headers=bob, json={"recipeId": recipe["id"]})
        assert toggle.json()["message"] == "Added to favorites"

        deleted = client.delete(f"/recipes/{recipe['id']}", headers=alice)
        assert deleted.status_code == 200
        assert deleted.json()["message"] == "Recipe deleted successfully and removed from favorites"

        favorites = client.get("/favorites", headers=bob).json()["data"]
        assert favorites == []
