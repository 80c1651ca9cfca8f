"""
Recipe Repository - Handles all recipe-related database operations
"""
import time
from typing import Optional, List, Tuple
from .base_repository import BaseRepository, parse_rowcount
from ..connection import transaction
from utils.debug import log_db_query


class RecipeRepository(BaseRepository):
    """Repository for recipe operations"""

    JSON_FIELDS = ["ingredients", "steps"]

    def __init__(self):
        super().__init__("recipes")

    async def find_by_id(self, recipe_id: str) -> Optional[dict]:
        """Find recipe by ID"""
        return await self.find_one({"id": recipe_id})

    async def find_all(self, limit: int = None) -> List[dict]:
        """All recipes, newest first"""
        return await self.find_many(order_by="created_at", order_dir="DESC", limit=limit)

    async def find_by_owner(self, user_id: str) -> List[dict]:
        """Recipes created by a user, newest first; empty list when none"""
        return await self.find_many(
            {"user_id": user_id},
            order_by="created_at",
            order_dir="DESC"
        )

    async def create(self, recipe_data: dict) -> dict:
        """Create a new recipe"""
        return await self.insert(recipe_data)

    async def update_recipe(self, recipe_id: str, data: dict) -> Optional[dict]:
        """Update recipe fields; returns the updated record or None if it vanished"""
        return await self.update({"id": recipe_id}, data)

    async def delete_with_favorites(self, recipe_id: str) -> Tuple[int, int]:
        """
        Delete a recipe and every favorite referencing it in one transaction.

        Favorites go first so that no favorite can ever point at a missing
        recipe, even if the transaction were split.

        Returns:
            (favorites_removed, recipes_removed)
        """
        start_time = time.time()
        async with transaction() as conn:
            favorites_result = await conn.execute(
                "DELETE FROM favorites WHERE recipe_id = $1", recipe_id
            )
            recipe_result = await conn.execute(
                "DELETE FROM recipes WHERE id = $1", recipe_id
            )

        favorites_removed = parse_rowcount(favorites_result)
        recipes_removed = parse_rowcount(recipe_result)
        log_db_query("CASCADE_DELETE", self.table_name, (time.time() - start_time) * 1000,
                     rows_affected=favorites_removed + recipes_removed,
                     query_params={"id": recipe_id})
        return favorites_removed, recipes_removed


# Singleton instance
recipe_repository = RecipeRepository()
