"""
Favorite Repository - (user, recipe) favorite pairs
"""
import time
import uuid
from typing import Optional, List, Tuple
from .base_repository import BaseRepository, utc_now
from .recipe_repository import recipe_repository
from utils.debug import log_db_query

ADDED = "added"
REMOVED = "removed"

# Recipe columns joined into favorite rows, prefixed to avoid clashing with favorites.*
_RECIPE_COLUMNS = ["id", "name", "ingredients", "time_to_cook", "steps", "image",
                   "user_id", "created_at", "updated_at"]


class FavoriteRepository(BaseRepository):
    """Repository for favorite operations"""

    def __init__(self):
        super().__init__("favorites")

    async def toggle(self, user_id: str, recipe_id: str) -> Tuple[str, Optional[dict]]:
        """
        Remove the favorite if present, otherwise create it.

        Each branch is one atomic statement; the UNIQUE (user_id, recipe_id)
        constraint keeps at most one row per pair under concurrent toggles.

        Returns:
            (ADDED, new_record) or (REMOVED, removed_record); the removed record
            is None when a concurrent toggle deleted the pair mid-way
        """
        start_time = time.time()
        pool = await self._get_db()
        async with pool.acquire() as conn:
            removed = await conn.fetchrow(
                "DELETE FROM favorites WHERE user_id = $1 AND recipe_id = $2 RETURNING *",
                user_id, recipe_id
            )
            if removed is not None:
                log_db_query("TOGGLE_DELETE", self.table_name, (time.time() - start_time) * 1000,
                             rows_affected=1, query_params={"user_id": user_id, "recipe_id": recipe_id})
                return REMOVED, self._process_row(removed)

            added = await conn.fetchrow(
                """
                INSERT INTO favorites (id, user_id, recipe_id, created_at)
                VALUES ($1, $2, $3, $4)
                ON CONFLICT (user_id, recipe_id) DO NOTHING
                RETURNING *
                """,
                str(uuid.uuid4()), user_id, recipe_id, utc_now()
            )
            if added is None:
                # A concurrent toggle inserted the pair first
                added = await conn.fetchrow(
                    "SELECT * FROM favorites WHERE user_id = $1 AND recipe_id = $2",
                    user_id, recipe_id
                )
            if added is None:
                # Removed again by another toggle before it could be read back
                log_db_query("TOGGLE_DELETE", self.table_name, (time.time() - start_time) * 1000,
                             rows_affected=0, query_params={"user_id": user_id, "recipe_id": recipe_id})
                return REMOVED, None

        log_db_query("TOGGLE_INSERT", self.table_name, (time.time() - start_time) * 1000,
                     rows_affected=1, query_params={"user_id": user_id, "recipe_id": recipe_id})
        return ADDED, self._process_row(added)

    async def find_by_user_with_recipes(self, user_id: str) -> List[dict]:
        """
        Favorites of a user, newest first, each with its recipe joined in.

        The "recipe" key is None when the referenced recipe no longer exists.
        """
        start_time = time.time()
        recipe_select = ", ".join(f"r.{col} AS r_{col}" for col in _RECIPE_COLUMNS)
        query = f"""
            SELECT f.id, f.user_id, f.recipe_id, f.created_at, {recipe_select}
            FROM favorites f
            LEFT JOIN recipes r ON r.id = f.recipe_id
            WHERE f.user_id = $1
            ORDER BY f.created_at DESC
        """
        pool = await self._get_db()
        async with pool.acquire() as conn:
            rows = await conn.fetch(query, user_id)

        log_db_query("SELECT_JOIN", self.table_name, (time.time() - start_time) * 1000,
                     rows_affected=len(rows), query_params={"user_id": user_id})

        results = []
        for row in rows:
            data = dict(row)
            favorite = {
                "id": data["id"],
                "user_id": data["user_id"],
                "recipe_id": data["recipe_id"],
                "created_at": data["created_at"],
                "recipe": None,
            }
            if data["r_id"] is not None:
                recipe = {col: data[f"r_{col}"] for col in _RECIPE_COLUMNS}
                favorite["recipe"] = recipe_repository._deserialize_json_fields(recipe)
            results.append(favorite)
        return results

    async def remove(self, user_id: str, recipe_id: str) -> int:
        """Delete the favorite for a pair; returns the number removed (0 or 1)"""
        return await self.delete({"user_id": user_id, "recipe_id": recipe_id})


# Singleton instance
favorite_repository = FavoriteRepository()
