"""
Favorite Service - toggle, list and remove (user, recipe) favorites
"""
from typing import List, Optional, Tuple

from database.repositories.favorite_repository import favorite_repository, ADDED, REMOVED
from database.repositories.recipe_repository import recipe_repository
from utils.debug import Loggers
from utils.errors import ValidationError, NotFoundError


async def toggle_favorite(user_id: str, recipe_id: Optional[str]) -> Tuple[str, Optional[dict]]:
    """
    Add the favorite if absent, remove it if present.

    Returns:
        (ADDED, new_favorite) or (REMOVED, removed_favorite)
    """
    if not recipe_id:
        raise ValidationError("Recipe ID is required")

    if not await recipe_repository.find_by_id(recipe_id):
        raise NotFoundError("Recipe")

    outcome, record = await favorite_repository.toggle(user_id, recipe_id)
    Loggers.favorites.info(f"Favorite {outcome}", user_id=user_id, recipe_id=recipe_id)
    return outcome, record


async def list_favorites(user_id: str) -> List[dict]:
    """Favorites with their recipes resolved; orphans keep the bare recipe id"""
    favorites = await favorite_repository.find_by_user_with_recipes(user_id)
    for favorite in favorites:
        if favorite.get("recipe") is None:
            Loggers.favorites.warning("Orphan favorite: recipe missing", favorite_id=favorite["id"],
                                      recipe_id=favorite["recipe_id"], user_id=user_id)
    return favorites


async def remove_favorite(user_id: str, recipe_id: str) -> None:
    removed = await favorite_repository.remove(user_id, recipe_id)
    if not removed:
        raise NotFoundError("Favorite")
    Loggers.favorites.info("Favorite removed", user_id=user_id, recipe_id=recipe_id)


__all__ = ["toggle_favorite", "list_favorites", "remove_favorite", "ADDED", "REMOVED"]
