# Repository layer for PostgreSQL database operations
from .user_repository import UserRepository
from .recipe_repository import RecipeRepository
from .favorite_repository import FavoriteRepository, ADDED, REMOVED

__all__ = [
    "UserRepository",
    "RecipeRepository",
    "FavoriteRepository",
    "ADDED",
    "REMOVED",
]
