"""
Favorites Router - toggle, list and remove favorites of the current user
"""
from typing import Optional

from fastapi import APIRouter, Depends, Request
from models import ToggleFavoriteRequest, serialize_favorite
from dependencies import get_current_user, get_current_user_for_list
from config import settings
from services import favorites as favorite_service
from utils.activity_logger import log_action
from utils.errors import APIError, handle_unexpected_error

router = APIRouter(prefix="/favorites", tags=["Favorites"])


@router.post("/toggle")
async def toggle_favorite(request: Request, body: Optional[ToggleFavoriteRequest] = None,
                          user: dict = Depends(get_current_user)):
    recipe_id = body.recipe_id if body else None
    outcome, record = await favorite_service.toggle_favorite(user["id"], recipe_id)

    if outcome == favorite_service.REMOVED:
        log_action(user, "recipe_unfavorited", request, target_type="recipe", target_id=recipe_id)
        return {"success": True, "message": "Removed from favorites"}

    log_action(user, "recipe_favorited", request, target_type="recipe", target_id=recipe_id)
    return {
        "success": True,
        "message": "Added to favorites",
        "data": serialize_favorite(record)
    }


@router.get("")
async def get_favorites(user: dict = Depends(get_current_user_for_list)):
    """Favorites with recipeId resolved to the recipe; the payload always carries a list"""
    try:
        favorites = await favorite_service.list_favorites(user["id"])
        data = [serialize_favorite(f) for f in favorites]
    except APIError:
        raise
    except Exception as e:
        handle_unexpected_error(e, "get_favorites", debug=settings.debug_mode, data=[])

    return {"success": True, "data": data}


@router.delete("/{recipe_id}")
async def remove_favorite(recipe_id: str, request: Request, user: dict = Depends(get_current_user)):
    await favorite_service.remove_favorite(user["id"], recipe_id)
    log_action(user, "favorite_removed", request, target_type="recipe", target_id=recipe_id)
    return {"success": True, "message": "Removed from favorites"}
