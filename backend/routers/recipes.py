"""
Recipes Router - CRUD operations with image upload
"""
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from models import serialize_recipe
from dependencies import get_current_user, get_current_user_for_list, get_media_store
from config import settings
from services import recipes as recipe_service
from utils.activity_logger import log_action
from utils.errors import APIError, handle_unexpected_error
from typing import Optional

router = APIRouter(tags=["Recipes"])


@router.post("/recipes")
async def create_recipe(
    request: Request,
    name: Optional[str] = Form(None),
    ingredients: Optional[str] = Form(None),
    time_to_cook: Optional[str] = Form(None, alias="timeToCook"),
    steps: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    user: dict = Depends(get_current_user),
    media_store=Depends(get_media_store)
):
    recipe = await recipe_service.create_recipe(
        owner_id=user["id"],
        name=name,
        ingredients=ingredients,
        time_to_cook=time_to_cook,
        steps=steps,
        image=image,
        media_store=media_store
    )

    log_action(
        user, "recipe_created", request,
        target_type="recipe",
        target_id=recipe["id"],
        details={"name": recipe["name"]}
    )

    return {
        "success": True,
        "message": "Recipe created successfully",
        "recipe": serialize_recipe(recipe)
    }


@router.get("/recipes")
async def get_recipes():
    """All recipes, newest first; no authentication required"""
    recipes = await recipe_service.list_recipes()
    return {"success": True, "data": [serialize_recipe(r) for r in recipes]}


@router.get("/recipes/{recipe_id}")
async def get_recipe(recipe_id: str):
    recipe = await recipe_service.get_recipe(recipe_id)
    return {"success": True, "data": serialize_recipe(recipe)}


@router.put("/recipes/{recipe_id}")
async def update_recipe(
    recipe_id: str,
    request: Request,
    name: Optional[str] = Form(None),
    ingredients: Optional[str] = Form(None),
    time_to_cook: Optional[str] = Form(None, alias="timeToCook"),
    steps: Optional[str] = Form(None),
    image: Optional[UploadFile] = File(None),
    user: dict = Depends(get_current_user),
    media_store=Depends(get_media_store)
):
    recipe = await recipe_service.update_recipe(
        recipe_id,
        user["id"],
        media_store,
        name=name,
        ingredients=ingredients,
        time_to_cook=time_to_cook,
        steps=steps,
        image=image
    )

    log_action(user, "recipe_updated", request, target_type="recipe", target_id=recipe_id)

    return {
        "success": True,
        "message": "Recipe updated successfully",
        "data": serialize_recipe(recipe)
    }


@router.delete("/recipes/{recipe_id}")
async def delete_recipe(recipe_id: str, request: Request, user: dict = Depends(get_current_user)):
    favorites_removed = await recipe_service.delete_recipe(recipe_id, user["id"])

    log_action(
        user, "recipe_deleted", request,
        target_type="recipe",
        target_id=recipe_id,
        details={"favorites_removed": favorites_removed}
    )

    return {
        "success": True,
        "message": "Recipe deleted successfully and removed from favorites"
    }


@router.get("/my-recipes")
async def get_my_recipes(user: dict = Depends(get_current_user_for_list)):
    """Recipes created by the caller; the payload always carries a list"""
    try:
        recipes = await recipe_service.list_recipes_by_owner(user["id"])
        data = [serialize_recipe(r) for r in recipes]
    except APIError:
        raise
    except Exception as e:
        handle_unexpected_error(e, "get_my_recipes", debug=settings.debug_mode, data=[])

    return {"success": True, "data": data}
