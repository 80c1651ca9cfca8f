"""
Recipe Service - parsing, ownership checks and cascade delete

Routers pass raw form values in; everything returned is a repository dict
ready for models.serialize_recipe.
"""
import uuid
from typing import List, Optional

from fastapi import UploadFile

from database.repositories.base_repository import utc_now
from database.repositories.recipe_repository import recipe_repository
from utils.debug import Loggers, DebugContext
from utils.errors import ValidationError, NotFoundError, ForbiddenError


def parse_ingredients(raw: str) -> List[str]:
    """'eggs, milk, flour' -> ['eggs', 'milk', 'flour']"""
    return [item.strip() for item in raw.split(",") if item.strip()]


def parse_steps(raw: str) -> List[str]:
    """'Mix well. Bake for 20 min.' -> ['Mix well', 'Bake for 20 min']"""
    return [item.strip() for item in raw.split(".") if item.strip()]


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def _has_file(upload: Optional[UploadFile]) -> bool:
    return upload is not None and bool(upload.filename)


async def create_recipe(
    owner_id: str,
    name: Optional[str],
    ingredients: Optional[str],
    time_to_cook: Optional[str],
    steps: Optional[str],
    image: Optional[UploadFile],
    media_store
) -> dict:
    """Validate, upload the image, then persist; the image is only stored for a complete request"""
    if any(_is_blank(v) for v in (name, ingredients, time_to_cook, steps)) or not _has_file(image):
        raise ValidationError("Missing required fields")

    image_url = await media_store.save(image)

    now = utc_now()
    recipe_doc = {
        "id": str(uuid.uuid4()),
        "name": name.strip(),
        "ingredients": parse_ingredients(ingredients),
        "time_to_cook": time_to_cook.strip(),
        "steps": parse_steps(steps),
        "image": image_url,
        "user_id": owner_id,
        "created_at": now,
        "updated_at": now,
    }
    try:
        created = await recipe_repository.create(recipe_doc)
    except Exception:
        await media_store.discard(image_url)
        raise
    Loggers.recipes.info("Recipe created", recipe_id=created["id"], user_id=owner_id)
    return created


async def list_recipes() -> List[dict]:
    return await recipe_repository.find_all()


async def get_recipe(recipe_id: str) -> dict:
    recipe = await recipe_repository.find_by_id(recipe_id)
    if not recipe:
        raise NotFoundError("Recipe")
    return recipe


async def list_recipes_by_owner(owner_id: str) -> List[dict]:
    return await recipe_repository.find_by_owner(owner_id) or []


async def _get_owned_recipe(recipe_id: str, user_id: str, action: str) -> dict:
    recipe = await get_recipe(recipe_id)
    if recipe["user_id"] != user_id:
        Loggers.recipes.warning("Ownership check failed", recipe_id=recipe_id,
                                user_id=user_id, owner_id=recipe["user_id"], action=action)
        raise ForbiddenError(f"Unauthorized to {action} this recipe")
    return recipe


async def update_recipe(
    recipe_id: str,
    user_id: str,
    media_store,
    name: Optional[str] = None,
    ingredients: Optional[str] = None,
    time_to_cook: Optional[str] = None,
    steps: Optional[str] = None,
    image: Optional[UploadFile] = None
) -> dict:
    """
    Owner-only partial update.

    Fields left as None (or blank) keep their stored value. The image is
    replaced only when a new file is supplied.
    """
    existing = await _get_owned_recipe(recipe_id, user_id, "update")

    updates = {}
    if not _is_blank(name):
        updates["name"] = name.strip()
    if not _is_blank(ingredients):
        updates["ingredients"] = parse_ingredients(ingredients)
    if not _is_blank(time_to_cook):
        updates["time_to_cook"] = time_to_cook.strip()
    if not _is_blank(steps):
        updates["steps"] = parse_steps(steps)
    if _has_file(image):
        updates["image"] = await media_store.save(image)

    if not updates:
        return existing

    updates["updated_at"] = utc_now()
    try:
        updated = await recipe_repository.update_recipe(recipe_id, updates)
    except Exception:
        if "image" in updates:
            await media_store.discard(updates["image"])
        raise
    if not updated:
        # Deleted between the ownership check and the update
        raise NotFoundError("Recipe")

    Loggers.recipes.info("Recipe updated", recipe_id=recipe_id, fields=sorted(updates))
    return updated


async def delete_recipe(recipe_id: str, user_id: str) -> int:
    """Owner-only delete; returns how many favorites were removed with the recipe"""
    await _get_owned_recipe(recipe_id, user_id, "delete")

    async with DebugContext("cascade_delete", logger=Loggers.recipes, recipe_id=recipe_id):
        favorites_removed, recipes_removed = await recipe_repository.delete_with_favorites(recipe_id)
    if not recipes_removed:
        raise NotFoundError("Recipe")

    Loggers.recipes.info("Recipe deleted", recipe_id=recipe_id, favorites_removed=favorites_removed)
    return favorites_removed
