"""
Browse helpers - filtering, pagination and favorite bookkeeping over fetched lists
"""
import math
from typing import Iterable, List, Set

RECORDS_PER_PAGE = 4


def filter_recipes(recipes: Iterable[dict], search: str) -> List[dict]:
    """Recipes whose name contains the search text, case-insensitively"""
    needle = (search or "").lower()
    return [r for r in recipes if r.get("name") and needle in r["name"].lower()]


def page_count(total: int, per_page: int = RECORDS_PER_PAGE) -> int:
    return math.ceil(total / per_page)


def page_numbers(total: int, per_page: int = RECORDS_PER_PAGE) -> List[int]:
    """1..ceil(total / per_page); empty when there is nothing to show"""
    return list(range(1, page_count(total, per_page) + 1))


def paginate(records: List[dict], page: int, per_page: int = RECORDS_PER_PAGE) -> List[dict]:
    """Records on a 1-based page; pages past the end are empty"""
    if page < 1:
        return []
    last = page * per_page
    return records[last - per_page:last]


def favorite_ids(favorites: Iterable[dict]) -> Set[str]:
    """Recipe ids from a favorites list; recipeId is either a recipe object or a bare id"""
    ids = set()
    for favorite in favorites:
        recipe = favorite.get("recipeId")
        if isinstance(recipe, dict):
            ids.add(recipe["id"])
        elif recipe:
            ids.add(recipe)
    return ids


def apply_toggle(ids: Set[str], recipe_id: str, added: bool) -> Set[str]:
    """Favorite id set after a toggle response"""
    if added:
        return ids | {recipe_id}
    return ids - {recipe_id}


def visible_favorites(favorites: Iterable[dict]) -> List[dict]:
    """Favorites whose recipe still exists, as the recipe objects to display"""
    return [f["recipeId"] for f in favorites if isinstance(f.get("recipeId"), dict)]
