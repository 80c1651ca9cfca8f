"""
TastyBite API client - session handling, HTTP calls and browse helpers
"""
from .session import Session
from .api import RecipeClient, ClientError, NotLoggedIn, validate_registration
from .browse import (
    RECORDS_PER_PAGE,
    filter_recipes,
    paginate,
    page_numbers,
    favorite_ids,
    apply_toggle,
    visible_favorites,
)

__all__ = [
    "Session",
    "RecipeClient",
    "ClientError",
    "NotLoggedIn",
    "validate_registration",
    "RECORDS_PER_PAGE",
    "filter_recipes",
    "paginate",
    "page_numbers",
    "favorite_ids",
    "apply_toggle",
    "visible_favorites",
]
