from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional, Union
from datetime import datetime


def _iso(v):
    if isinstance(v, datetime):
        return v.isoformat()
    return v


# Auth Models
class UserRegister(BaseModel):
    # Optional so missing fields are reported together by the handler
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None

class UserLogin(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None

class UserResponse(BaseModel):
    id: str
    username: str
    email: str

class AuthResponse(BaseModel):
    success: bool = True
    message: str
    token: str
    user: UserResponse


# Recipe Models
class RecipeResponse(BaseModel):
    """Recipe as sent to clients (camelCase keys, owner under "user")"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    ingredients: List[str]
    time_to_cook: str = Field(serialization_alias="timeToCook")
    steps: List[str]
    image: Optional[str] = None
    user_id: str = Field(serialization_alias="user")
    created_at: Optional[str] = Field(default=None, serialization_alias="createdAt")
    updated_at: Optional[str] = Field(default=None, serialization_alias="updatedAt")

    @field_validator('created_at', 'updated_at', mode='before')
    @classmethod
    def convert_datetime_to_string(cls, v):
        return _iso(v)


# Favorite Models
class ToggleFavoriteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    recipe_id: Optional[str] = Field(default=None, alias="recipeId")

class FavoriteResponse(BaseModel):
    """Favorite with recipeId populated to the full recipe when it still exists"""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str = Field(serialization_alias="userId")
    recipe_id: Union[RecipeResponse, str] = Field(serialization_alias="recipeId")
    created_at: Optional[str] = Field(default=None, serialization_alias="createdAt")

    @field_validator('created_at', mode='before')
    @classmethod
    def convert_datetime_to_string(cls, v):
        return _iso(v)


def serialize_recipe(recipe: dict) -> dict:
    """Repository row -> JSON-ready recipe dict"""
    return RecipeResponse(**recipe).model_dump(by_alias=True)


def serialize_favorite(favorite: dict) -> dict:
    """Repository row -> JSON-ready favorite dict; orphans keep the bare recipe id"""
    recipe = favorite.get("recipe")
    return FavoriteResponse(
        id=favorite["id"],
        user_id=favorite["user_id"],
        recipe_id=RecipeResponse(**recipe) if recipe else favorite["recipe_id"],
        created_at=favorite.get("created_at"),
    ).model_dump(by_alias=True)


def serialize_user(user: dict) -> dict:
    return UserResponse(id=user["id"], username=user["username"], email=user["email"]).model_dump()
