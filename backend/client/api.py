"""
RecipeClient - httpx client for the TastyBite API

Usage:
    with RecipeClient("http://localhost:5000") as client:
        session = client.login("cook@example.com", "secret1")
        recipe = client.create_recipe(session, "Pancakes", "eggs, milk, flour", "20 min",
                                      "Mix well. Fry.", image=("pancakes.png", png_bytes))
        added, _ = client.toggle_favorite(session, recipe["id"])
"""
import logging
import re
from typing import List, Optional, Tuple

import httpx

from .session import Session

logger = logging.getLogger("tastybite.client")

EMAIL_REGEX = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


class ClientError(Exception):
    """A request failed; status_code is None for checks done before sending"""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.body = body or {}


class NotLoggedIn(ClientError):
    """A protected call was attempted without a logged-in session"""

    def __init__(self, message: str = "Please login to continue"):
        super().__init__(message, status_code=None)


def validate_registration(username: Optional[str], email: Optional[str], password: Optional[str],
                          confirm_password: Optional[str]) -> Optional[str]:
    """First problem with the registration form, or None when it can be submitted"""
    if not username or not email or not password or not confirm_password:
        return "All fields are required"
    if not EMAIL_REGEX.match(email.lower()):
        return "Please enter a valid email"
    if password != confirm_password:
        return "Passwords do not match"
    return None


class RecipeClient:
    """One method per API endpoint; non-2xx responses raise ClientError"""

    def __init__(self, base_url: str = "http://localhost:5000",
                 transport: Optional[httpx.BaseTransport] = None, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self._http = httpx.Client(base_url=self.base_url, transport=transport, timeout=timeout)

    def close(self):
        self._http.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def _request(self, method: str, path: str, session: Optional[Session] = None,
                 auth: bool = False, **kwargs) -> dict:
        headers = {}
        if auth:
            if session is None or not session.is_authenticated:
                raise NotLoggedIn()
            headers.update(session.auth_headers())

        try:
            response = self._http.request(method, path, headers=headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {type(e).__name__}: {e}")
            raise ClientError(f"Could not reach server: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error:
            message = body.get("message") if isinstance(body, dict) else None
            logger.warning(f"{method} {path} -> {response.status_code}: {message}")
            raise ClientError(message or f"Request failed ({response.status_code})",
                              status_code=response.status_code,
                              body=body if isinstance(body, dict) else {})
        return body

    # Auth

    def register(self, username: str, email: str, password: str,
                 confirm_password: Optional[str] = None) -> Session:
        if confirm_password is None:
            confirm_password = password
        error = validate_registration(username, email, password, confirm_password)
        if error:
            raise ClientError(error)

        body = self._request("POST", "/register",
                             json={"username": username, "email": email, "password": password})
        return Session(token=body["token"], user=body["user"])

    def login(self, email: str, password: str) -> Session:
        body = self._request("POST", "/login", json={"email": email, "password": password})
        return Session(token=body["token"], user=body["user"])

    def me(self, session: Session) -> Session:
        """Refresh session.user from the server"""
        body = self._request("GET", "/me", session=session, auth=True)
        session.user = body["user"]
        return session

    def logout(self, session: Session) -> None:
        session.clear()

    # Recipes

    def list_recipes(self) -> List[dict]:
        return self._request("GET", "/recipes").get("data", [])

    def get_recipe(self, recipe_id: str) -> dict:
        return self._request("GET", f"/recipes/{recipe_id}")["data"]

    def my_recipes(self, session: Session) -> List[dict]:
        return self._request("GET", "/my-recipes", session=session, auth=True).get("data", [])

    def create_recipe(self, session: Session, name: str, ingredients: str, time_to_cook: str,
                      steps: str, image: Tuple) -> dict:
        """image is an httpx file tuple, e.g. ("cake.png", data, "image/png")"""
        form = {"name": name, "ingredients": ingredients, "timeToCook": time_to_cook, "steps": steps}
        body = self._request("POST", "/recipes", session=session, auth=True,
                             data=form, files={"image": image})
        return body["recipe"]

    def update_recipe(self, session: Session, recipe_id: str, name: Optional[str] = None,
                      ingredients: Optional[str] = None, time_to_cook: Optional[str] = None,
                      steps: Optional[str] = None, image: Optional[Tuple] = None) -> dict:
        form = {
            key: value for key, value in (
                ("name", name),
                ("ingredients", ingredients),
                ("timeToCook", time_to_cook),
                ("steps", steps),
            ) if value is not None
        }
        files = {"image": image} if image else None
        body = self._request("PUT", f"/recipes/{recipe_id}", session=session, auth=True,
                             data=form, files=files)
        return body["data"]

    def delete_recipe(self, session: Session, recipe_id: str) -> str:
        return self._request("DELETE", f"/recipes/{recipe_id}", session=session, auth=True)["message"]

    # Favorites

    def toggle_favorite(self, session: Session, recipe_id: str) -> Tuple[bool, Optional[dict]]:
        """Returns (True, favorite) when added, (False, None) when removed"""
        body = self._request("POST", "/favorites/toggle", session=session, auth=True,
                             json={"recipeId": recipe_id})
        if body.get("message") == "Removed from favorites":
            return False, None
        return True, body.get("data")

    def list_favorites(self, session: Session) -> List[dict]:
        return self._request("GET", "/favorites", session=session, auth=True).get("data", [])

    def remove_favorite(self, session: Session, recipe_id: str) -> None:
        self._request("DELETE", f"/favorites/{recipe_id}", session=session, auth=True)
