"""
Client session - the token and user of whoever is logged in
"""
from typing import Optional


class Session:
    """
    Explicit login state handed to every protected client call.

    Created by RecipeClient.login/register, refreshed by RecipeClient.me and
    emptied by logout.
    """

    def __init__(self, token: Optional[str] = None, user: Optional[dict] = None):
        self.token = token
        self.user = user or None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    @property
    def user_id(self) -> Optional[str]:
        return self.user.get("id") if self.user else None

    def auth_headers(self) -> dict:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    def clear(self):
        self.token = None
        self.user = None

    def __repr__(self):
        who = self.user.get("username") if self.user else None
        return f"Session(authenticated={self.is_authenticated}, user={who!r})"
