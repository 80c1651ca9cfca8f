"""
User Repository - Handles all user-related database operations
"""
from typing import Optional
from .base_repository import BaseRepository


class UserRepository(BaseRepository):
    """Repository for user operations"""

    def __init__(self):
        super().__init__("users")

    async def find_by_id(self, user_id: str, exclude_password: bool = True) -> Optional[dict]:
        """Find user by ID"""
        exclude = ["password"] if exclude_password else None
        return await self.find_one({"id": user_id}, exclude_fields=exclude)

    async def find_by_email(self, email: str, include_password: bool = False) -> Optional[dict]:
        """Find user by email"""
        exclude = None if include_password else ["password"]
        return await self.find_one({"email": email}, exclude_fields=exclude)

    async def find_by_email_or_username(self, email: str, username: str) -> Optional[dict]:
        """Find the first user holding either the email or the username"""
        pool = await self._get_db()
        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT id, username, email FROM users WHERE email = $1 OR username = $2 LIMIT 1",
                email, username
            )
        return self._process_row(row)

    async def create(self, user_data: dict) -> dict:
        """Create a new user; the stored password hash is not returned"""
        created = await self.insert(user_data)
        created.pop("password", None)
        return created


# Singleton instance
user_repository = UserRepository()
