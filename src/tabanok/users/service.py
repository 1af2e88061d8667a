"""User identity lookups used by the gamification core."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import exists, select

from tabanok.db.models import User
from tabanok.gamification.exceptions import UserNotFoundError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


async def get_user(db: AsyncSession, user_id: str) -> User:
    """
    Fetch a user by ID.

    Raises:
        UserNotFoundError: If no such user exists.
    """
    user = await db.get(User, user_id)
    if user is None:
        raise UserNotFoundError(user_id)
    return user


async def user_exists(db: AsyncSession, user_id: str) -> bool:
    """Check whether a user ID is known."""
    result = await db.execute(select(exists().where(User.id == user_id)))
    return bool(result.scalar())


async def create_user(
    db: AsyncSession,
    email: str | None = None,
    display_name: str | None = None,
    user_id: str | None = None,
) -> User:
    """Insert a user row. Used by seeding and tests; accounts are owned by the auth service."""
    user = User(email=email, display_name=display_name)
    if user_id is not None:
        user.id = user_id
    db.add(user)
    await db.flush()
    return user
