"""Persistence helpers for ``User`` records.

All functions take an explicitly passed :class:`AsyncSession`; route and
auth code never build SQL statements themselves.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from user_service.errors import EmailAlreadyRegistered, UserNotFound
from user_service.models import User

logger = logging.getLogger(__name__)

MIN_USER_ID = 1
MAX_USER_ID = 2**31 - 1


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    stmt = select(User).where(User.email == email)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: int) -> Optional[User]:
    # Ids outside the INTEGER column range cannot exist.
    if not MIN_USER_ID <= user_id <= MAX_USER_ID:
        return None
    return await db.get(User, user_id)


async def list_users(db: AsyncSession) -> List[User]:
    result = await db.execute(select(User).order_by(User.id))
    return list(result.scalars().all())


async def create_user(
    db: AsyncSession, name: str, email: str, hashed_password: str
) -> User:
    """Persist a new user whose password has already been hashed.

    Raises :class:`EmailAlreadyRegistered` if the email is taken, including
    when a concurrent registration wins the unique constraint at commit.
    """
    if await get_user_by_email(db, email) is not None:
        raise EmailAlreadyRegistered()

    user = User(name=name, email=email, password=hashed_password)
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise EmailAlreadyRegistered() from exc
    await db.refresh(user)
    logger.info("Created user id=%s", user.id)
    return user


async def delete_user(db: AsyncSession, user_id: int) -> None:
    """Delete the user with ``user_id``.

    Raises :class:`UserNotFound` if there is no such user; nothing is written.
    """
    user = await get_user_by_id(db, user_id)
    if user is None:
        raise UserNotFound()
    await db.delete(user)
    await db.commit()
    logger.info("Deleted user id=%s", user_id)
