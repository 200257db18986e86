"""
Dog Spotter Backend — User Service
===================================

What:  Profile reads and updates, password change, account deletion and the
       per-user sighting counters.
Who:   /api/users routes.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import case, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dogspotter.exceptions import NotFoundError, ValidationError
from dogspotter.models.dog import Dog
from dogspotter.models.user import User
from dogspotter.schemas.user import UserProfile, UserStats
from dogspotter.security import hash_password, verify_password

logger = logging.getLogger(__name__)

STATUS_FOUND = "found"
STATUS_LOST = "lost"


class UserService:
    """
    Business logic for accounts.

    Deleting a user removes their dogs through the `ON DELETE CASCADE`
    foreign key.
    """

    async def _get_user(self, db: AsyncSession, user_id: UUID) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="User", resource_id=str(user_id))
        return user

    async def get_profile(self, db: AsyncSession, user_id: UUID) -> UserProfile:
        """Profile with the number of dogs the user has reported."""
        user = await self._get_user(db, user_id)
        count = await db.execute(
            select(func.count()).select_from(Dog).where(Dog.user_id == user_id)
        )
        profile = UserProfile.model_validate(user)
        profile.dog_count = count.scalar_one()
        return profile

    async def find_by_email(self, db: AsyncSession, email: str) -> Optional[User]:
        result = await db.execute(select(User).where(User.email == email.strip().lower()))
        return result.scalar_one_or_none()

    async def update(
        self,
        db: AsyncSession,
        user_id: UUID,
        name: Optional[str] = None,
        avatar: Optional[str] = None,
    ) -> UserProfile:
        """Changes name and/or avatar; a None argument leaves the field as is."""
        user = await self._get_user(db, user_id)
        if name is not None:
            user.name = name
        if avatar is not None:
            user.avatar = avatar
        await db.flush()
        await db.refresh(user)
        return UserProfile.model_validate(user)

    async def change_password(
        self,
        db: AsyncSession,
        user_id: UUID,
        current_password: str,
        new_password: str,
    ) -> bool:
        """Raises ValidationError when `current_password` does not match."""
        user = await self._get_user(db, user_id)
        if not verify_password(current_password, user.password):
            raise ValidationError(
                message="Current password is incorrect",
                field="current_password",
            )

        user.password = hash_password(new_password)
        await db.flush()
        logger.info("Password changed for user %s", user_id)
        return True

    async def delete(self, db: AsyncSession, user_id: UUID) -> bool:
        result = await db.execute(delete(User).where(User.id == user_id))
        if result.rowcount == 0:
            raise NotFoundError(resource="User", resource_id=str(user_id))
        logger.info("User %s deleted", user_id)
        return True

    async def get_stats(self, db: AsyncSession, user_id: UUID) -> UserStats:
        """
        Counts of the user's dogs: all, status "found", status "lost".

            SELECT count(*),
                   sum(CASE WHEN status = 'found' THEN 1 ELSE 0 END),
                   sum(CASE WHEN status = 'lost'  THEN 1 ELSE 0 END)
            FROM dogs WHERE user_id = :user_id
        """
        result = await db.execute(
            select(
                func.count(Dog.id),
                func.coalesce(func.sum(case((Dog.status == STATUS_FOUND, 1), else_=0)), 0),
                func.coalesce(func.sum(case((Dog.status == STATUS_LOST, 1), else_=0)), 0),
            ).where(Dog.user_id == user_id)
        )
        total, found, lost = result.one()
        return UserStats(total_dogs=total, dogs_found=found, dogs_lost=lost)
