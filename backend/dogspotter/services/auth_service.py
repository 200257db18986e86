"""
Dog Spotter Backend — Auth Service
===================================

What:  Account registration, login and token validation.
Who:   /api/auth routes.

Login deliberately answers "Invalid credentials" both for an unknown email
and for a wrong password.
"""

import logging
from typing import Optional, Tuple
from uuid import UUID

import jwt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dogspotter.exceptions import AuthenticationError, DuplicateResourceError
from dogspotter.models.user import User
from dogspotter.schemas.user import AuthUser
from dogspotter.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)


class AuthService:
    async def register(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        name: Optional[str] = None,
    ) -> Tuple[AuthUser, str]:
        """
        Creates an account and returns it with a fresh token.

        Raises:
            DuplicateResourceError: the (lowercased) email is taken
        """
        email = email.strip().lower()

        existing = await db.execute(select(User.id).where(User.email == email))
        if existing.scalar_one_or_none() is not None:
            raise DuplicateResourceError(
                message="Email is already registered",
                context={"field": "email"},
            )

        user = User(email=email, password=hash_password(password), name=name or None)
        db.add(user)
        try:
            await db.flush()
        except IntegrityError as e:
            # Lost a race with a concurrent registration of the same email
            raise DuplicateResourceError(
                message="Email is already registered",
                context={"field": "email"},
            ) from e

        logger.info("User registered: %s", user.id)
        return AuthUser.model_validate(user), create_access_token(user.id)

    async def login(self, db: AsyncSession, email: str, password: str) -> Tuple[AuthUser, str]:
        """Raises AuthenticationError("Invalid credentials")."""
        result = await db.execute(select(User).where(User.email == email.strip().lower()))
        user = result.scalar_one_or_none()

        if user is None or not verify_password(password, user.password):
            logger.info("Failed login attempt")
            raise AuthenticationError(message="Invalid credentials")

        return AuthUser.model_validate(user), create_access_token(user.id)

    def validate_token(self, token: str) -> Optional[UUID]:
        """User id carried by a valid token, or None."""
        try:
            return decode_access_token(token)
        except jwt.InvalidTokenError:
            return None
