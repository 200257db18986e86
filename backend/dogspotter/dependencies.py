"""
Dog Spotter Backend — FastAPI Dependencies
===========================================

What:  Request-scoped accessors for the services built in create_app() and
       the bearer-token authentication guards.
How:   Services live on `app.state`; routes declare `Depends(get_dog_service)`
       and tests swap them with `app.dependency_overrides`.

Auth guards:
    get_current_user  → 401 unless a valid token for an existing user is sent
    get_optional_user → the user when a valid token is sent, otherwise None
"""

import logging
from typing import Optional

import jwt
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from dogspotter.database import get_db_session
from dogspotter.exceptions import AuthenticationError
from dogspotter.models.user import User
from dogspotter.security import decode_access_token
from dogspotter.services.auth_service import AuthService
from dogspotter.services.dog_service import DogService
from dogspotter.services.upload_service import UploadService
from dogspotter.services.user_service import UserService

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


# ── Services ──────────────────────────────────────────────────────────────


def get_dog_service(request: Request) -> DogService:
    return request.app.state.dog_service


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


def get_upload_service(request: Request) -> UploadService:
    return request.app.state.upload_service


# ── Authentication ────────────────────────────────────────────────────────


async def _user_from_token(db: AsyncSession, token: str) -> User:
    try:
        user_id = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(message="Token has expired")
    except jwt.InvalidTokenError:
        raise AuthenticationError(message="Invalid token")

    user = await db.get(User, user_id)
    if user is None:
        raise AuthenticationError(message="User not found")
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError(message="Token not provided")
    return await _user_from_token(db, credentials.credentials)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db_session),
) -> Optional[User]:
    if credentials is None:
        return None
    try:
        return await _user_from_token(db, credentials.credentials)
    except AuthenticationError as e:
        logger.debug("Ignoring bad optional credentials: %s", e.message)
        return None
