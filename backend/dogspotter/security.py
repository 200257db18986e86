"""
Dog Spotter Backend — Password Hashing & Access Tokens
=======================================================

What:  passlib password hashing and PyJWT access tokens.
Who:   AuthService (register/login), UserService (password change),
       dependencies.get_current_user (token checks).

Token format:
    HS256 JWT with claims {"sub": "<user uuid>", "iat": ..., "exp": ...};
    lifetime JWT_EXPIRE_DAYS (7 by default).
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import jwt
from passlib.context import CryptContext

from dogspotter.config import settings

# New hashes use pbkdf2_sha256; bcrypt hashes still verify
pwd_context = CryptContext(schemes=["pbkdf2_sha256", "bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        # Unrecognized or malformed hash
        return False


def create_access_token(user_id: UUID, expires_delta: Optional[timedelta] = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=settings.jwt_expire_days))
    payload = {"sub": str(user_id), "iat": now, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> UUID:
    """
    Returns the user id in the token.

    Raises:
        jwt.ExpiredSignatureError: token past its `exp`
        jwt.InvalidTokenError:     bad signature, malformed token, or a
                                   `sub` that is not a UUID
    """
    payload = jwt.decode(
        token,
        settings.jwt_secret_key,
        algorithms=[settings.jwt_algorithm],
        options={"require": ["sub", "exp"]},
    )
    try:
        return UUID(str(payload["sub"]))
    except ValueError as e:
        raise jwt.InvalidTokenError("Token subject is not a user id") from e
