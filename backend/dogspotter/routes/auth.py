"""
Dog Spotter Backend — Auth Route Handlers
==========================================

POST /api/auth/register, POST /api/auth/login, GET /api/auth/me,
POST /api/auth/validate.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dogspotter.database import get_db_session
from dogspotter.dependencies import get_auth_service, get_current_user
from dogspotter.models.user import User
from dogspotter.schemas.common import ErrorResponse
from dogspotter.schemas.user import (
    AuthResponse,
    AuthUser,
    LoginRequest,
    MeResponse,
    RegisterRequest,
    TokenValidationRequest,
    TokenValidationResponse,
)
from dogspotter.services.auth_service import AuthService

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=201,
    responses={409: {"description": "Email already registered", "model": ErrorResponse}},
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    user, token = await auth_service.register(db, body.email, body.password, body.name)
    return AuthResponse(message="User registered successfully", user=user, token=token)


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Exchange email and password for a token",
)
async def login(
    body: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    user, token = await auth_service.login(db, body.email, body.password)
    return AuthResponse(message="Login successful", user=user, token=token)


@router.get(
    "/me",
    response_model=MeResponse,
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
    summary="Identity behind the bearer token",
)
async def me(current_user: User = Depends(get_current_user)) -> MeResponse:
    return MeResponse(user=AuthUser.model_validate(current_user))


@router.post(
    "/validate",
    response_model=TokenValidationResponse,
    summary="Check whether a token is valid",
)
async def validate(
    body: TokenValidationRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenValidationResponse:
    user_id = auth_service.validate_token(body.token)
    return TokenValidationResponse(valid=user_id is not None, user_id=user_id)
