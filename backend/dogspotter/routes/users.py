"""
Dog Spotter Backend — User Route Handlers
==========================================

Profile endpoints for the authenticated user. Every route here requires a
bearer token.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dogspotter.database import get_db_session
from dogspotter.dependencies import get_current_user, get_user_service
from dogspotter.models.user import User
from dogspotter.schemas.common import ErrorResponse, MessageResponse
from dogspotter.schemas.user import (
    PasswordChangeRequest,
    UserProfileEnvelope,
    UserStatsResponse,
    UserUpdate,
)
from dogspotter.services.user_service import UserService

router = APIRouter(
    prefix="/api/users",
    tags=["Users"],
    responses={401: {"description": "Missing or invalid token", "model": ErrorResponse}},
)


@router.get("/me", response_model=UserProfileEnvelope, summary="Current user's profile")
async def get_me(
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    db: AsyncSession = Depends(get_db_session),
) -> UserProfileEnvelope:
    profile = await user_service.get_profile(db, current_user.id)
    return UserProfileEnvelope(user=profile)


@router.get("/me/stats", response_model=UserStatsResponse, summary="Sighting counters")
async def get_my_stats(
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    db: AsyncSession = Depends(get_db_session),
) -> UserStatsResponse:
    stats = await user_service.get_stats(db, current_user.id)
    return UserStatsResponse(stats=stats)


@router.put("/me", response_model=UserProfileEnvelope, summary="Update name or avatar")
async def update_me(
    body: UserUpdate,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    db: AsyncSession = Depends(get_db_session),
) -> UserProfileEnvelope:
    profile = await user_service.update(db, current_user.id, name=body.name, avatar=body.avatar)
    return UserProfileEnvelope(message="Profile updated successfully", user=profile)


@router.put(
    "/me/password",
    response_model=MessageResponse,
    responses={400: {"description": "Current password is incorrect", "model": ErrorResponse}},
    summary="Change password",
)
async def change_my_password(
    body: PasswordChangeRequest,
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await user_service.change_password(
        db, current_user.id, body.current_password, body.new_password
    )
    return MessageResponse(message="Password changed successfully")


@router.delete("/me", response_model=MessageResponse, summary="Delete account and its dogs")
async def delete_me(
    current_user: User = Depends(get_current_user),
    user_service: UserService = Depends(get_user_service),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await user_service.delete(db, current_user.id)
    return MessageResponse(message="Account deleted successfully")
