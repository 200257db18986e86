"""
Dog Spotter Backend — Dog Route Handlers
=========================================

What:  /api/dogs endpoints: listing, map markers, search, "my dogs", detail,
       create, update, delete.
How:   Parses query/body, delegates to DogService, wraps the result.

Route order matters: the fixed paths (/map, /search, /my) are declared before
/{dog_id} so they are not captured as ids.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from dogspotter.database import get_db_session
from dogspotter.dependencies import get_current_user, get_dog_service, get_optional_user
from dogspotter.models.user import User
from dogspotter.schemas.common import ErrorResponse, MessageResponse
from dogspotter.schemas.dog import (
    DogBase,
    DogCreate,
    DogEnvelope,
    DogListResponse,
    DogResponse,
    DogSearchFilters,
    DogSearchResponse,
    DogUpdate,
    MapBounds,
    MapResponse,
    UserDogsResponse,
)
from dogspotter.services.dog_service import DogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/dogs", tags=["Dogs"])

_AUTH_ERRORS = {401: {"description": "Missing or invalid token", "model": ErrorResponse}}
_OWNER_ERRORS = {
    **_AUTH_ERRORS,
    404: {"description": "Dog not found or not owned by caller", "model": ErrorResponse},
}


@router.get(
    "",
    response_model=DogListResponse,
    summary="List dogs, newest first",
)
async def list_dogs(
    page: Optional[str] = Query(default=None, description="Page number (1-based, default 1)"),
    limit: Optional[str] = Query(default=None, description="Page size (default 50)"),
    current_user: Optional[User] = Depends(get_optional_user),
    dog_service: DogService = Depends(get_dog_service),
    db: AsyncSession = Depends(get_db_session),
) -> DogListResponse:
    """
    page/limit are taken as raw strings: absent, non-numeric or < 1 values fall
    back to the defaults instead of failing with 422.
    """
    logger.debug("Dog list requested by %s", current_user.id if current_user else "anonymous")
    return await dog_service.list_all(db, page=page, page_size=limit)


@router.get(
    "/map",
    response_model=MapResponse,
    summary="Map markers inside the visible area (max 100)",
)
async def map_markers(
    north: Optional[float] = Query(default=None),
    south: Optional[float] = Query(default=None),
    east: Optional[float] = Query(default=None),
    west: Optional[float] = Query(default=None),
    dog_service: DogService = Depends(get_dog_service),
    db: AsyncSession = Depends(get_db_session),
) -> MapResponse:
    """Bounds apply only when all four edges are given."""
    bounds = None
    if None not in (north, south, east, west):
        bounds = MapBounds(north=north, south=south, east=east, west=west)

    markers = await dog_service.get_for_map(db, bounds)
    return MapResponse(markers=markers)


@router.get(
    "/search",
    response_model=DogSearchResponse,
    summary="Search dogs by text, status, size, breed and distance",
)
async def search_dogs(
    q: Optional[str] = Query(default=None, description="Matches description, breed or color"),
    status: Optional[str] = Query(default=None),
    size: Optional[str] = Query(default=None),
    breed: Optional[str] = Query(default=None),
    lat: Optional[float] = Query(default=None, description="Radius centre latitude"),
    lng: Optional[float] = Query(default=None, description="Radius centre longitude"),
    radius: Optional[float] = Query(default=None, description="Radius in km"),
    page: Optional[str] = Query(default=None, description="Paginate when given"),
    limit: Optional[str] = Query(default=None),
    dog_service: DogService = Depends(get_dog_service),
    db: AsyncSession = Depends(get_db_session),
) -> DogSearchResponse:
    filters = DogSearchFilters(
        query=q or None,
        status=status or None,
        size=size or None,
        breed=breed or None,
        latitude=lat,
        longitude=lng,
        radius_km=radius,
    )
    return await dog_service.search_page(db, filters, page=page, page_size=limit)


@router.get(
    "/my",
    response_model=UserDogsResponse,
    responses=_AUTH_ERRORS,
    summary="Dogs reported by the current user",
)
async def my_dogs(
    current_user: User = Depends(get_current_user),
    dog_service: DogService = Depends(get_dog_service),
    db: AsyncSession = Depends(get_db_session),
) -> UserDogsResponse:
    dogs = await dog_service.find_by_user(db, current_user.id)
    return UserDogsResponse(dogs=[DogBase.model_validate(dog) for dog in dogs])


@router.get(
    "/{dog_id}",
    response_model=DogEnvelope,
    responses={404: {"description": "Dog not found", "model": ErrorResponse}},
    summary="Get a single dog",
)
async def get_dog(
    dog_id: UUID,
    dog_service: DogService = Depends(get_dog_service),
    db: AsyncSession = Depends(get_db_session),
) -> DogEnvelope:
    dog = await dog_service.find_by_id(db, dog_id)
    return DogEnvelope(dog=DogResponse.model_validate(dog))


@router.post(
    "",
    response_model=DogEnvelope,
    status_code=201,
    responses=_AUTH_ERRORS,
    summary="Report a dog sighting",
)
async def create_dog(
    body: DogCreate,
    current_user: User = Depends(get_current_user),
    dog_service: DogService = Depends(get_dog_service),
    db: AsyncSession = Depends(get_db_session),
) -> DogEnvelope:
    """
    If an image is attached and no breed is given, the breed classifier is
    asked once; its failure never fails the request.
    """
    dog = await dog_service.create(db, body, current_user.id)
    return DogEnvelope(message="Dog registered successfully", dog=DogResponse.model_validate(dog))


@router.put(
    "/{dog_id}",
    response_model=DogEnvelope,
    responses=_OWNER_ERRORS,
    summary="Update one of your dogs",
)
async def update_dog(
    dog_id: UUID,
    body: DogUpdate,
    current_user: User = Depends(get_current_user),
    dog_service: DogService = Depends(get_dog_service),
    db: AsyncSession = Depends(get_db_session),
) -> DogEnvelope:
    dog = await dog_service.update(db, dog_id, current_user.id, body)
    return DogEnvelope(message="Dog updated successfully", dog=DogResponse.model_validate(dog))


@router.delete(
    "/{dog_id}",
    response_model=MessageResponse,
    responses=_OWNER_ERRORS,
    summary="Delete one of your dogs",
)
async def delete_dog(
    dog_id: UUID,
    current_user: User = Depends(get_current_user),
    dog_service: DogService = Depends(get_dog_service),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await dog_service.delete(db, dog_id, current_user.id)
    return MessageResponse(message="Dog removed successfully")
