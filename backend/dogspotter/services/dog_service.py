"""
Dog Spotter Backend — Dog Service (Search, Listing, Map, CRUD)
===============================================================

What:  Business logic for dog sightings: paginated listing, filtered and
       geo-radius search, map markers, and owner-scoped create/update/delete.
How:   Builds SQLAlchemy statements, runs them on the request's AsyncSession,
       then applies the exact great-circle filter in memory.
Who:   Built once in create_app() with its BreedPredictor and reached by the
       dog routes through `get_dog_service`.

Search Flow (GET /api/dogs/search):
    ┌───────────────┐    ┌────────────────────┐    ┌──────────────────┐
    │ text / status │───▶│ SQL fetch, newest  │───▶│ haversine filter │
    │ size / breed  │    │ first (+ bbox when │    │ (exact, memory)  │
    │ + bounding box│    │  a radius is set)  │    └──────────────────┘
    └───────────────┘    └────────────────────┘

Ownership:
    update/delete run ONE conditional statement
    (`... WHERE id = :id AND user_id = :user_id`) and read the affected row
    count. Zero rows raises NotFoundOrForbiddenError, whether the dog is
    missing or owned by someone else.

Storage errors (SQLAlchemyError) propagate unchanged; main.py answers 500.
"""

import asyncio
import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Union
from uuid import UUID

from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from dogspotter.config import settings
from dogspotter.exceptions import NotFoundError, NotFoundOrForbiddenError
from dogspotter.models.dog import DEFAULT_STATUS, Dog
from dogspotter.schemas.common import Pagination
from dogspotter.schemas.dog import (
    DogCreate,
    DogListItem,
    DogListResponse,
    DogSearchFilters,
    DogSearchResponse,
    DogUpdate,
    MapBounds,
    MapMarker,
)
from dogspotter.services.breed_predictor import BreedPredictor
from dogspotter.services.geo import BoundingBox, bounding_box, haversine_distance

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 50

# Hard ceiling on markers returned to the map, whatever the bounds
MAP_MARKER_LIMIT = 100

# Columns that are NOT NULL; an explicit null in an update patch is ignored
_REQUIRED_FIELDS = {"description", "latitude", "longitude", "status"}


def coerce_positive_int(value: Union[str, int, None], default: int) -> int:
    """
    Parses a page/limit query value. Absent, non-numeric and < 1 all fall
    back to `default`.
    """
    if value is None:
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return default
    return parsed if parsed >= 1 else default


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    total_pages = math.ceil(total / limit) if total else 0
    return Pagination(page=page, limit=limit, total=total, total_pages=total_pages)


def _warn_if_out_of_range(latitude: Optional[float], longitude: Optional[float]) -> None:
    # Persisted as-is: map clients may rely on the raw values
    if latitude is not None and not -90 <= latitude <= 90:
        logger.warning("Latitude %s is outside [-90, 90]; storing unchanged", latitude)
    if longitude is not None and not -180 <= longitude <= 180:
        logger.warning("Longitude %s is outside [-180, 180]; storing unchanged", longitude)


class DogService:
    """
    Business logic layer for dog sightings.

    Stateless apart from its injected predictor: every method receives the
    request's session, so one instance serves all requests.
    """

    def __init__(self, predictor: Optional[BreedPredictor] = None):
        self.predictor = predictor

    # ══════════════════════════════════════════════════════════════════════
    # Reads
    # ══════════════════════════════════════════════════════════════════════

    async def list_all(
        self,
        db: AsyncSession,
        page: Union[str, int, None] = None,
        page_size: Union[str, int, None] = None,
    ) -> DogListResponse:
        """
        What:  One page of dogs, newest first, with pagination metadata.

        Query plan:
            SELECT ... FROM dogs ORDER BY created_at DESC LIMIT :limit OFFSET :offset
            SELECT count(*) FROM dogs

        Both statements are independent; they run one after the other because
        a single AsyncSession cannot execute two statements at once.
        """
        page = coerce_positive_int(page, DEFAULT_PAGE)
        limit = coerce_positive_int(page_size, DEFAULT_PAGE_SIZE)
        offset = (page - 1) * limit

        page_stmt = (
            select(Dog)
            .options(selectinload(Dog.owner))
            .order_by(Dog.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        count_stmt = select(func.count()).select_from(Dog)

        page_result = await db.execute(page_stmt)
        dogs = list(page_result.scalars().all())

        count_result = await db.execute(count_stmt)
        total = count_result.scalar_one()

        return DogListResponse(
            dogs=[DogListItem.model_validate(dog) for dog in dogs],
            pagination=build_pagination(page, limit, total),
        )

    def build_search_statement(
        self,
        filters: DogSearchFilters,
        box: Optional[BoundingBox] = None,
    ):
        """
        Compiles the storage-side part of a search.

            query  → description ILIKE %q% OR breed ILIKE %q% OR color ILIKE %q%
            status → status = :status
            size   → size = :size
            breed  → breed ILIKE %breed%
            box    → latitude/longitude range (two longitude ranges across
                     the antimeridian), OR any out-of-range coordinate

        All present criteria are ANDed.
        """
        conditions = []

        if filters.query:
            conditions.append(
                or_(
                    Dog.description.icontains(filters.query, autoescape=True),
                    Dog.breed.icontains(filters.query, autoescape=True),
                    Dog.color.icontains(filters.query, autoescape=True),
                )
            )
        if filters.status:
            conditions.append(Dog.status == filters.status)
        if filters.size:
            conditions.append(Dog.size == filters.size)
        if filters.breed:
            conditions.append(Dog.breed.icontains(filters.breed, autoescape=True))

        if box is not None:
            box_conditions = [Dog.latitude.between(box.min_lat, box.max_lat)]
            if box.crosses_antimeridian:
                box_conditions.append(
                    or_(Dog.longitude >= box.min_lon, Dog.longitude <= box.max_lon)
                )
            elif not box.all_longitudes:
                box_conditions.append(Dog.longitude.between(box.min_lon, box.max_lon))
            # Out-of-range coordinates are stored as given; the box only
            # covers canonical ones, so those rows go to the exact check.
            conditions.append(
                or_(
                    and_(*box_conditions),
                    Dog.latitude < -90,
                    Dog.latitude > 90,
                    Dog.longitude < -180,
                    Dog.longitude > 180,
                )
            )

        stmt = select(Dog).options(selectinload(Dog.owner))
        if conditions:
            stmt = stmt.where(and_(*conditions))
        return stmt.order_by(Dog.created_at.desc())

    async def search(self, db: AsyncSession, filters: DogSearchFilters) -> List[Dog]:
        """
        What:  Every dog matching the filters, newest first.

        When latitude, longitude and radius_km are all given, only dogs within
        radius_km (great-circle distance) are kept. A bounding box narrows the
        SQL query first; the exact distance check runs on the fetched rows.
        """
        box = None
        if filters.has_radius:
            box = bounding_box(filters.latitude, filters.longitude, filters.radius_km)

        result = await db.execute(self.build_search_statement(filters, box))
        dogs = list(result.scalars().all())

        if filters.has_radius:
            dogs = [
                dog
                for dog in dogs
                if haversine_distance(
                    filters.latitude, filters.longitude, dog.latitude, dog.longitude
                )
                <= filters.radius_km
            ]

        logger.debug("Search %s matched %d dogs", filters.model_dump(exclude_none=True), len(dogs))
        return dogs

    async def search_page(
        self,
        db: AsyncSession,
        filters: DogSearchFilters,
        page: Union[str, int, None] = None,
        page_size: Union[str, int, None] = None,
    ) -> DogSearchResponse:
        """
        What:  search() for the HTTP layer.
        Without `page` the full ordered result comes back with no pagination
        block; with `page` the filtered result is sliced and paginated.
        """
        dogs = await self.search(db, filters)
        if page is None:
            return DogSearchResponse(dogs=[DogListItem.model_validate(dog) for dog in dogs])

        page = coerce_positive_int(page, DEFAULT_PAGE)
        limit = coerce_positive_int(page_size, DEFAULT_PAGE_SIZE)
        offset = (page - 1) * limit
        window = dogs[offset:offset + limit]
        return DogSearchResponse(
            dogs=[DogListItem.model_validate(dog) for dog in window],
            pagination=build_pagination(page, limit, len(dogs)),
        )

    async def get_for_map(
        self,
        db: AsyncSession,
        bounds: Optional[MapBounds] = None,
    ) -> List[MapMarker]:
        """
        What:  Marker projection for the map, newest first, capped at
               MAP_MARKER_LIMIT. Bounds are inclusive on every edge.
        Only marker columns are selected; the owner is never loaded.
        """
        stmt = select(
            Dog.id,
            Dog.latitude,
            Dog.longitude,
            Dog.image_url,
            Dog.description,
            Dog.status,
            Dog.breed,
            Dog.created_at,
        )
        if bounds is not None:
            stmt = stmt.where(
                Dog.latitude >= bounds.south,
                Dog.latitude <= bounds.north,
                Dog.longitude >= bounds.west,
                Dog.longitude <= bounds.east,
            )
        stmt = stmt.order_by(Dog.created_at.desc()).limit(MAP_MARKER_LIMIT)

        result = await db.execute(stmt)
        return [MapMarker.model_validate(dict(row._mapping)) for row in result.all()]

    async def find_by_id(self, db: AsyncSession, dog_id: UUID) -> Dog:
        """The dog with its owner loaded. Raises NotFoundError."""
        dog = await self._get_with_owner(db, dog_id)
        if dog is None:
            raise NotFoundError(resource="Dog", resource_id=str(dog_id))
        return dog

    async def find_by_user(self, db: AsyncSession, user_id: UUID) -> List[Dog]:
        """All of a user's dogs, newest first, unpaginated."""
        result = await db.execute(
            select(Dog).where(Dog.user_id == user_id).order_by(Dog.created_at.desc())
        )
        return list(result.scalars().all())

    # ══════════════════════════════════════════════════════════════════════
    # Writes
    # ══════════════════════════════════════════════════════════════════════

    async def create(self, db: AsyncSession, data: DogCreate, user_id: UUID) -> Dog:
        """
        What:  Persists a new sighting owned by `user_id`.

        Workflow:
            1. INSERT the dog (status defaults to "found")
            2. If it has an image and no breed: one best-effort prediction
            3. A non-empty predicted breed is written to the same row
            4. Return the dog with its owner loaded

        Step 2 never fails the creation: any error, timeout or empty answer
        is logged and the dog is returned as inserted.
        """
        _warn_if_out_of_range(data.latitude, data.longitude)

        dog = Dog(
            description=data.description,
            image_url=data.image_url,
            latitude=data.latitude,
            longitude=data.longitude,
            breed=data.breed,
            color=data.color,
            size=data.size,
            status=data.status or DEFAULT_STATUS,
            user_id=user_id,
        )
        db.add(dog)
        await db.flush()
        logger.info("Dog %s created by user %s", dog.id, user_id)

        if dog.image_url and not dog.breed:
            breed = await self._predict_breed(dog)
            if breed:
                dog.breed = breed
                await db.flush()
                logger.info("Dog %s breed set to %s by prediction", dog.id, breed)

        return await self._get_with_owner(db, dog.id)

    async def update(
        self,
        db: AsyncSession,
        dog_id: UUID,
        user_id: UUID,
        patch: DogUpdate,
    ) -> Dog:
        """
        What:  Applies the fields present in `patch` to a dog the user owns.
        Raises NotFoundOrForbiddenError when no dog matches (id, user_id); in
        that case nothing is written and nothing else is queried.
        """
        values: Dict[str, Any] = {
            field: value
            for field, value in patch.model_dump(exclude_unset=True).items()
            if not (value is None and field in _REQUIRED_FIELDS)
        }
        _warn_if_out_of_range(values.get("latitude"), values.get("longitude"))
        values["updated_at"] = datetime.now(timezone.utc)

        result = await db.execute(
            update(Dog)
            .where(Dog.id == dog_id, Dog.user_id == user_id)
            .values(**values)
        )
        if result.rowcount == 0:
            raise NotFoundOrForbiddenError(
                context={"dog_id": str(dog_id), "user_id": str(user_id)}
            )

        logger.info("Dog %s updated by owner (%s)", dog_id, ", ".join(sorted(values)))
        return await self._get_with_owner(db, dog_id)

    async def delete(self, db: AsyncSession, dog_id: UUID, user_id: UUID) -> bool:
        """Deletes a dog the user owns. Raises NotFoundOrForbiddenError."""
        result = await db.execute(
            delete(Dog).where(Dog.id == dog_id, Dog.user_id == user_id)
        )
        if result.rowcount == 0:
            raise NotFoundOrForbiddenError(
                context={"dog_id": str(dog_id), "user_id": str(user_id)}
            )

        logger.info("Dog %s deleted by owner", dog_id)
        return True

    # ══════════════════════════════════════════════════════════════════════
    # Internals
    # ══════════════════════════════════════════════════════════════════════

    async def _get_with_owner(self, db: AsyncSession, dog_id: UUID) -> Optional[Dog]:
        # populate_existing refreshes an instance already in the identity map
        result = await db.execute(
            select(Dog)
            .options(selectinload(Dog.owner))
            .where(Dog.id == dog_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def _predict_breed(self, dog: Dog) -> Optional[str]:
        """Best-effort breed lookup. Returns None on any failure."""
        if self.predictor is None:
            return None

        try:
            prediction = await asyncio.wait_for(
                self.predictor.predict(dog.image_url, str(dog.id)),
                timeout=settings.ml_timeout_seconds,
            )
        except Exception as e:
            logger.warning(
                "Breed prediction skipped for dog %s: %s: %s",
                dog.id,
                type(e).__name__,
                str(e),
            )
            return None

        breed = (prediction.breed or "").strip() if prediction is not None else ""
        return breed or None
