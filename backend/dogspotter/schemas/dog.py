"""
Dog Spotter Backend — Dog Schemas
==================================

What:  Request bodies, query models and response shapes for dog sightings.

Three read projections exist on purpose:
    - DogResponse:  single dog, owner {id, name, email}
    - DogListItem:  listing/search rows, owner {id, name}
    - MapMarker:    marker data only, no owner at all
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from dogspotter.schemas.common import Pagination


# ══════════════════════════════════════════════════════════════════════════
# Owner projections
# ══════════════════════════════════════════════════════════════════════════


class OwnerSummary(BaseModel):
    """Public identity of the reporting user, as shown on listings."""
    id: uuid.UUID
    name: Optional[str] = None

    model_config = {"from_attributes": True}


class OwnerDetail(OwnerSummary):
    """Owner identity shown on a single sighting (includes contact email)."""
    email: str


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class DogCreate(BaseModel):
    """
    What:  Body of POST /api/dogs.

    latitude/longitude are deliberately not range-checked; see DESIGN.md.
    The owner comes from the bearer token, never from the body.
    """
    description: str = Field(min_length=1, description="What the dog looks like, where it was seen")
    latitude: float = Field(description="Latitude in decimal degrees")
    longitude: float = Field(description="Longitude in decimal degrees")
    image_url: Optional[str] = Field(default=None, max_length=500)
    breed: Optional[str] = Field(default=None, max_length=100)
    color: Optional[str] = Field(default=None, max_length=100)
    size: Optional[str] = Field(default=None, max_length=20)
    status: Optional[str] = Field(default=None, max_length=20, description="Defaults to 'found'")


class DogUpdate(BaseModel):
    """
    What:  Body of PUT /api/dogs/{id}. Only the fields sent are changed.
    """
    description: Optional[str] = Field(default=None, min_length=1)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    image_url: Optional[str] = Field(default=None, max_length=500)
    breed: Optional[str] = Field(default=None, max_length=100)
    color: Optional[str] = Field(default=None, max_length=100)
    size: Optional[str] = Field(default=None, max_length=20)
    status: Optional[str] = Field(default=None, max_length=20)


class DogSearchFilters(BaseModel):
    """
    What:  Optional, independently combinable search criteria.

    query     → description OR breed OR color, case-insensitive contains
    status    → exact match
    size      → exact match
    breed     → case-insensitive contains on breed
    latitude/longitude/radius_km → great-circle radius, applied only when
                                   all three are given
    """
    query: Optional[str] = None
    status: Optional[str] = None
    size: Optional[str] = None
    breed: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    radius_km: Optional[float] = None

    @property
    def has_radius(self) -> bool:
        return (
            self.latitude is not None
            and self.longitude is not None
            and self.radius_km is not None
        )


class MapBounds(BaseModel):
    """Visible map rectangle in decimal degrees (edges inclusive)."""
    north: float
    south: float
    east: float
    west: float


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class DogBase(BaseModel):
    id: uuid.UUID
    description: str
    image_url: Optional[str] = None
    latitude: float
    longitude: float
    breed: Optional[str] = None
    color: Optional[str] = None
    size: Optional[str] = None
    status: str
    user_id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class DogResponse(DogBase):
    """Single sighting with the owner's public identity and email."""
    owner: OwnerDetail


class DogListItem(DogBase):
    """Listing/search row with the owner's public identity."""
    owner: OwnerSummary


class DogListResponse(BaseModel):
    """GET /api/dogs: one page plus pagination metadata."""
    dogs: List[DogListItem]
    pagination: Pagination


class DogSearchResponse(BaseModel):
    """GET /api/dogs/search. `pagination` is present only when a page was requested."""
    dogs: List[DogListItem]
    pagination: Optional[Pagination] = None


class UserDogsResponse(BaseModel):
    """GET /api/dogs/my."""
    dogs: List[DogBase]


class MapMarker(BaseModel):
    """
    What:  Reduced projection for rendering a map pin.
    Never includes the owner's identity.
    """
    id: uuid.UUID
    latitude: float
    longitude: float
    image_url: Optional[str] = None
    description: str
    status: str
    breed: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class MapResponse(BaseModel):
    markers: List[MapMarker]


class DogEnvelope(BaseModel):
    """Response wrapper for create/update/get of a single sighting."""
    message: Optional[str] = None
    dog: DogResponse
