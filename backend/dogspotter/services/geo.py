"""
Dog Spotter Backend — Great-Circle Geometry
============================================

What:  Distance and bounding-box helpers for the radius search.
How:   Haversine distance on a spherical Earth (R = 6371 km); the bounding
       box is the minimal lat/lon rectangle enclosing a spherical cap
       (J. P. Matuschek, "Finding Points Within a Distance of a
       Latitude/Longitude Using Bounding Coordinates").
Who:   DogService.search(): the box narrows the SQL query, the exact
       distance filters the fetched rows.

Two-stage radius filter:
    1. SQL:    latitude/longitude BETWEEN box edges (index-friendly, cheap)
    2. Python: haversine_distance(...) <= radius_km (exact)
    The box is padded outward, so stage 1 never drops a point stage 2 keeps.
"""

import math
from dataclasses import dataclass
from typing import Optional

EARTH_RADIUS_KM = 6371

# Outward padding on every box edge, in degrees (~11 cm at the equator)
BOX_PADDING_DEG = 1e-6

_MIN_LAT = -math.pi / 2
_MAX_LAT = math.pi / 2
_MIN_LON = -math.pi
_MAX_LON = math.pi


def to_radians(degrees: float) -> float:
    return degrees * (math.pi / 180)


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance in kilometres between two points in decimal degrees.

    Identical coordinates give exactly 0.0: both deltas are 0, so `a` is 0
    and atan2(0, 1) is 0.
    """
    d_lat = to_radians(lat2 - lat1)
    d_lon = to_radians(lon2 - lon1)

    a = (
        math.sin(d_lat / 2) * math.sin(d_lat / 2)
        + math.cos(to_radians(lat1))
        * math.cos(to_radians(lat2))
        * math.sin(d_lon / 2)
        * math.sin(d_lon / 2)
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_KM * c


@dataclass(frozen=True)
class BoundingBox:
    """
    Rectangle in decimal degrees.

    When `crosses_antimeridian` is True the longitude range wraps:
    lon >= min_lon OR lon <= max_lon. When `all_longitudes` is True (the cap
    contains a pole) longitude is unconstrained.
    """

    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float
    all_longitudes: bool = False

    @property
    def crosses_antimeridian(self) -> bool:
        return not self.all_longitudes and self.min_lon > self.max_lon

    def contains(self, lat: float, lon: float) -> bool:
        if not self.min_lat <= lat <= self.max_lat:
            return False
        if self.all_longitudes:
            return True
        if self.crosses_antimeridian:
            return lon >= self.min_lon or lon <= self.max_lon
        return self.min_lon <= lon <= self.max_lon


def bounding_box(lat: float, lon: float, radius_km: float) -> Optional[BoundingBox]:
    """
    What:  Smallest lat/lon rectangle containing every point within
           radius_km of (lat, lon).

    Returns None when no useful box exists and the caller should not
    prefilter at all:
        - radius_km <= 0
        - the centre is outside [-90, 90] x [-180, 180]
        - the radius covers the whole sphere (angular radius >= pi)
    """
    if radius_km <= 0:
        return None
    if not (-90 <= lat <= 90 and -180 <= lon <= 180):
        return None

    angular = radius_km / EARTH_RADIUS_KM
    if angular >= math.pi:
        return None

    lat_r = to_radians(lat)
    lon_r = to_radians(lon)

    min_lat = lat_r - angular
    max_lat = lat_r + angular

    if min_lat > _MIN_LAT and max_lat < _MAX_LAT:
        delta_lon = math.asin(min(1.0, math.sin(angular) / math.cos(lat_r)))
        min_lon = lon_r - delta_lon
        if min_lon < _MIN_LON:
            min_lon += 2 * math.pi
        max_lon = lon_r + delta_lon
        if max_lon > _MAX_LON:
            max_lon -= 2 * math.pi
        return BoundingBox(
            min_lat=math.degrees(min_lat) - BOX_PADDING_DEG,
            max_lat=math.degrees(max_lat) + BOX_PADDING_DEG,
            min_lon=math.degrees(min_lon) - BOX_PADDING_DEG,
            max_lon=math.degrees(max_lon) + BOX_PADDING_DEG,
        )

    # A pole is inside the cap: every longitude is reachable
    return BoundingBox(
        min_lat=max(math.degrees(min_lat), -90.0) - BOX_PADDING_DEG,
        max_lat=min(math.degrees(max_lat), 90.0) + BOX_PADDING_DEG,
        min_lon=-180.0,
        max_lon=180.0,
        all_longitudes=True,
    )
