"""Location directory: creation, lookup and proximity listing."""

import logging
import math

from sqlalchemy.orm import Session

from cannamap.models.location import Location
from cannamap.schemas.location import LocationCreate
from cannamap.services.aggregator import TrustAggregate

logger = logging.getLogger(__name__)

EARTH_RADIUS_KM = 6371.0
MAX_LIST_LIMIT = 500


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points in kilometers."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def create_location(
    db: Session, data: LocationCreate, created_by_user_id: int | None = None
) -> Location:
    """Create a location with an unvoted trust aggregate."""
    empty = TrustAggregate.empty()
    location = Location(
        name=data.name,
        description=data.description,
        address=data.address,
        latitude=data.latitude,
        longitude=data.longitude,
        contact_phone=data.contact_phone,
        contact_email=data.contact_email,
        created_by_user_id=created_by_user_id,
        igniter_votes=empty.igniter_votes,
        imposter_votes=empty.imposter_votes,
        total_votes=empty.total_votes,
        trust_score=empty.trust_score,
        aggregate_version=0,
    )
    db.add(location)
    db.commit()
    db.refresh(location)
    logger.info("Location %s created by user %s", location.id, created_by_user_id)
    return location


def get_location(db: Session, location_id: int) -> Location | None:
    return db.query(Location).filter(Location.id == location_id).populate_existing().first()


def location_exists(db: Session, location_id: int) -> bool:
    return db.query(Location.id).filter(Location.id == location_id).first() is not None


def list_locations(
    db: Session,
    near: tuple[float, float] | None = None,
    radius_km: float | None = None,
    verified_only: bool = False,
    limit: int = 100,
) -> list[tuple[Location, float | None]]:
    """List locations as (location, distance_km) pairs.

    Without ``near`` the result is newest first and distances are None. With
    ``near`` only locations within ``radius_km`` are returned, closest first.
    """
    limit = max(1, min(limit, MAX_LIST_LIMIT))
    query = db.query(Location).populate_existing()
    if verified_only:
        query = query.filter(Location.is_verified.is_(True))

    if near is None:
        locations = query.order_by(Location.created_at.desc(), Location.id.desc()).limit(limit)
        return [(location, None) for location in locations]

    lat, lon = near
    with_distance = [
        (location, haversine_km(lat, lon, location.latitude, location.longitude))
        for location in query.all()
    ]
    if radius_km is not None:
        with_distance = [pair for pair in with_distance if pair[1] <= radius_km]
    with_distance.sort(key=lambda pair: pair[1])
    return with_distance[:limit]
