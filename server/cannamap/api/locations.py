"""Location directory endpoints and the trust projection read path."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from cannamap.api.deps import get_current_user, get_db, get_existing_location
from cannamap.core.config import get_settings
from cannamap.models.location import Location
from cannamap.models.user import User
from cannamap.schemas.location import (
    LocationCreate,
    LocationDetail,
    LocationOut,
    TrustAggregateOut,
)
from cannamap.services.location import create_location, list_locations
from cannamap.services.projection import get_trust_aggregate
from cannamap.services.review import get_review_summary
from cannamap.services.visit import count_visits

router = APIRouter()
settings = get_settings()


def _location_out(location: Location, distance_km: float | None = None) -> LocationOut:
    out = LocationOut.model_validate(location)
    if distance_km is not None:
        out.distance_km = round(distance_km, 2)
    return out


@router.get("", response_model=list[LocationOut])
def get_locations(
    lat: float | None = Query(None, ge=-90, le=90),
    lng: float | None = Query(None, ge=-180, le=180),
    radius_km: float | None = Query(None, gt=0, le=20000),
    verified_only: bool = False,
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
) -> list[LocationOut]:
    """List locations, optionally only those near a point (closest first)."""
    if (lat is None) != (lng is None):
        raise HTTPException(status_code=422, detail="lat and lng must be given together")

    near = (lat, lng) if lat is not None else None
    if near is not None and radius_km is None:
        radius_km = settings.default_search_radius_km

    results = list_locations(
        db, near=near, radius_km=radius_km, verified_only=verified_only, limit=limit
    )
    return [_location_out(location, distance) for location, distance in results]


@router.post("", response_model=LocationOut, status_code=status.HTTP_201_CREATED)
def add_location(
    location_data: LocationCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> LocationOut:
    location = create_location(db, location_data, created_by_user_id=current_user.id)
    return _location_out(location)


@router.get("/{location_id}", response_model=LocationDetail)
def get_location_detail(
    location: Location = Depends(get_existing_location),
    db: Session = Depends(get_db),
) -> LocationDetail:
    summary = get_review_summary(db, location.id)
    detail = LocationDetail.model_validate(location)
    detail.review_count = summary.review_count
    detail.average_rating = summary.average_rating
    detail.visit_count = count_visits(db, location.id)
    return detail


@router.get("/{location_id}/trust", response_model=TrustAggregateOut)
def get_location_trust(location_id: int, db: Session = Depends(get_db)) -> TrustAggregateOut:
    aggregate = get_trust_aggregate(db, location_id)
    if aggregate is None:
        raise HTTPException(status_code=404, detail="Location not found")
    return TrustAggregateOut.model_validate(aggregate)
