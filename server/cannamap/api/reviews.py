"""Reviews and visits for a location."""

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from sqlalchemy.orm import Session

from cannamap.api.deps import get_current_user, get_db, get_existing_location
from cannamap.core.config import get_settings
from cannamap.core.rate_limit import limiter
from cannamap.models.location import Location
from cannamap.models.review import Review
from cannamap.models.user import User
from cannamap.models.visit import Visit
from cannamap.schemas.review import ReviewCreate, ReviewOut, VisitOut
from cannamap.services.review import InvalidReview, add_review, list_reviews
from cannamap.services.visit import record_visit
from cannamap.services.vote import LocationNotFound

router = APIRouter()
settings = get_settings()


@router.get("/{location_id}/reviews", response_model=list[ReviewOut])
def get_reviews(
    limit: int = Query(50, ge=1, le=200),
    location: Location = Depends(get_existing_location),
    db: Session = Depends(get_db),
) -> list[Review]:
    return list_reviews(db, location.id, limit=limit)


@router.post(
    "/{location_id}/reviews", response_model=ReviewOut, status_code=status.HTTP_201_CREATED
)
@limiter.limit(lambda: f"{settings.review_rate_limit_per_minute}/minute")
def post_review(
    request: Request,
    location_id: int,
    review_data: ReviewCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Review:
    try:
        return add_review(
            db, current_user.id, location_id, review_data.rating, review_data.comment
        )
    except InvalidReview as e:
        raise HTTPException(status_code=422, detail=str(e))
    except LocationNotFound:
        raise HTTPException(status_code=404, detail="Location not found")


@router.post(
    "/{location_id}/visits", response_model=VisitOut, status_code=status.HTTP_201_CREATED
)
def post_visit(
    location_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> Visit:
    try:
        return record_visit(db, current_user.id, location_id)
    except LocationNotFound:
        raise HTTPException(status_code=404, detail="Location not found")
