"""Location reviews: star rating plus optional comment."""

from dataclasses import dataclass

from sqlalchemy import func
from sqlalchemy.orm import Session

from cannamap.models.review import Review
from cannamap.services.location import location_exists
from cannamap.services.vote import LocationNotFound, Unauthenticated


class InvalidReview(Exception):
    """Raised when a rating falls outside 1-5."""


@dataclass(frozen=True)
class ReviewSummary:
    review_count: int
    average_rating: float | None


def add_review(
    db: Session, user_id: int | None, location_id: int, rating: int, comment: str | None = None
) -> Review:
    if user_id is None:
        raise Unauthenticated("Sign in to leave a review")
    if not 1 <= rating <= 5:
        raise InvalidReview(f"Rating must be between 1 and 5, got {rating}")
    if not location_exists(db, location_id):
        raise LocationNotFound(f"Location {location_id} not found")

    review = Review(location_id=location_id, user_id=user_id, rating=rating, comment=comment)
    db.add(review)
    db.commit()
    db.refresh(review)
    return review


def list_reviews(db: Session, location_id: int, limit: int = 50) -> list[Review]:
    """Reviews for a location, newest first."""
    return (
        db.query(Review)
        .filter(Review.location_id == location_id)
        .order_by(Review.created_at.desc(), Review.id.desc())
        .limit(limit)
        .all()
    )


def get_review_summary(db: Session, location_id: int) -> ReviewSummary:
    count, average = (
        db.query(func.count(Review.id), func.avg(Review.rating))
        .filter(Review.location_id == location_id)
        .one()
    )
    if not count:
        return ReviewSummary(review_count=0, average_rating=None)
    return ReviewSummary(review_count=count, average_rating=round(float(average), 1))
