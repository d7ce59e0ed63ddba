from sqlalchemy import func
from sqlalchemy.orm import Session

from cannamap.models.visit import Visit
from cannamap.services.location import location_exists
from cannamap.services.vote import LocationNotFound, Unauthenticated


def record_visit(db: Session, user_id: int | None, location_id: int) -> Visit:
    if user_id is None:
        raise Unauthenticated("Sign in to record a visit")
    if not location_exists(db, location_id):
        raise LocationNotFound(f"Location {location_id} not found")

    visit = Visit(location_id=location_id, user_id=user_id)
    db.add(visit)
    db.commit()
    db.refresh(visit)
    return visit


def count_visits(db: Session, location_id: int) -> int:
    return db.query(func.count(Visit.id)).filter(Visit.location_id == location_id).scalar() or 0
