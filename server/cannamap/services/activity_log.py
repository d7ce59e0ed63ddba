"""Activity log service: durable notes for operators, e.g. aggregate divergence."""

import logging

from sqlalchemy.orm import Session

from cannamap.core.time import utcnow
from cannamap.models.activity_log import ActivityLog

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 500


def log_activity(
    db: Session,
    level: str,
    source: str,
    message: str,
    location_id: int | None = None,
    user_id: int | None = None,
) -> ActivityLog:
    """Create an activity log entry and commit it."""
    entry = ActivityLog(
        created_at=utcnow(),
        level=level,
        source=source,
        message=message[:MAX_MESSAGE_LENGTH],
        location_id=location_id,
        user_id=user_id,
    )
    db.add(entry)
    db.commit()
    db.refresh(entry)
    return entry


def get_recent_activity(
    db: Session,
    limit: int = 50,
    source: str | None = None,
    location_id: int | None = None,
) -> list[ActivityLog]:
    """Get recent activity log entries, newest first."""
    query = db.query(ActivityLog)
    if source is not None:
        query = query.filter(ActivityLog.source == source)
    if location_id is not None:
        query = query.filter(ActivityLog.location_id == location_id)
    return query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc()).limit(limit).all()
