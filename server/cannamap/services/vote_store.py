"""Vote store: keyed persistence of votes, unique per (user, location).

Writes go through a single conditional upsert so two concurrent first-time
votes from the same user can never create duplicate rows. Nothing here
commits; callers own the transaction.
"""

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from sqlalchemy import exc as sa_exc
from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from cannamap.core.config import get_settings
from cannamap.core.time import utcnow
from cannamap.models.vote import Vote, VoteType

logger = logging.getLogger(__name__)

T = TypeVar("T")

_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class TransientStoreFailure(Exception):
    """Raised when a store operation keeps failing on contention or timeouts."""

    def __init__(self, operation: str):
        super().__init__(f"{operation} failed after retries")
        self.operation = operation


def is_transient_error(error: Exception) -> bool:
    """Lock waits, serialization failures, deadlocks, pool timeouts and dropped connections."""
    if isinstance(error, (sa_exc.OperationalError, sa_exc.TimeoutError)):
        return True
    return isinstance(error, sa_exc.DBAPIError) and error.connection_invalidated


def run_with_retries(db: Session, operation: Callable[[], T], label: str) -> T:
    """Run ``operation`` with bounded retries on transient store failures.

    The session is rolled back before each retry. Non-transient errors
    propagate immediately.
    """
    settings = get_settings()
    max_retries = settings.vote_store_max_retries

    for attempt in range(max_retries + 1):
        try:
            return operation()
        except sa_exc.SQLAlchemyError as e:
            if not is_transient_error(e):
                raise
            db.rollback()
            if attempt < max_retries:
                backoff = settings.vote_store_retry_backoff_seconds * (2**attempt)
                logger.warning(
                    "%s hit a transient store error (attempt %d/%d), retrying in %.2fs: %s",
                    label,
                    attempt + 1,
                    max_retries + 1,
                    backoff,
                    e,
                )
                time.sleep(backoff)
            else:
                logger.error("%s failed after %d attempts: %s", label, max_retries + 1, e)
                raise TransientStoreFailure(label) from e

    raise AssertionError("unreachable")


def find_vote(db: Session, user_id: int, location_id: int) -> Vote | None:
    """Return the vote for (user, location), or None when the user has not voted."""
    return (
        db.query(Vote)
        .filter(Vote.user_id == user_id, Vote.location_id == location_id)
        .populate_existing()
        .first()
    )


def upsert_vote(db: Session, user_id: int, location_id: int, vote_type: VoteType) -> Vote:
    """Insert the vote, or overwrite vote_type/updated_at on the existing row."""
    now = utcnow()
    insert = _UPSERT_INSERTS.get(db.get_bind().dialect.name)

    if insert is not None:
        stmt = insert(Vote).values(
            user_id=user_id,
            location_id=location_id,
            vote_type=vote_type.value,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "location_id"],
            set_={"vote_type": stmt.excluded.vote_type, "updated_at": stmt.excluded.updated_at},
        )
        db.execute(stmt)
    else:
        _upsert_with_savepoint(db, user_id, location_id, vote_type, now)

    vote = find_vote(db, user_id, location_id)
    if vote is None:
        raise sa_exc.InvalidRequestError(
            f"vote for user {user_id} on location {location_id} vanished after upsert"
        )
    return vote


def _upsert_with_savepoint(
    db: Session, user_id: int, location_id: int, vote_type: VoteType, now
) -> None:
    """Portable upsert: let the unique constraint decide between insert and update."""
    try:
        with db.begin_nested():
            db.add(
                Vote(
                    user_id=user_id,
                    location_id=location_id,
                    vote_type=vote_type.value,
                    created_at=now,
                    updated_at=now,
                )
            )
    except sa_exc.IntegrityError:
        # Unique constraint violation: the pair already has a row
        db.execute(
            update(Vote)
            .where(Vote.user_id == user_id, Vote.location_id == location_id)
            .values(vote_type=vote_type.value, updated_at=now)
            .execution_options(synchronize_session=False)
        )


def list_votes_for_location(db: Session, location_id: int) -> list[Vote]:
    """All votes for a location, in no particular order."""
    return db.query(Vote).filter(Vote.location_id == location_id).populate_existing().all()
