"""Vote service: the only entry point that mutates votes and trust aggregates.

A cast is two steps. The vote upsert is committed on its own, then the
location's aggregate is recomputed from every vote row and written back.
The write is serialized per location inside this process and guarded by an
optimistic ``aggregate_version`` check across processes, so the projection
converges on the vote set once voting stops.
"""

import logging
import threading
import time
import weakref

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cannamap.core.config import get_settings
from cannamap.models.vote import Vote, VoteType
from cannamap.services.activity_log import log_activity
from cannamap.services.auth import get_active_user
from cannamap.services.aggregator import TrustAggregate, compute_aggregate
from cannamap.services.location import location_exists
from cannamap.services.projection import read_aggregate_version, write_aggregate
from cannamap.services.vote_store import (
    find_vote,
    is_transient_error,
    run_with_retries,
    upsert_vote,
)

logger = logging.getLogger(__name__)

DIVERGENCE_SOURCE = "trust_aggregate"


class VoteError(Exception):
    """Base class for vote failures surfaced to callers."""


class Unauthenticated(VoteError):
    """Raised when a vote is attempted without a signed-in identity."""


class InvalidVote(VoteError):
    """Raised when the vote type is not igniter or imposter."""


class LocationNotFound(VoteError):
    """Raised when the location does not exist."""


class AggregationFailed(VoteError):
    """The vote is stored but the location's trust aggregate could not be updated."""

    def __init__(self, location_id: int, reason: str):
        super().__init__(f"trust aggregate for location {location_id} not updated: {reason}")
        self.location_id = location_id
        self.reason = reason


class LocationLocks:
    """Registry of per-location locks for single-writer aggregate updates.

    Entries live only while some caller holds a reference to the lock.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: weakref.WeakValueDictionary[int, threading.Lock] = (
            weakref.WeakValueDictionary()
        )

    def get(self, location_id: int) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(location_id)
            if lock is None:
                lock = self._locks[location_id] = threading.Lock()
            return lock


_location_locks = LocationLocks()


def parse_vote_type(value: VoteType | str | None) -> VoteType:
    if isinstance(value, VoteType):
        return value
    if isinstance(value, str):
        try:
            return VoteType(value.strip().lower())
        except ValueError:
            pass
    raise InvalidVote(f"Unknown vote type: {value!r}")


def cast_vote(
    db: Session, user_id: int | None, location_id: int, vote_type: VoteType | str
) -> TrustAggregate:
    """Record the user's vote on a location and return the refreshed aggregate.

    Raises Unauthenticated (no id, unknown id or deactivated user), InvalidVote
    or LocationNotFound before anything is written. TransientStoreFailure means the vote was not stored.
    AggregationFailed means it was stored but the projection is stale; the
    divergence is recorded in the activity log.
    """
    if user_id is None:
        raise Unauthenticated("Sign in to vote")
    kind = parse_vote_type(vote_type)

    if run_with_retries(db, lambda: get_active_user(db, user_id), "voter lookup") is None:
        raise Unauthenticated(f"User {user_id} cannot vote")
    if not run_with_retries(db, lambda: location_exists(db, location_id), "location lookup"):
        raise LocationNotFound(f"Location {location_id} not found")

    def _store_vote() -> None:
        upsert_vote(db, user_id, location_id, kind)
        db.commit()

    run_with_retries(db, _store_vote, "vote upsert")
    logger.info("User %s voted %s on location %s", user_id, kind.value, location_id)

    # The vote is committed from here on and is never re-upserted.
    return refresh_trust_aggregate(db, location_id, user_id=user_id)


def refresh_trust_aggregate(
    db: Session, location_id: int, user_id: int | None = None
) -> TrustAggregate:
    """Recompute a location's aggregate from its votes and write it back.

    Version conflicts and transient store errors are retried with backoff up
    to ``vote_store_max_retries`` times before AggregationFailed.
    """
    settings = get_settings()
    max_retries = settings.vote_store_max_retries
    lock = _location_locks.get(location_id)

    if not lock.acquire(timeout=settings.vote_lock_timeout_seconds):
        reason = "timed out waiting for the location write lock"
        _report_divergence(db, location_id, user_id, reason)
        raise AggregationFailed(location_id, reason)

    try:
        reason = "no attempts made"
        for attempt in range(max_retries + 1):
            try:
                version = read_aggregate_version(db, location_id)
                if version is None:
                    db.rollback()
                    raise LocationNotFound(f"Location {location_id} not found")
                aggregate = compute_aggregate(db, location_id)
                if write_aggregate(db, location_id, aggregate, version):
                    db.commit()
                    return aggregate
                db.rollback()
                reason = f"aggregate version {version} changed during recompute"
            except SQLAlchemyError as e:
                db.rollback()
                if not is_transient_error(e):
                    reason = f"store error: {e}"
                    _report_divergence(db, location_id, user_id, reason)
                    raise AggregationFailed(location_id, reason) from e
                reason = f"transient store error: {e}"

            if attempt < max_retries:
                backoff = settings.vote_store_retry_backoff_seconds * (2**attempt)
                logger.warning(
                    "Aggregate write for location %s not applied (attempt %d/%d), "
                    "retrying in %.2fs: %s",
                    location_id,
                    attempt + 1,
                    max_retries + 1,
                    backoff,
                    reason,
                )
                time.sleep(backoff)

        _report_divergence(db, location_id, user_id, reason)
        raise AggregationFailed(location_id, reason)
    finally:
        lock.release()


def _report_divergence(db: Session, location_id: int, user_id: int | None, reason: str) -> None:
    """Log and record a stored vote whose aggregate write did not land."""
    logger.error(
        "Trust aggregate for location %s is stale after vote by user %s: %s",
        location_id,
        user_id,
        reason,
    )
    try:
        log_activity(
            db,
            "error",
            DIVERGENCE_SOURCE,
            f"Trust aggregate not updated after vote: {reason}",
            location_id=location_id,
            user_id=user_id,
        )
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Could not record aggregate divergence for location %s", location_id)


def get_user_vote(db: Session, user_id: int | None, location_id: int) -> Vote | None:
    """The caller's current vote on a location, or None."""
    if user_id is None:
        raise Unauthenticated("Sign in to see your vote")
    return run_with_retries(db, lambda: find_vote(db, user_id, location_id), "vote lookup")
