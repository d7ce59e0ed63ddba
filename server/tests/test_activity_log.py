"""Tests for activity log."""

from sqlalchemy.orm import Session

from cannamap.models.location import Location
from cannamap.services.activity_log import (
    MAX_MESSAGE_LENGTH,
    get_recent_activity,
    log_activity,
)


class TestActivityLogService:
    def test_log_entry_created(self, db: Session):
        entry = log_activity(db, "info", "system", "Server started")
        assert entry.id is not None
        assert entry.level == "info"
        assert entry.source == "system"
        assert entry.message == "Server started"
        assert entry.created_at is not None

    def test_get_recent_entries(self, db: Session):
        log_activity(db, "info", "system", "First")
        log_activity(db, "warning", "system", "Second")
        log_activity(db, "error", "trust_aggregate", "Third")

        entries = get_recent_activity(db, limit=2)
        assert [e.message for e in entries] == ["Third", "Second"]

    def test_filters(self, db: Session, test_location: Location):
        log_activity(db, "info", "system", "Unrelated")
        log_activity(db, "error", "trust_aggregate", "Stale", location_id=test_location.id)

        by_source = get_recent_activity(db, source="trust_aggregate")
        by_location = get_recent_activity(db, location_id=test_location.id)
        assert [e.message for e in by_source] == ["Stale"]
        assert [e.message for e in by_location] == ["Stale"]

    def test_long_message_truncated(self, db: Session):
        entry = log_activity(db, "error", "system", "x" * (MAX_MESSAGE_LENGTH + 50))
        assert len(entry.message) == MAX_MESSAGE_LENGTH
