from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cannamap.core.time import utcnow
from cannamap.models.base import Base

# Unvoted locations are presumptively trusted.
DEFAULT_TRUST_SCORE = 100


class Location(Base):
    __tablename__ = "locations"
    __table_args__ = (
        CheckConstraint("igniter_votes >= 0", name="ck_location_igniter_votes_non_negative"),
        CheckConstraint("imposter_votes >= 0", name="ck_location_imposter_votes_non_negative"),
        CheckConstraint(
            "total_votes = igniter_votes + imposter_votes", name="ck_location_total_votes"
        ),
        CheckConstraint(
            "trust_score >= 0 AND trust_score <= 100", name="ck_location_trust_score_range"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    latitude: Mapped[float] = mapped_column(Float)
    longitude: Mapped[float] = mapped_column(Float)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    contact_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False)
    created_by_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, index=True)

    # Trust aggregate, derived from the votes table and written only by the
    # vote service. aggregate_version is bumped on every write.
    igniter_votes: Mapped[int] = mapped_column(Integer, default=0)
    imposter_votes: Mapped[int] = mapped_column(Integer, default=0)
    total_votes: Mapped[int] = mapped_column(Integer, default=0)
    trust_score: Mapped[int] = mapped_column(Integer, default=DEFAULT_TRUST_SCORE)
    aggregate_version: Mapped[int] = mapped_column(Integer, default=0)

    votes: Mapped[list["Vote"]] = relationship(
        "Vote", back_populates="location", cascade="all, delete-orphan", passive_deletes=True
    )
    reviews: Mapped[list["Review"]] = relationship(
        "Review", back_populates="location", cascade="all, delete-orphan", passive_deletes=True
    )
