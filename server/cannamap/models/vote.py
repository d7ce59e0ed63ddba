from datetime import datetime
from enum import Enum

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from cannamap.core.time import utcnow
from cannamap.models.base import Base


class VoteType(str, Enum):
    IGNITER = "igniter"
    IMPOSTER = "imposter"


class Vote(Base):
    __tablename__ = "votes"
    __table_args__ = (
        UniqueConstraint("user_id", "location_id", name="uq_vote_user_location"),
        CheckConstraint("vote_type IN ('igniter', 'imposter')", name="ck_vote_type"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    location_id: Mapped[int] = mapped_column(
        ForeignKey("locations.id", ondelete="CASCADE"), index=True
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    vote_type: Mapped[str] = mapped_column(String(10))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, onupdate=utcnow)

    location: Mapped["Location"] = relationship("Location", back_populates="votes")
    user: Mapped["User"] = relationship("User", back_populates="votes")
