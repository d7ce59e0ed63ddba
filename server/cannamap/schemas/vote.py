"""Pydantic schemas for voting."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from cannamap.schemas.location import TrustAggregateOut


class VoteCreate(BaseModel):
    # Validated by the vote service so unknown kinds surface as InvalidVote
    vote_type: str = Field(..., max_length=20)


class UserVoteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    location_id: int
    vote_type: str
    created_at: datetime
    updated_at: datetime


class VoteResponse(BaseModel):
    status: str
    vote_type: str
    aggregate: TrustAggregateOut
